"""Key state: merging inference with manual overrides."""

from __future__ import annotations

import pytest

from mtp import (
    UNKNOWN_SLOT,
    KeySlot,
    KeyState,
    SlotKind,
    merge_slot,
)


def test_merge_slot_rules():
    manual = KeySlot(SlotKind.MANUAL, 0x41)
    inferred = KeySlot(SlotKind.INFERRED, 0x42)
    assert merge_slot(manual, 0x99) is manual
    assert merge_slot(manual, None) is manual
    assert merge_slot(inferred, 0x99) == KeySlot(SlotKind.INFERRED, 0x99)
    assert merge_slot(inferred, None) == UNKNOWN_SLOT
    assert merge_slot(UNKNOWN_SLOT, 0x07) == KeySlot(SlotKind.INFERRED, 0x07)


def test_replace_grows_keystream():
    state = KeyState()
    state.replace_with_inference([1, None, 3])
    assert len(state) == 3
    assert state.values() == [1, None, 3]
    assert state[0].kind is SlotKind.INFERRED
    assert state[1] == UNKNOWN_SLOT


def test_inferred_slot_can_be_downgraded():
    state = KeyState()
    state.replace_with_inference([1, 2])
    state.replace_with_inference([None, 5])
    assert state.values() == [None, 5]


def test_shorter_inference_clears_tail():
    state = KeyState()
    state.replace_with_inference([1, 2, 3])
    state.set_manual(2, 0x30)
    state.replace_with_inference([7])
    assert len(state) == 3
    assert state.values() == [7, None, 0x30]


def test_manual_survives_inference():
    state = KeyState()
    state.replace_with_inference([None, 2, None])
    state.set_manual(1, 0xAB)
    for inferred in ([9, 9, 9], [None, None, None], [1, 2, 3, 4]):
        state.replace_with_inference(inferred)
        assert state[1] == KeySlot(SlotKind.MANUAL, 0xAB)


def test_clear_manual_resets_to_unknown():
    state = KeyState()
    state.replace_with_inference([5, 6])
    state.set_manual(0, 0x11)
    state.clear_manual(0)
    assert state[0] == UNKNOWN_SLOT
    state.replace_with_inference([5, 6])
    assert state[0] == KeySlot(SlotKind.INFERRED, 5)


def test_clear_inferred_slot():
    state = KeyState()
    state.replace_with_inference([5])
    state.clear_manual(0)
    assert state[0] == UNKNOWN_SLOT


def test_replace_is_idempotent():
    state = KeyState()
    state.replace_with_inference([1, None, 3])
    state.set_manual(1, 0x22)
    state.replace_with_inference([4, None, None])
    snapshot = KeyState(list(state))
    state.replace_with_inference([4, None, None])
    assert state == snapshot


@pytest.mark.parametrize("offset", [-1, 3, 100])
def test_offset_out_of_range(offset):
    state = KeyState()
    state.replace_with_inference([None] * 3)
    with pytest.raises(IndexError):
        state.set_manual(offset, 0)
    with pytest.raises(IndexError):
        state.clear_manual(offset)


@pytest.mark.parametrize("value", [-1, 256])
def test_manual_byte_out_of_range(value):
    state = KeyState()
    state.replace_with_inference([None])
    with pytest.raises(ValueError):
        state.set_manual(0, value)


def test_plaintext_byte():
    state = KeyState()
    state.replace_with_inference([0x10, None, 0x30, 0x40])
    ciphertext = bytes([0x51, 0x52, 0x53])
    assert state.plaintext_byte(ciphertext, 0) == 0x41
    assert state.plaintext_byte(ciphertext, 1) is None
    assert state.plaintext_byte(ciphertext, 2) == 0x63
    # key known but past the end of this ciphertext
    assert state.plaintext_byte(ciphertext, 3) is None
    with pytest.raises(IndexError):
        state.plaintext_byte(ciphertext, -1)


def test_queries():
    state = KeyState()
    state.replace_with_inference([1, None, 3, None])
    state.set_manual(1, 0x20)
    assert state.manual_offsets() == [1]
    assert state.known_count() == 3
    assert [slot.known for slot in state] == [True, True, True, False]
