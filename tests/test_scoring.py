"""Scoring, synthetic corpora and rendering helpers."""

from __future__ import annotations

import numpy as np
import pytest

from mtp import (
    NONPRINTABLE_GLYPH,
    UNKNOWN_GLYPH,
    KeySlot,
    SlotKind,
    format_decode_preview,
    format_keystream,
    generate_english_text,
    generate_many_time_pad,
    infer_keystream,
    key_coverage,
    letter_frequency_test,
    printable_fraction,
    render_plaintext,
    reveal_accuracy,
    xor_bytes,
)


def test_key_coverage():
    assert key_coverage([]) == 0.0
    assert key_coverage([1, None, 3, None]) == 0.5


def test_reveal_accuracy():
    acc = reveal_accuracy([1, None, 9, 4, 5], bytes([1, 2, 3, 4]))
    assert acc["n"] == 4
    assert acc["known"] == 3
    assert acc["correct"] == 2
    assert acc["incorrect"] == 1
    assert acc["coverage"] == pytest.approx(0.75)
    assert acc["precision"] == pytest.approx(2 / 3)


def test_reveal_accuracy_nothing_known():
    acc = reveal_accuracy([None, None], b"ab")
    assert acc["precision"] == 1.0
    assert acc["coverage"] == 0.0


def test_printable_fraction():
    assert printable_fraction([None, None]) == 0.0
    assert printable_fraction([0x41, 0x00, None, 0x7E, 0x7F]) == 0.5


def test_letter_frequency_english_beats_noise():
    english = (
        "the quick brown fox jumps over the lazy dog while the cat sleeps "
        "in the sun and nobody seems to notice that the afternoon is over"
    )
    noise = "zqxjzqxjkvzqxjwzqxjkzqxjv" * 4
    assert letter_frequency_test(english)["chi2"] < letter_frequency_test(noise)["chi2"]
    assert letter_frequency_test("123 !!")["n"] == 0


def test_generate_english_text_length():
    rng = np.random.default_rng(7)
    for length in (0, 1, 5, 40, 123):
        text = generate_english_text(length, rng)
        assert len(text) == length
        assert all(c.isalpha() or c in " ," for c in text)


def test_generate_many_time_pad():
    rng = np.random.default_rng(3)
    data = generate_many_time_pad(6, min_len=30, max_len=60, rng=rng)
    assert len(data["key"]) == 60
    for p, c in zip(data["plaintexts"], data["ciphertexts"]):
        assert 30 <= len(p) <= 60
        assert xor_bytes(c, data["key"]) == p


def test_synthetic_recovery_is_mostly_correct():
    rng = np.random.default_rng(11)
    data = generate_many_time_pad(12, min_len=80, max_len=100, rng=rng)
    key = infer_keystream(data["ciphertexts"])
    acc = reveal_accuracy(key, data["key"])
    assert acc["known"] > 0
    assert acc["precision"] > 0.8


def test_format_keystream():
    slots = [
        KeySlot(SlotKind.INFERRED, 0xAB),
        KeySlot(),
        KeySlot(SlotKind.MANUAL, 0xCD),
    ]
    assert format_keystream(slots) == "ab__CD"


def test_render_plaintext():
    assert render_plaintext([0x48, None, 0x69, 0x07, 0xFF]) == f"H{UNKNOWN_GLYPH}i{NONPRINTABLE_GLYPH}{NONPRINTABLE_GLYPH}"


def test_format_decode_preview():
    lines = format_decode_preview("a" * 150, width=70).splitlines()
    assert len(lines) == 3
    assert lines[1].startswith("    70: ")
