"""Key inference engine: space detection, chunking, degenerate input."""

from __future__ import annotations

import itertools

import numpy as np

from mtp import (
    Session,
    infer_key_chunk,
    infer_keystream,
    is_space_consistent,
    printable_fraction,
    reveal_accuracy,
    space_indices,
    xor_bytes,
)
from mtp_boneh import boneh_corpus, boneh_target_key


def encrypt_all(plaintexts: list[bytes], key_byte: int) -> list[bytes]:
    return [xor_bytes(p, bytes([key_byte]) * len(p)) for p in plaintexts]


def test_space_consistent_bytes():
    xored = np.array([0x00, 0x41, 0x5A, 0x61, 0x7A, 0x01, 0x40, 0x5B, 0x60, 0x7B, 0x20, 0xC1], dtype=np.uint8)
    expected = [True, True, True, True, True, False, False, False, False, False, False, False]
    assert is_space_consistent(xored).tolist() == expected


def test_space_xor_letter_is_flagged():
    for letter in b"abcxyzABCXYZ":
        assert is_space_consistent(np.array([letter ^ 0x20], dtype=np.uint8))[0]


def test_space_indices():
    assert space_indices(xor_bytes(b"a cat", b"a dog")) == [0, 1]
    assert space_indices(xor_bytes(b"x y", b"xAy")) == [0, 1, 2]
    assert space_indices(b"") == []


def test_no_ciphertexts_gives_empty_key():
    assert infer_keystream([]) == []


def test_single_ciphertext_gives_all_unknown():
    assert infer_keystream([b"\x10\x20\x30\x40"]) == [None] * 4


def test_two_message_scenario():
    a, b = encrypt_all([b"A B", b"A C"], 0xFF)
    key = infer_keystream([a, b])
    # offset 0: equal plaintexts, XOR 0x00, so "space" is inferred (wrongly)
    assert key[0] == a[0] ^ 0x20 == 0x9E
    # offset 1: both spaces, correct key byte
    assert key[1] == 0xFF
    # offset 2: 'B' ^ 'C' == 0x01, not space-consistent
    assert key[2] is None


def test_later_ciphertext_wins_tie():
    # 0x00 ^ 0x41 is a letter, so both rows qualify at offset 0
    assert infer_keystream([b"\x00", b"\x41"]) == [0x41 ^ 0x20]
    assert infer_keystream([b"\x41", b"\x00"]) == [0x41 ^ 0x20]


def test_chunks_follow_trimmed_prefixes():
    cts = encrypt_all([b"go on", b"we go to", b"it is so ok"], 0x5A)
    key = infer_keystream(cts)
    assert len(key) == 11
    # round 1 over 5 bytes, round 2 over the next 3; 'o' ^ 'o' reads as a space
    assert key == [None, None, 0x5A, None, None, 0x5A, None, 0x5A ^ ord("o") ^ 0x20, None, None, None]


def test_chunk_length_is_shortest():
    chunk = infer_key_chunk([b"\x01\x02", b"\x01\x02\x03", b"\x01\x02\x03\x04"])
    assert len(chunk) == 2


def test_empty_ciphertext_in_set():
    key = infer_keystream([b"", b"\x01\x02", b"\x01\x03"])
    assert len(key) == 2


def test_identical_ciphertexts_read_as_spaces():
    ct = bytes([0x11, 0x22, 0x33])
    assert infer_keystream([ct, ct]) == [0x31, 0x02, 0x13]


def test_key_length_is_longest_ciphertext():
    cts = [bytes(10), bytes(25), bytes(7)]
    assert len(infer_keystream(cts)) == 25


def test_result_independent_of_submission_order():
    corpus = boneh_corpus()[:5]
    expected = infer_keystream(corpus)
    for perm in itertools.permutations(corpus):
        assert infer_keystream(list(perm)) == expected


def test_input_not_mutated():
    cts = [b"\x01\x02\x03", b"\x04\x05"]
    infer_keystream(cts)
    assert cts == [b"\x01\x02\x03", b"\x04\x05"]


def test_boneh_corpus_recovery():
    corpus = boneh_corpus()
    key = infer_keystream(corpus)
    assert len(key) == max(len(ct) for ct in corpus)

    true_key = boneh_target_key()
    assert key[0] == true_key[0] == 0x66
    assert key[1] == true_key[1] == 0x39

    acc = reveal_accuracy(key, true_key)
    assert acc["n"] == 83
    assert acc["known"] == 61
    assert acc["correct"] == 60
    assert acc["precision"] > 0.98

    # one letter/letter collision survives unanimity
    wrong = [k for k in range(83) if key[k] is not None and key[k] != true_key[k]]
    assert wrong == [7]


def test_boneh_plaintexts_printable_over_shortest():
    session = Session(boneh_corpus())
    shortest = min(len(ct) for ct in session.ciphertexts)
    assert shortest == 83
    for i in range(len(session.ciphertexts)):
        assert printable_fraction(session.plaintext(i)[:shortest]) == 1.0
