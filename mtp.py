"""
---
version: 0.3.0
created: 2026-10-12
updated: 2026-10-19
---

mtp.py — Shared module for many-time pad key recovery.

Eight sections:
  1. Data constants (space byte, glyphs, English frequencies, word list)
  2. Codec (hex decode/encode, XOR, ciphertext file loading)
  3. Inference engine (space-detection crib drag over the ciphertext set)
  4. Key state (per-slot Unknown / Inferred / Manual keystream)
  5. Session (ciphertext collection + key state, the two entry points)
  6. Scoring (coverage, reveal accuracy, English letter-frequency report)
  7. Corpus utils (synthetic English plaintext and many-time pad sets)
  8. Output utils (keystream/plaintext rendering, coverage plot)
"""

from __future__ import annotations

import math
import string
import warnings
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Iterator, Sequence

import numpy as np

# ============================================================================
# 1. DATA CONSTANTS
# ============================================================================

SPACE: int = 0x20

# Rendering glyphs for the plaintext view.
UNKNOWN_GLYPH: str = "_"
NONPRINTABLE_GLYPH: str = "."

PRINTABLE_MIN: int = 0x20
PRINTABLE_MAX: int = 0x7E

# English letter frequencies (approximate). Reporting only; never fed back
# into key inference.
ENGLISH_FREQ: dict[str, float] = {
    "e": 0.1270, "t": 0.0906, "a": 0.0817, "o": 0.0751, "i": 0.0697,
    "n": 0.0675, "s": 0.0633, "h": 0.0609, "r": 0.0599, "d": 0.0425,
    "l": 0.0403, "c": 0.0278, "u": 0.0276, "m": 0.0241, "w": 0.0236,
    "f": 0.0223, "g": 0.0202, "y": 0.0197, "p": 0.0193, "b": 0.0129,
    "v": 0.0098, "k": 0.0077, "j": 0.0015, "x": 0.0015, "q": 0.0010,
    "z": 0.0007,
}

# Common English words for synthetic plaintext (simulations only).
SAMPLE_WORDS: tuple[str, ...] = (
    "the", "of", "and", "to", "a", "in", "is", "you", "that", "it",
    "he", "was", "for", "on", "are", "as", "with", "his", "they", "at",
    "be", "this", "have", "from", "or", "one", "had", "by", "word", "but",
    "not", "what", "all", "were", "we", "when", "your", "can", "said", "there",
    "use", "an", "each", "which", "she", "do", "how", "their", "if", "will",
    "up", "other", "about", "out", "many", "then", "them", "these", "so", "some",
    "her", "would", "make", "like", "him", "into", "time", "has", "look", "two",
    "more", "write", "go", "see", "number", "no", "way", "could", "people", "my",
    "than", "first", "water", "been", "call", "who", "oil", "its", "now", "find",
    "long", "down", "day", "did", "get", "come", "made", "may", "part", "key",
    "cipher", "stream", "message", "secret", "never", "once", "code", "break",
)


# ============================================================================
# 2. CODEC — Hex text, XOR, ciphertext files
# ============================================================================

def decode_hex(text: str) -> bytes:
    """
    Decode a hex string typed or pasted by a user.

    Whitespace is ignored and either case is accepted.

    Raises:
        ValueError: On odd length or any non-hex character.
    """
    clean = "".join(text.split())
    if len(clean) % 2:
        raise ValueError(f"Hex string has odd length ({len(clean)} digits)")
    try:
        return bytes.fromhex(clean)
    except ValueError as e:
        raise ValueError(f"Not a valid hex string: {clean[:40]!r}") from e


def encode_hex(data: bytes) -> str:
    """Upper-case hex, two digits per byte."""
    return data.hex().upper()


def xor_bytes(a: bytes, b: bytes) -> bytes:
    """XOR two byte strings over the length of the shorter one."""
    return bytes(x ^ y for x, y in zip(a, b))


def load_ciphertexts(filepath: str | Path) -> list[bytes]:
    """
    Read one hex ciphertext per line.

    Blank lines and lines starting with '#' are skipped.

    Raises:
        ValueError: If a line is not valid hex (message names the line).
    """
    path = Path(filepath)
    ciphertexts: list[bytes] = []
    for lineno, raw in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        try:
            ciphertexts.append(decode_hex(line))
        except ValueError as e:
            raise ValueError(f"{path}:{lineno}: {e}") from e
    return ciphertexts


# ============================================================================
# 3. INFERENCE ENGINE — Space-detection crib drag
# ============================================================================

def is_space_consistent(xored: np.ndarray) -> np.ndarray:
    """
    Flag XOR-of-ciphertext bytes that look like (space, letter) or equal bytes.

    space ^ letter flips the letter's case bit and gives another letter;
    0x00 means both plaintexts agree at that offset.
    """
    x = np.asarray(xored, dtype=np.uint8)
    upper = (x >= 0x41) & (x <= 0x5A)
    lower = (x >= 0x61) & (x <= 0x7A)
    return (x == 0) | upper | lower


def space_indices(xored: bytes) -> list[int]:
    """Offsets of space-consistent bytes in an XOR of two ciphertexts."""
    if not xored:
        return []
    return [int(i) for i in np.flatnonzero(is_space_consistent(np.frombuffer(xored, dtype=np.uint8)))]


def infer_key_chunk(working: Sequence[bytes]) -> list[int | None]:
    """
    Infer key bytes over the prefix that every ciphertext in `working` covers.

    For each ciphertext A, an offset where A ^ B is space-consistent for
    every other B is taken to be a space in A's plaintext, giving the key
    byte A[j] ^ 0x20. When several ciphertexts qualify at the same offset
    the one later in `working` wins.

    Args:
        working: At least one ciphertext (prefixes already aligned).

    Returns:
        Key chunk as long as the shortest ciphertext, None where unknown.
    """
    shortest = min(len(ct) for ct in working)
    if shortest == 0:
        return []
    rows = [np.frombuffer(ct[:shortest], dtype=np.uint8) for ct in working]
    others = len(rows) - 1

    key: list[int | None] = [None] * shortest
    for i_a, row_a in enumerate(rows):
        hits = np.zeros(shortest, dtype=np.int64)
        for i_b, row_b in enumerate(rows):
            if i_a != i_b:
                hits += is_space_consistent(row_a ^ row_b)
        for j in np.flatnonzero(hits == others):
            key[j] = int(row_a[j]) ^ SPACE
    return key


def infer_keystream(ciphertexts: Iterable[bytes]) -> list[int | None]:
    """
    Recover as much of the shared keystream as the space heuristic allows.

    Ciphertexts are processed shortest first. Each round infers a chunk over
    the range every remaining ciphertext covers, then drops the shortest and
    trims the rest past that range. Ties in length are ordered by content,
    so the result depends only on the set of ciphertexts, not on the order
    they were submitted in.

    Fewer than two ciphertexts give an all-unknown key; nothing raises.

    Returns:
        One entry per offset up to the longest ciphertext, None where unknown.
    """
    working = sorted((bytes(ct) for ct in ciphertexts), key=lambda ct: (len(ct), ct))
    max_len = len(working[-1]) if working else 0

    key: list[int | None] = []
    while len(working) > 1:
        chunk = infer_key_chunk(working)
        working = [ct[len(chunk):] for ct in working[1:]]
        key.extend(chunk)

    key.extend([None] * (max_len - len(key)))
    return key


# ============================================================================
# 4. KEY STATE — Partially known keystream with manual overrides
# ============================================================================

class SlotKind(Enum):
    UNKNOWN = "unknown"
    INFERRED = "inferred"
    MANUAL = "manual"


@dataclass(frozen=True)
class KeySlot:
    """One keystream position: no knowledge, an inferred byte, or a manual byte."""

    kind: SlotKind = SlotKind.UNKNOWN
    value: int | None = None

    @property
    def known(self) -> bool:
        return self.value is not None


UNKNOWN_SLOT = KeySlot()


def inferred_slot(value: int | None) -> KeySlot:
    return UNKNOWN_SLOT if value is None else KeySlot(SlotKind.INFERRED, value)


def merge_slot(current: KeySlot, inferred: int | None) -> KeySlot:
    """Manual slots win; everything else takes the fresh inference."""
    if current.kind is SlotKind.MANUAL:
        return current
    return inferred_slot(inferred)


class KeyState:
    """
    Authoritative keystream behind plaintext rendering.

    Inference results are merged slot by slot; manual bytes survive every
    merge until cleared. Offsets outside the keystream raise IndexError.
    """

    def __init__(self, slots: Iterable[KeySlot] = ()) -> None:
        self._slots: list[KeySlot] = list(slots)

    def __len__(self) -> int:
        return len(self._slots)

    def __getitem__(self, offset: int) -> KeySlot:
        return self._slots[offset]

    def __iter__(self) -> Iterator[KeySlot]:
        return iter(self._slots)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, KeyState):
            return NotImplemented
        return self._slots == other._slots

    def __repr__(self) -> str:
        return f"KeyState({format_keystream(self._slots)!r})"

    def _check_offset(self, offset: int) -> None:
        if not 0 <= offset < len(self._slots):
            raise IndexError(f"Key offset {offset} out of range (keystream length {len(self._slots)})")

    def replace_with_inference(self, inferred: Sequence[int | None]) -> None:
        """
        Merge a freshly inferred keystream into the current state.

        Grows the keystream when the inference is longer. Non-manual slots
        the inference does not reach become unknown.
        """
        length = max(len(self._slots), len(inferred))
        current = self._slots + [UNKNOWN_SLOT] * (length - len(self._slots))
        values = list(inferred) + [None] * (length - len(inferred))
        self._slots = [merge_slot(slot, value) for slot, value in zip(current, values)]

    def set_manual(self, offset: int, value: int) -> None:
        self._check_offset(offset)
        if not 0 <= value <= 0xFF:
            raise ValueError(f"Key byte must be in 0..255, got {value}")
        self._slots[offset] = KeySlot(SlotKind.MANUAL, value)

    def clear_manual(self, offset: int) -> None:
        """Forget slot `offset`; the next inference pass may fill it again."""
        self._check_offset(offset)
        self._slots[offset] = UNKNOWN_SLOT

    def plaintext_byte(self, ciphertext: bytes, offset: int) -> int | None:
        """Plaintext byte at `offset`, or None if the key there is unknown."""
        if offset < 0:
            raise IndexError(f"Negative offset {offset}")
        if offset >= len(ciphertext) or offset >= len(self._slots):
            return None
        value = self._slots[offset].value
        if value is None:
            return None
        return ciphertext[offset] ^ value

    def values(self) -> list[int | None]:
        return [slot.value for slot in self._slots]

    def manual_offsets(self) -> list[int]:
        return [i for i, slot in enumerate(self._slots) if slot.kind is SlotKind.MANUAL]

    def known_count(self) -> int:
        return sum(1 for slot in self._slots if slot.known)


# ============================================================================
# 5. SESSION — Ciphertext collection + key state
# ============================================================================

class Session:
    """
    Everything an interactive front end needs: the submitted ciphertexts and
    the key state derived from them.

    Every submission re-runs inference over the full collection. Manual edits
    are applied on top and survive later submissions.
    """

    def __init__(self, ciphertexts: Iterable[bytes] = ()) -> None:
        self.ciphertexts: list[bytes] = []
        self.key = KeyState()
        for ct in ciphertexts:
            self.submit_ciphertext(ct)

    def submit_ciphertext(self, data: bytes) -> None:
        self.ciphertexts.append(bytes(data))
        self.key.replace_with_inference(infer_keystream(self.ciphertexts))

    def edit_key_byte(self, offset: int, value: int | None) -> None:
        """Install a manual key byte, or clear it when `value` is None."""
        if value is None:
            self.key.clear_manual(offset)
        else:
            self.key.set_manual(offset, value)

    def apply_crib(self, index: int, offset: int, text: str | bytes) -> int:
        """
        Fix key bytes from a plaintext guess for one ciphertext.

        Args:
            index: Ciphertext row the guess belongs to.
            offset: Position of the first guessed byte in that row.
            text: Guessed plaintext (str is UTF-8 encoded).

        Returns:
            Number of key bytes set.

        Raises:
            IndexError: If the guess does not fit inside the row.
        """
        crib = text.encode("utf-8") if isinstance(text, str) else bytes(text)
        ciphertext = self.ciphertexts[index]
        if offset < 0 or offset + len(crib) > len(ciphertext):
            raise IndexError(
                f"Crib of {len(crib)} bytes at offset {offset} does not fit "
                f"ciphertext {index} ({len(ciphertext)} bytes)"
            )
        for k, p in enumerate(crib):
            self.key.set_manual(offset + k, ciphertext[offset + k] ^ p)
        return len(crib)

    def plaintext_byte(self, index: int, offset: int) -> int | None:
        return self.key.plaintext_byte(self.ciphertexts[index], offset)

    def plaintext(self, index: int) -> list[int | None]:
        ciphertext = self.ciphertexts[index]
        return [self.key.plaintext_byte(ciphertext, k) for k in range(len(ciphertext))]

    @property
    def keystream(self) -> list[int | None]:
        return self.key.values()

    def reset(self) -> None:
        self.ciphertexts = []
        self.key = KeyState()


# ============================================================================
# 6. SCORING — How much was recovered, and how well
# ============================================================================

def key_coverage(keystream: Sequence[int | None]) -> float:
    """Fraction of key offsets with a known byte."""
    if not keystream:
        return 0.0
    return sum(1 for v in keystream if v is not None) / len(keystream)


def reveal_accuracy(keystream: Sequence[int | None], true_key: bytes) -> dict:
    """
    Compare a recovered keystream with the real one.

    Only offsets covered by both are counted.

    Returns dict with:
        n: offsets compared
        known: offsets with a recovered byte
        correct / incorrect: recovered bytes that match / differ
        coverage: known / n
        precision: correct / known (1.0 when nothing is known)
    """
    n = min(len(keystream), len(true_key))
    known = correct = 0
    for recovered, actual in zip(keystream[:n], true_key[:n]):
        if recovered is None:
            continue
        known += 1
        if recovered == actual:
            correct += 1
    return {
        "n": n,
        "known": known,
        "correct": correct,
        "incorrect": known - correct,
        "coverage": known / n if n else 0.0,
        "precision": correct / known if known else 1.0,
    }


def printable_fraction(values: Sequence[int | None]) -> float:
    """Fraction of known plaintext bytes that are printable ASCII."""
    known = [v for v in values if v is not None]
    if not known:
        return 0.0
    return sum(1 for v in known if PRINTABLE_MIN <= v <= PRINTABLE_MAX) / len(known)


def letter_frequency_test(text: str) -> dict:
    """
    Compare letter frequencies of recovered plaintext to English.

    Returns dict with:
        chi2: chi-squared against English frequencies
        p_value: p-value (25 dof)
        kl_divergence: KL divergence from English
        n: letters counted
    """
    from scipy import stats as sp_stats

    letters = [c for c in text.lower() if c in string.ascii_lowercase]
    total = len(letters)
    if total == 0:
        return {"chi2": float("inf"), "p_value": 0.0, "kl_divergence": float("inf"), "n": 0}

    counts = Counter(letters)
    obs_arr = np.array([counts.get(c, 0) for c in string.ascii_lowercase], dtype=float)
    exp_arr = np.array([ENGLISH_FREQ[c] * total for c in string.ascii_lowercase], dtype=float)
    exp_arr = np.maximum(exp_arr, 0.5)
    exp_arr = exp_arr * (obs_arr.sum() / exp_arr.sum())
    chi2, p_value = sp_stats.chisquare(obs_arr, exp_arr)

    kl = 0.0
    for c in string.ascii_lowercase:
        p = counts.get(c, 0) / total
        if p > 0:
            kl += p * math.log2(p / ENGLISH_FREQ[c])

    return {
        "chi2": float(chi2),
        "p_value": float(p_value),
        "kl_divergence": kl,
        "n": total,
    }


# ============================================================================
# 7. CORPUS UTILS — Synthetic many-time pad sets
# ============================================================================

def generate_english_text(
    length: int,
    rng: np.random.Generator | None = None,
) -> str:
    """
    Random sentence-like text of exactly `length` characters.

    Words come from SAMPLE_WORDS, separated by single spaces, with a
    capitalised first word and the occasional comma.
    """
    if rng is None:
        rng = np.random.default_rng()
    words: list[str] = []
    size = 0
    while size <= length:
        word = str(rng.choice(SAMPLE_WORDS))
        if not words:
            word = word.capitalize()
        elif rng.random() < 0.08:
            words[-1] += ","
            size += 1
        words.append(word)
        size += len(word) + 1
    return " ".join(words)[:length]


def generate_many_time_pad(
    n_messages: int,
    min_len: int = 40,
    max_len: int = 120,
    rng: np.random.Generator | None = None,
) -> dict:
    """
    Encrypt `n_messages` synthetic plaintexts with one random keystream.

    Returns dict with:
        key: the keystream (max_len bytes)
        plaintexts: list of plaintext bytes
        ciphertexts: list of ciphertext bytes
    """
    if rng is None:
        rng = np.random.default_rng()
    key = rng.integers(0, 256, size=max_len, dtype=np.uint8).tobytes()
    plaintexts: list[bytes] = []
    for _ in range(n_messages):
        length = int(rng.integers(min_len, max_len + 1))
        plaintexts.append(generate_english_text(length, rng).encode("ascii"))
    return {
        "key": key,
        "plaintexts": plaintexts,
        "ciphertexts": [xor_bytes(p, key) for p in plaintexts],
    }


# ============================================================================
# 8. OUTPUT UTILS — Rendering, plots
# ============================================================================

def format_keystream(slots: Iterable[KeySlot]) -> str:
    """
    Two hex digits per slot: lower case inferred, upper case manual, '__'
    unknown.
    """
    out: list[str] = []
    for slot in slots:
        if slot.value is None:
            out.append(UNKNOWN_GLYPH * 2)
        elif slot.kind is SlotKind.MANUAL:
            out.append(f"{slot.value:02X}")
        else:
            out.append(f"{slot.value:02x}")
    return "".join(out)


def render_plaintext(values: Iterable[int | None]) -> str:
    out: list[str] = []
    for v in values:
        if v is None:
            out.append(UNKNOWN_GLYPH)
        elif PRINTABLE_MIN <= v <= PRINTABLE_MAX:
            out.append(chr(v))
        else:
            out.append(NONPRINTABLE_GLYPH)
    return "".join(out)


def format_decode_preview(decoded: str, width: int = 70) -> str:
    """Format a decoded string for display with line wrapping."""
    lines: list[str] = []
    for i in range(0, len(decoded), width):
        lines.append(f"  {i:4d}: {decoded[i : i + width]}")
    return "\n".join(lines)


def format_session(session: Session) -> str:
    """Key line plus one rendered plaintext line per ciphertext."""
    lines = [f"key: {format_keystream(session.key)}"]
    for i in range(len(session.ciphertexts)):
        lines.append(f"{i:3d}: {render_plaintext(session.plaintext(i))}")
    return "\n".join(lines)


def plot_key_coverage(
    ciphertexts: Sequence[bytes],
    keystream: Sequence[int | None],
    save_path: str | Path | None = None,
) -> None:
    """
    Plot how many ciphertexts cover each key offset, marking recovered bytes.

    Requires matplotlib (optional dependency).
    """
    try:
        import matplotlib.pyplot as plt
    except ImportError:
        warnings.warn("matplotlib not available; skipping plot")
        return

    n = len(keystream)
    offsets = np.arange(n)
    lengths = np.array([len(ct) for ct in ciphertexts])
    depth = np.array([int(np.sum(lengths > k)) for k in range(n)])
    known = np.array([v is not None for v in keystream], dtype=bool)

    fig, ax = plt.subplots(figsize=(12, 4))
    ax.bar(offsets, depth, width=1.0, alpha=0.4, label="Ciphertexts covering offset")
    ax.bar(offsets[known], depth[known], width=1.0, alpha=0.8, color="green", label="Key byte recovered")
    ax.set_xlabel("Key offset")
    ax.set_ylabel("Ciphertexts")
    ax.set_title(f"Key coverage: {int(known.sum())}/{n} bytes ({key_coverage(keystream):.1%})")
    ax.legend(fontsize=8)

    plt.tight_layout()
    if save_path:
        plt.savefig(str(save_path), dpi=150, bbox_inches="tight")
        print(f"Saved: {save_path}")
        plt.close(fig)
    else:
        plt.show()


# ============================================================================
# SELF-TEST — Run when executed directly
# ============================================================================

def _self_test() -> None:
    """Check the two-message scenario and key recovery on the Boneh corpus."""
    from mtp_boneh import BONEH_TARGET_PLAINTEXT, boneh_corpus, boneh_target_key

    print("=== mtp.py self-test ===\n")

    # 1. "A B" / "A C" under key byte 0xFF
    a = xor_bytes(b"A B", b"\xff" * 3)
    b = xor_bytes(b"A C", b"\xff" * 3)
    key = infer_keystream([a, b])
    print(f"Scenario key: {key}")
    assert key == [0x9E, 0xFF, None], f"Scenario FAILED: got {key}"

    # 2. Degenerate inputs
    assert infer_keystream([]) == []
    assert infer_keystream([b"abc"]) == [None, None, None]
    print("Degenerate inputs: PASS\n")

    # 3. Boneh corpus
    corpus = boneh_corpus()
    session = Session(corpus)
    acc = reveal_accuracy(session.keystream, boneh_target_key())
    print(f"Boneh corpus: {len(corpus)} ciphertexts, key length {len(session.key)}")
    print(f"Target offsets known: {acc['known']}/{acc['n']}  "
          f"correct={acc['correct']}  incorrect={acc['incorrect']}")
    print(f"Target: {render_plaintext(session.plaintext(len(corpus) - 1))}")
    print(f"Actual: {BONEH_TARGET_PLAINTEXT}")
    assert acc["precision"] > 0.9, f"Boneh recovery FAILED: {acc}"

    print("\n=== Self-test complete ===")


if __name__ == "__main__":
    _self_test()
