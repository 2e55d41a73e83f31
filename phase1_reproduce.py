"""
---
version: 0.2.0
created: 2026-10-12
updated: 2026-10-19
---

phase1_reproduce.py — Reproduce key recovery on the Boneh many-time pad corpus.

Validates:
  1. Incremental inference (coverage after each submitted ciphertext)
  2. Recovered plaintexts for every ciphertext
  3. Accuracy against the published target plaintext
  4. Letter-frequency report of the recovered text
  5. Crib completion: manual key bytes from the known target

Generates:
  - Key coverage plot (key_coverage.png)

Usage:
    python3 phase1_reproduce.py [--file CIPHERTEXTS] [--no-plots] [--save-dir DIR]
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from mtp import (
    Session,
    encode_hex,
    format_decode_preview,
    format_keystream,
    key_coverage,
    letter_frequency_test,
    load_ciphertexts,
    plot_key_coverage,
    printable_fraction,
    render_plaintext,
    reveal_accuracy,
)
from mtp_boneh import BONEH_TARGET_PLAINTEXT, boneh_corpus, boneh_target_key


def incremental_recovery(ciphertexts: list[bytes]) -> Session:
    """Submit ciphertexts one at a time, reporting coverage after each."""
    print("=" * 70)
    print("1. INCREMENTAL KEY RECOVERY")
    print("=" * 70)

    session = Session()
    print(f"\n  {'#':>3} {'bytes':>6} {'key len':>8} {'known':>6} {'coverage':>9}")
    for i, ct in enumerate(ciphertexts):
        session.submit_ciphertext(ct)
        known = session.key.known_count()
        print(f"  {i:>3} {len(ct):>6} {len(session.key):>8} {known:>6} "
              f"{key_coverage(session.keystream):>9.1%}")

    print(f"\nRecovered key ({len(session.key)} bytes, '__' = unknown):")
    key_line = format_keystream(session.key)
    for i in range(0, len(key_line), 64):
        print(f"  {i // 2:4d}: {key_line[i:i + 64]}")
    return session


def show_plaintexts(session: Session) -> None:
    """Print every recovered plaintext row."""
    print("\n" + "=" * 70)
    print("2. RECOVERED PLAINTEXTS ('_' = unknown key byte)")
    print("=" * 70)

    for i in range(len(session.ciphertexts)):
        values = session.plaintext(i)
        print(f"\n  Ciphertext {i} ({len(values)} bytes, "
              f"printable {printable_fraction(values):.0%}):")
        print(format_decode_preview(render_plaintext(values)))


def check_target(session: Session) -> bool:
    """Compare the recovered key against the published target solution."""
    print("\n" + "=" * 70)
    print("3. ACCURACY AGAINST PUBLISHED TARGET")
    print("=" * 70)

    acc = reveal_accuracy(session.keystream, boneh_target_key())
    target = len(session.ciphertexts) - 1
    print(f"\n  Recovered: {render_plaintext(session.plaintext(target))}")
    print(f"  Actual:    {BONEH_TARGET_PLAINTEXT}")
    print(f"\n  Offsets compared: {acc['n']}")
    print(f"  Known:            {acc['known']} ({acc['coverage']:.1%})")
    print(f"  Correct:          {acc['correct']}")
    print(f"  Incorrect:        {acc['incorrect']}")
    print(f"  Precision:        {acc['precision']:.1%}")
    return acc["precision"] > 0.9


def frequency_report(session: Session) -> None:
    print("\n" + "=" * 70)
    print("4. LETTER FREQUENCY OF RECOVERED TEXT")
    print("=" * 70)

    text = "".join(render_plaintext(session.plaintext(i)) for i in range(len(session.ciphertexts)))
    lf = letter_frequency_test(text)
    print(f"\n  Letters:       {lf['n']}")
    print(f"  Chi2 vs Eng:   {lf['chi2']:.1f}  (p={lf['p_value']:.4f})")
    print(f"  KL divergence: {lf['kl_divergence']:.3f}")


def complete_with_crib(session: Session) -> None:
    """Install the known target plaintext as a crib and re-render every row."""
    print("\n" + "=" * 70)
    print("5. CRIB COMPLETION (target plaintext as manual key bytes)")
    print("=" * 70)

    target = len(session.ciphertexts) - 1
    written = session.apply_crib(target, 0, BONEH_TARGET_PLAINTEXT)
    print(f"\n  Manual key bytes set: {written}")
    print(f"  Key coverage now: {key_coverage(session.keystream):.1%}")
    for i in range(len(session.ciphertexts)):
        print(f"  {i:3d}: {render_plaintext(session.plaintext(i)[:written])}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Reproduce many-time pad key recovery")
    parser.add_argument("--file", type=str, default=None,
                        help="Hex ciphertexts, one per line (default: Boneh corpus)")
    parser.add_argument("--no-plots", action="store_true", help="Skip plot generation")
    parser.add_argument("--save-dir", type=str, default=".", help="Directory for plot output")
    args = parser.parse_args()

    save_dir = Path(args.save_dir)

    if args.file:
        try:
            ciphertexts = load_ciphertexts(args.file)
        except (OSError, ValueError) as e:
            print(f"Cannot load ciphertexts: {e}", file=sys.stderr)
            sys.exit(1)
    else:
        ciphertexts = boneh_corpus()

    print(f"Ciphertexts: {len(ciphertexts)}")
    for i, ct in enumerate(ciphertexts):
        print(f"  {i:3d} ({len(ct):3d} bytes): {encode_hex(ct[:24])}...")
    print()

    session = incremental_recovery(ciphertexts)
    recovered = session.key.known_count()
    show_plaintexts(session)

    target_ok = None
    if not args.file:
        target_ok = check_target(session)

    frequency_report(session)

    if not args.file:
        complete_with_crib(session)

    if not args.no_plots:
        print("\n" + "=" * 70)
        print("6. GENERATING PLOTS")
        print("=" * 70)
        plot_key_coverage(session.ciphertexts, session.keystream,
                          save_path=save_dir / "key_coverage.png")

    print("\n" + "=" * 70)
    print("SUMMARY")
    print("=" * 70)
    print(f"\n  Key bytes inferred: {recovered}/{len(session.key)}")
    if target_ok is not None:
        print(f"  Target validation:   {'PASS' if target_ok else 'FAIL'}")


if __name__ == "__main__":
    main()
