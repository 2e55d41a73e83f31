"""
---
version: 0.2.0
created: 2026-10-13
updated: 2026-10-19
---

phase2_monte_carlo.py — How recovery quality grows with the number of messages.

For each message count n, repeatedly:
  1. Draw a random keystream and n synthetic English plaintexts
  2. Encrypt them all with the same keystream
  3. Run the space-detection inference on the ciphertexts
  4. Score the recovered key against the real one

Reports mean coverage, precision and wrong reveals per n. A wrong reveal is
a key byte the heuristic committed to that differs from the real key (e.g. a
comma next to a letter, or two equal letters when only two rows remain).

Usage:
    python3 phase2_monte_carlo.py [--n-sims N] [--max-messages M] [--no-plots] [--save-dir DIR]
"""

from __future__ import annotations

import argparse
import time
from pathlib import Path

import numpy as np

from mtp import generate_many_time_pad, infer_keystream, reveal_accuracy


def run_monte_carlo(
    message_counts: list[int],
    n_sims: int = 200,
    min_len: int = 60,
    max_len: int = 120,
    seed: int = 42,
) -> dict[int, dict]:
    """
    Simulate recovery for each message count.

    Returns dict keyed by message count, each with:
        coverage: per-simulation fraction of key offsets recovered
        precision: per-simulation fraction of recovered bytes that are right
        incorrect: per-simulation number of wrong key bytes
    """
    rng = np.random.default_rng(seed)
    results: dict[int, dict] = {}

    t0 = time.time()
    for n in message_counts:
        coverage: list[float] = []
        precision: list[float] = []
        incorrect: list[int] = []
        for _ in range(n_sims):
            data = generate_many_time_pad(n, min_len=min_len, max_len=max_len, rng=rng)
            key = infer_keystream(data["ciphertexts"])
            acc = reveal_accuracy(key, data["key"])
            coverage.append(acc["coverage"])
            precision.append(acc["precision"])
            incorrect.append(acc["incorrect"])
        results[n] = {
            "coverage": np.array(coverage),
            "precision": np.array(precision),
            "incorrect": np.array(incorrect),
        }
        elapsed = time.time() - t0
        print(f"  n={n:3d}: {n_sims} sims done ({elapsed:.1f}s elapsed)", end="\r")

    print()
    return results


def print_results(results: dict[int, dict]) -> None:
    print(f"\n{'Messages':>9} {'Coverage':>10} {'(sd)':>7} {'Precision':>10} {'Wrong/key':>10}")
    print("-" * 50)
    for n, r in results.items():
        print(f"{n:>9} {r['coverage'].mean():>10.1%} {r['coverage'].std():>7.3f} "
              f"{r['precision'].mean():>10.1%} {r['incorrect'].mean():>10.2f}")


def plot_results(results: dict[int, dict], save_dir: Path) -> None:
    """Coverage and precision against number of messages."""
    try:
        import matplotlib.pyplot as plt
    except ImportError:
        print("  matplotlib not available; skipping plots")
        return

    counts = list(results)
    cov = [results[n]["coverage"].mean() for n in counts]
    cov_sd = [results[n]["coverage"].std() for n in counts]
    prec = [results[n]["precision"].mean() for n in counts]

    fig, ax = plt.subplots(figsize=(8, 5))
    ax.errorbar(counts, cov, yerr=cov_sd, marker="o", capsize=3, label="Key coverage")
    ax.plot(counts, prec, marker="s", color="green", label="Precision of recovered bytes")
    ax.set_xlabel("Ciphertexts sharing the keystream")
    ax.set_ylabel("Fraction")
    ax.set_ylim(0, 1.05)
    ax.set_title("Space-detection key recovery vs message count")
    ax.legend()

    plt.tight_layout()
    path = save_dir / "monte_carlo_recovery.png"
    plt.savefig(str(path), dpi=150, bbox_inches="tight")
    print(f"  Saved: {path}")
    plt.close(fig)


def main() -> None:
    parser = argparse.ArgumentParser(description="Monte Carlo evaluation of many-time pad key recovery")
    parser.add_argument("--n-sims", type=int, default=200, help="Simulations per message count")
    parser.add_argument("--max-messages", type=int, default=15, help="Largest message count to try")
    parser.add_argument("--min-len", type=int, default=60, help="Shortest plaintext length")
    parser.add_argument("--max-len", type=int, default=120, help="Longest plaintext length")
    parser.add_argument("--no-plots", action="store_true", help="Skip plot generation")
    parser.add_argument("--save-dir", type=str, default=".", help="Directory for output")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    args = parser.parse_args()

    if args.min_len > args.max_len:
        parser.error("--min-len must not exceed --max-len")
    if args.max_messages < 2:
        parser.error("--max-messages must be at least 2")

    save_dir = Path(args.save_dir)
    message_counts = list(range(2, args.max_messages + 1))

    print("=" * 70)
    print("MONTE CARLO EVALUATION OF SPACE-DETECTION KEY RECOVERY")
    print(f"Simulations: {args.n_sims} per message count, counts {message_counts[0]}-{message_counts[-1]}")
    print(f"Plaintext length: {args.min_len}-{args.max_len} bytes")
    print("=" * 70)

    results = run_monte_carlo(
        message_counts,
        n_sims=args.n_sims,
        min_len=args.min_len,
        max_len=args.max_len,
        seed=args.seed,
    )
    print_results(results)

    if not args.no_plots:
        print("\nGenerating plots...")
        plot_results(results, save_dir)

    print("\n" + "=" * 70)
    print("SUMMARY")
    print("=" * 70)
    best = max(results, key=lambda n: results[n]["coverage"].mean())
    print(f"\n  Best coverage: {results[best]['coverage'].mean():.1%} with {best} messages")
    print(f"  Precision there: {results[best]['precision'].mean():.1%}")


if __name__ == "__main__":
    main()
