"""
---
version: 0.2.0
created: 2026-10-14
updated: 2026-10-19
---

phase3_interactive.py — Line-oriented many-time pad workbench.

Add ciphertexts as hex, watch the key fill in, and correct it by hand
either byte by byte or with plaintext guesses (cribs). Every added
ciphertext re-runs inference over the whole set; manual bytes are kept.

Commands:
  add <hex>                   submit a ciphertext
  key <offset> <hh>           set key byte at offset (hex) manually
  key <offset> -              clear the key byte at offset
  crib <row> <offset> <text>  key bytes from a plaintext guess for one row
  show                        key and every plaintext row
  list                        submitted ciphertexts as hex
  reset                       forget everything
  help                        this text
  quit                        leave

Usage:
    python3 phase3_interactive.py [--file CIPHERTEXTS]
"""

from __future__ import annotations

import argparse
import re
import sys

from mtp import Session, decode_hex, encode_hex, format_session, load_ciphertexts

HELP = __doc__.split("Commands:\n", 1)[1].split("\nUsage:", 1)[0]

CRIB_PATTERN = re.compile(r"\s*\S+\s+(\S+)\s+(\S+) (.+)", re.DOTALL)


def run_command(session: Session, line: str) -> bool:
    """
    Execute one command line against the session.

    Returns False when the user asked to quit. Bad input prints a message
    and leaves the session unchanged.
    """
    parts = line.strip().split(maxsplit=1)
    if not parts:
        return True
    cmd = parts[0].lower()
    rest = parts[1] if len(parts) > 1 else ""

    try:
        if cmd in ("quit", "exit", "q"):
            return False
        elif cmd == "help":
            print(HELP)
        elif cmd == "add":
            session.submit_ciphertext(decode_hex(rest))
            row = len(session.ciphertexts) - 1
            print(f"Added ciphertext {row} ({len(session.ciphertexts[row])} bytes); "
                  f"{session.key.known_count()}/{len(session.key)} key bytes known")
        elif cmd == "key":
            args = rest.split()
            if len(args) != 2:
                raise ValueError("usage: key <offset> <hh>|-")
            offset = int(args[0])
            value = None if args[1] == "-" else int(args[1], 16)
            session.edit_key_byte(offset, value)
            print(format_session(session))
        elif cmd == "crib":
            # text is everything after the one space following the offset
            m = CRIB_PATTERN.fullmatch(line)
            if m is None:
                raise ValueError("usage: crib <row> <offset> <text>")
            written = session.apply_crib(int(m.group(1)), int(m.group(2)), m.group(3))
            print(f"Set {written} key bytes")
            print(format_session(session))
        elif cmd == "show":
            if not session.ciphertexts:
                print("Add encrypted messages before attempting to decrypt.")
            else:
                print(format_session(session))
        elif cmd == "list":
            for i, ct in enumerate(session.ciphertexts):
                print(f"{i}:{encode_hex(ct)}")
        elif cmd == "reset":
            session.reset()
            print("Session cleared")
        else:
            print(f"Unknown command {cmd!r}; type 'help'")
    except (ValueError, IndexError) as e:
        print(f"Error: {e}")
    return True


def main() -> None:
    parser = argparse.ArgumentParser(description="Interactive many-time pad workbench")
    parser.add_argument("--file", type=str, default=None,
                        help="Hex ciphertexts to load at start, one per line")
    args = parser.parse_args()

    session = Session()
    if args.file:
        try:
            for ct in load_ciphertexts(args.file):
                session.submit_ciphertext(ct)
        except (OSError, ValueError) as e:
            print(f"Cannot load ciphertexts: {e}", file=sys.stderr)
            sys.exit(1)
        print(f"Loaded {len(session.ciphertexts)} ciphertexts")
        print(format_session(session))

    print("Type 'help' for commands.")
    while True:
        try:
            line = input("mtp> ")
        except EOFError:
            print()
            break
        if not run_command(session, line):
            break


if __name__ == "__main__":
    main()
