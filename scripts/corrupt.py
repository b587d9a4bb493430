from __future__ import annotations

import argparse
import os
import random
import sys
from typing import Optional

from ustar.constants import MAGIC_FIELD
from ustar.reader import ArchiveReader
from ustar.errors import UstarError


def _flip_byte(path: str, offset: int, xor_val: int = 0xFF) -> None:
    if offset < 0:
        raise ValueError("Offset must be non-negative")
    with open(path, "r+b") as f:
        f.seek(offset)
        b = f.read(1)
        if not b:
            raise ValueError("Offset beyond end of file")
        f.seek(offset)
        f.write(bytes([b[0] ^ (xor_val & 0xFF)]))
        f.flush()
        os.fsync(f.fileno())


def _header_offset(archive: str, index: int) -> int:
    r = ArchiveReader.from_path(archive)
    r.read_all()
    if index < 0 or index >= len(r.header_offsets):
        raise ValueError(f"Entry index out of range (0..{len(r.header_offsets)-1})")
    return r.header_offsets[index]


def cmd_by_offset(args: argparse.Namespace) -> None:
    _flip_byte(args.archive, args.offset, xor_val=args.xor)
    print(f"Flipped 1 byte at offset {args.offset}")


def cmd_header(args: argparse.Namespace) -> None:
    if args.within < 0 or args.within >= 512:
        raise ValueError("--within must be within the header block (0..511)")
    off = _header_offset(args.archive, args.index) + args.within
    _flip_byte(args.archive, off, xor_val=args.xor)
    print(f"Flipped 1 byte in header {args.index} at archive offset {off}")


def cmd_magic(args: argparse.Namespace) -> None:
    # A header without its magic is an unrecognized block: decoding stops there
    off = _header_offset(args.archive, args.index) + MAGIC_FIELD[0]
    _flip_byte(args.archive, off, xor_val=args.xor)
    print(f"Broke magic of header {args.index} at archive offset {off}")


def cmd_random(args: argparse.Namespace) -> None:
    rng = random.Random(args.seed)
    flips = 0
    size = os.path.getsize(args.archive)
    with open(args.archive, "r+b") as f:
        for _ in range(args.count):
            pos = rng.randrange(0, size)
            f.seek(pos)
            b = f.read(1)
            if not b:
                continue
            f.seek(pos)
            f.write(bytes([b[0] ^ (args.xor & 0xFF)]))
            flips += 1
        f.flush()
        os.fsync(f.fileno())
    print(f"Flipped {flips} byte(s) at random offsets")


def main(argv: Optional[list[str]] = None) -> None:
    ap = argparse.ArgumentParser(prog="ustar.corrupt", description="Corrupt USTAR archives for testing")
    sub = ap.add_subparsers(dest="cmd", required=True)

    p_off = sub.add_parser("by-offset", help="Flip one byte at an absolute archive offset")
    p_off.add_argument("archive", help="Path to .tar archive")
    p_off.add_argument("--offset", type=int, required=True, help="Absolute byte offset in archive")
    p_off.add_argument("--xor", type=lambda x: int(x, 0), default=0xFF, help="XOR mask to apply (default 0xFF)")
    p_off.set_defaults(func=cmd_by_offset)

    p_hdr = sub.add_parser("header", help="Flip a byte inside an entry's header (breaks its checksum)")
    p_hdr.add_argument("archive", help="Path to .tar archive")
    p_hdr.add_argument("--index", type=int, default=0, help="Entry index (0-based, default 0)")
    p_hdr.add_argument("--within", type=int, default=0, help="Byte offset within the header (default 0: name)")
    p_hdr.add_argument("--xor", type=lambda x: int(x, 0), default=0x01, help="XOR mask to apply (default 0x01)")
    p_hdr.set_defaults(func=cmd_header)

    p_magic = sub.add_parser("magic", help="Break an entry's magic tag so decoding stops at it")
    p_magic.add_argument("archive", help="Path to .tar archive")
    p_magic.add_argument("--index", type=int, default=0, help="Entry index (0-based, default 0)")
    p_magic.add_argument("--xor", type=lambda x: int(x, 0), default=0xFF, help="XOR mask to apply (default 0xFF)")
    p_magic.set_defaults(func=cmd_magic)

    p_rand = sub.add_parser("random", help="Flip N random bytes anywhere in the archive")
    p_rand.add_argument("archive", help="Path to .tar archive")
    p_rand.add_argument("--count", type=int, default=1, help="Number of random byte flips (default 1)")
    p_rand.add_argument("--seed", type=int, default=None, help="PRNG seed for reproducibility")
    p_rand.add_argument("--xor", type=lambda x: int(x, 0), default=0xFF, help="XOR mask to apply (default 0xFF)")
    p_rand.set_defaults(func=cmd_random)

    args = ap.parse_args(argv)
    try:
        args.func(args)
    except (UstarError, OSError, ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
