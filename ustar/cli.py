from __future__ import annotations

import os
import sys
import time
import errno
import logging
import argparse

from pathlib import Path
from typing import List, Optional, Tuple
from datetime import datetime

from ustar.reader import ArchiveReader
from ustar.writer import ArchiveWriter
from ustar.blocks import BlockKind
from ustar.content import Text, classify_content
from ustar.pathutil import norm_path
from ustar.errors import UstarError, UnsafePathError


def _safe_chmod(path: str, mode: Optional[int]) -> None:
    """Best‑effort chmod that never raises.

    Args:
        path: Destination filesystem path to update.
        mode: POSIX mode to apply (e.g., 0o755). If None, no change is made.
    """
    if mode is None:
        return
    try:
        os.chmod(path, mode)
    except OSError as exc:
        print(f"Warning: failed to set mode on {path}: {exc}", file=sys.stderr)


def _safe_utime(path: str, mtime: Optional[int]) -> None:
    """Best‑effort utime that never raises; atime is set to mtime."""
    if not mtime:
        return
    try:
        os.utime(path, (mtime, mtime), follow_symlinks=False)
    except (OSError, NotImplementedError) as exc:
        print(f"Warning: failed to set timestamps on {path}: {exc}", file=sys.stderr)


def _format_mtime(unix_timestamp: int) -> str:
    try:
        if unix_timestamp <= 0:
            return "----.--.-- --:--"
        return datetime.fromtimestamp(unix_timestamp).strftime("%Y-%m-%d %H:%M")
    except (OSError, ValueError, OverflowError):
        return "----.--.-- --:--"


def _warn_stop(r: ArchiveReader) -> None:
    if r.stop_kind is BlockKind.ERROR:
        print(
            f"Warning: unrecognized or truncated block at offset {r.stop_offset}; "
            "anything after it was not read.",
            file=sys.stderr,
        )


def _next_nonconflicting_path(path: str) -> str:
    if not os.path.lexists(path):
        return path
    base_dir = os.path.dirname(path)
    root, ext = os.path.splitext(os.path.basename(path))
    i = 1
    while True:
        candidate = os.path.join(base_dir, f"{root} ({i}){ext}")
        if not os.path.lexists(candidate):
            return candidate
        i += 1


def _collect_inputs(inputs: List[str]) -> Tuple[List[Tuple[str, str]], List[Tuple[str, str]]]:
    """(arc_path, fs_path) for files and (arc_path, target) for symlinks."""
    files: List[Tuple[str, str]] = []
    symlinks: List[Tuple[str, str]] = []
    for p in (Path(x) for x in inputs):
        if p.is_symlink():
            symlinks.append((p.name, os.readlink(str(p))))
        elif p.is_dir():
            base = p.name
            for root, dirnames, filenames in os.walk(str(p)):
                dirnames.sort()
                for d in list(dirnames):
                    sub = os.path.join(root, d)
                    if os.path.islink(sub):
                        symlinks.append((os.path.join(base, os.path.relpath(sub, start=str(p))), os.readlink(sub)))
                # prune symlink directories to avoid walking into them
                dirnames[:] = [d for d in dirnames if not os.path.islink(os.path.join(root, d))]
                for f in sorted(filenames):
                    full = os.path.join(root, f)
                    arc = os.path.join(base, os.path.relpath(full, start=str(p)))
                    if os.path.islink(full):
                        symlinks.append((arc, os.readlink(full)))
                    else:
                        files.append((arc, full))
        elif p.exists():
            files.append((p.name, str(p)))
        else:
            raise FileNotFoundError(f"No such file or directory: {p}")
    return files, symlinks


def cmd_pack(output: str, inputs: List[str], *, quiet: bool = False) -> bool:
    """Pack (create) a new archive from filesystem paths.

    Args:
        output: Path to the output .tar file to write.
        inputs: List of file or directory paths to store. Directories are
            stored recursively under their own name.
    """
    files, symlinks = _collect_inputs(inputs)
    t0 = time.time()
    with ArchiveWriter(output) as w:
        for i, (arc, full) in enumerate(files, 1):
            meta = w.add_file(arc, full)
            if not quiet:
                print(f"   packing: {i:>4}/{len(files):<4} {arc} ({meta.file_size} bytes)")
        for arc, target in symlinks:
            w.add_symlink(arc, target)
            if not quiet:
                print(f"   linking: {arc} -> {target}")
        w.finalize()
        total = w.bytes_written
    dt = max(0.000001, time.time() - t0)
    print(f"Done: {len(files)} files, {len(symlinks)} links; {total} bytes in {dt:.1f}s")
    return True


def cmd_list(archive: str, *, long: bool = False) -> bool:
    """List archive entries.

    Args:
        archive: Path to a .tar file.
        long: Show permissions, owner, size and mtime read from each header.
    """
    r = ArchiveReader.from_path(archive)
    entries = r.read_all()
    if long:
        for _off, info in r.headers():
            target = f" -> {info.linked_file_name}" if info.typeflag == "2" else ""
            print(
                f"{info.mode_string()} {info.owner_id}/{info.group_id} {info.file_size:>10} "
                f"{_format_mtime(info.mtime)} {info.path}{target}"
            )
    else:
        for (meta, _content), (_off, info) in zip(entries, r.headers()):
            print(f"{classify_content(meta.filename).value}\t{meta.file_size}\t{info.path}")
    _warn_stop(r)
    return True


def cmd_unpack(archive: str, *, outdir: str = ".", exists: str = "rename", quiet: bool = False) -> bool:
    """Unpack (extract) entries from an archive to a directory.

    Contents come from ``extract_archive``; paths, permissions, mtimes and
    link targets are read from the full header view. Binary bodies are
    written trimmed to their recorded size.
    """
    r = ArchiveReader.from_path(archive)
    entries = r.read_all()
    headers = r.headers()
    symlink_fn = getattr(os, "symlink", None)
    extracted = skipped = renamed = 0

    for (meta, content), (_off, info) in zip(entries, headers):
        try:
            rel = norm_path(info.path)
        except UnsafePathError:
            print(f"    skipping: {info.path} (unsafe path)", file=sys.stderr)
            skipped += 1
            continue
        if not rel:
            skipped += 1
            continue
        dst = os.path.join(outdir or ".", rel)
        os.makedirs(os.path.dirname(dst) or ".", exist_ok=True)
        actual_dst = dst
        rename_note = None
        if os.path.lexists(actual_dst):
            if exists == "overwrite":
                if os.path.isdir(actual_dst) and not os.path.islink(actual_dst):
                    raise RuntimeError(f"Cannot overwrite directory with file: {actual_dst}")
                if os.path.islink(actual_dst) or info.typeflag in ("1", "2"):
                    os.remove(actual_dst)
            elif exists == "skip":
                print(f"    skipping: {rel} (exists)")
                skipped += 1
                continue
            elif exists == "rename":
                actual_dst = _next_nonconflicting_path(actual_dst)
                rename_note = actual_dst
            else:
                raise RuntimeError(f"Destination exists: {actual_dst}")

        if info.typeflag == "2":
            if symlink_fn is None:
                print(f"    skipping: {rel} (symlinks not supported)")
                skipped += 1
                continue
            try:
                symlink_fn(info.linked_file_name, actual_dst)
            except OSError as exc:
                if exc.errno not in (errno.EPERM, errno.EOPNOTSUPP):
                    raise
                print(f"    skipping: {rel} (symlinks not supported)")
                skipped += 1
                continue
            if not quiet:
                print(f"  symlinking: {rel} -> {info.linked_file_name}")
        elif info.typeflag == "1":
            try:
                target = os.path.join(outdir or ".", norm_path(info.linked_file_name))
            except UnsafePathError:
                target = ""
            if not target or not os.path.isfile(target) or not hasattr(os, "link"):
                print(f"    skipping: {rel} (hard link target {info.linked_file_name!r} not extracted)")
                skipped += 1
                continue
            os.link(target, actual_dst)
            if not quiet:
                print(f"     linking: {rel} => {info.linked_file_name}")
        else:
            if isinstance(content, Text):
                data = content.encode()
            else:
                data = content.data[: meta.file_size]
            with open(actual_dst, "wb") as wf:
                wf.write(data)
            if not quiet:
                print(f" unpacking: {rel}")
            _safe_chmod(actual_dst, info.mode & 0o777)
            _safe_utime(actual_dst, info.mtime)
        extracted += 1
        if rename_note:
            print(f"       note: renamed to {actual_dst}")
            renamed += 1

    _warn_stop(r)
    print(f"Done: extracted {extracted}/{len(entries)} entries; skipped={skipped} renamed={renamed}")
    return True


def cmd_verify(archive: str) -> bool:
    """Verify header checksums.

    Prints:
        "OK" on success, "FAIL" followed by the bad headers otherwise.
    """
    r = ArchiveReader.from_path(archive)
    bad = r.verify_headers()
    _warn_stop(r)
    if bad:
        print("FAIL")
        for off, info in bad:
            print(f"  checksum mismatch at offset {off}: {info.path} (stored {info.stored_checksum}, computed {info.computed_checksum})")
        return False
    print(f"OK ({len(r.entries)} entries)")
    return True


def main(argv: List[str] | None = None):
    ap = argparse.ArgumentParser(
        prog="ustar",
        description="USTAR tape-archive tool",
        epilog="Only regular files and symbolic links are stored; no compression.",
    )
    ap.add_argument("--verbose", "-v", action="store_true", help="Log decoder/encoder activity to stderr")
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_pack = sub.add_parser("pack", help="Create an archive")
    ap_pack.add_argument("output", help="Output .tar path")
    ap_pack.add_argument("inputs", nargs="+", help="Input files/directories")
    ap_pack.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    ap_list = sub.add_parser("list", help="List archive contents")
    ap_list.add_argument("archive", help="Archive path")
    ap_list.add_argument("--long", "-l", action="store_true", help="Show mode, owner, size and mtime")

    ap_unpack = sub.add_parser("unpack", help="Extract files")
    ap_unpack.add_argument("archive", help="Archive path")
    ap_unpack.add_argument("--outdir", default=".", help="Output directory")
    ap_unpack.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")
    ap_unpack.add_argument(
        "--exists",
        choices=["overwrite", "skip", "rename", "fail"],
        default="rename",
        help=(
            "What to do if a destination file exists: overwrite, skip, "
            "rename (append ' (n)' before extension), or fail. Default: rename"
        ),
    )

    ap_verify = sub.add_parser("verify", help="Verify header checksums")
    ap_verify.add_argument("archive", help="Archive path")

    args = ap.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")
    try:
        if args.cmd == "pack":
            cmd_pack(args.output, args.inputs, quiet=args.quiet)
        elif args.cmd == "list":
            cmd_list(args.archive, long=args.long)
        elif args.cmd == "unpack":
            cmd_unpack(args.archive, outdir=args.outdir, exists=args.exists, quiet=args.quiet)
        elif args.cmd == "verify":
            ok = cmd_verify(args.archive)
            sys.exit(0 if ok else 1)
        else:
            raise RuntimeError("Unknown command")
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except (UstarError, ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
