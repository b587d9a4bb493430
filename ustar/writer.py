from __future__ import annotations

import logging
import os
from dataclasses import replace
from typing import BinaryIO, Iterable, Iterator, List, Optional, Tuple, Union

from .blocks import block_padding
from .constants import NUL, TERMINATOR_SIZE
from .content import Binary, Content, Entry, Text
from .header import encode_header
from .metadata import DEFAULT_METADATA, LinkIndicator, MetaData, Mode
from .pathutil import norm_path, split_long_path

logger = logging.getLogger(__name__)

TERMINATOR = NUL * TERMINATOR_SIZE


def encode_entry(meta: MetaData, content: Content) -> Iterator[bytes]:
    """Yield the header block and padded body of one entry.

    ``file_size`` is always taken from the content, whatever ``meta`` says.
    """
    body = content.encode()
    meta = replace(meta, file_size=len(body))
    yield encode_header(meta)
    if body:
        yield body + block_padding(len(body))


def encode_files(entries: Iterable[Entry]) -> Iterator[bytes]:
    """Header and body chunks for ``entries`` in order, without the terminator."""
    for meta, content in entries:
        yield from encode_entry(meta, content)


def encode_text_file(filename: str, text: str, metadata: MetaData = DEFAULT_METADATA) -> Iterator[bytes]:
    return encode_entry(replace(metadata, filename=filename), Text(text))


def encode_text_files(files: Iterable[Tuple[str, str]], metadata: MetaData = DEFAULT_METADATA) -> Iterator[bytes]:
    for filename, text in files:
        yield from encode_text_file(filename, text, metadata)


def create_archive(entries: Iterable[Entry]) -> bytes:
    """Encode ``entries`` into a complete archive, terminator included."""
    return b"".join(encode_files(entries)) + TERMINATOR


def write_archive(entries: Iterable[Entry], f: BinaryIO) -> int:
    """Stream a complete archive to ``f``; returns the number of bytes written."""
    total = 0
    for chunk in encode_files(entries):
        f.write(chunk)
        total += len(chunk)
    f.write(TERMINATOR)
    return total + len(TERMINATOR)


class ArchiveWriter:
    """Incremental writer producing a USTAR archive on a path or binary stream."""

    def __init__(self, out: Union[str, os.PathLike, BinaryIO], split_long_paths: bool = True):
        self.out = out
        self.f: Optional[BinaryIO] = None
        self._owns_file = False
        self.split_long_paths = split_long_paths
        self.entries: List[MetaData] = []
        self.bytes_written = 0
        self.finalized = False

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def open(self):
        if self.f is not None:
            return
        if isinstance(self.out, (str, os.PathLike)):
            self.f = open(self.out, "wb")
            self._owns_file = True
        else:
            self.f = self.out

    def close(self):
        if self.f is not None:
            if self._owns_file:
                self.f.close()
            self.f = None

    def add(self, meta: MetaData, content: Content) -> MetaData:
        """Append one entry as given; returns the metadata actually written."""
        if self.f is None:
            raise RuntimeError("Archive not open")
        if self.finalized:
            raise RuntimeError("Archive already finalized")
        written = replace(meta, file_size=len(content.encode()))
        for chunk in encode_entry(written, content):
            self.f.write(chunk)
            self.bytes_written += len(chunk)
        self.entries.append(written)
        logger.debug("added %r (%d bytes)", written.filename, written.file_size)
        return written

    def add_text(self, arc_path: str, text: str, metadata: Optional[MetaData] = None) -> MetaData:
        return self.add(self._named(arc_path, metadata), Text(text))

    def add_bytes(self, arc_path: str, data: bytes, metadata: Optional[MetaData] = None) -> MetaData:
        return self.add(self._named(arc_path, metadata), Binary(data))

    def add_file(self, arc_path: str, fs_path: str, mode: Optional[int] = None) -> MetaData:
        """Store a filesystem file, taking permissions, ids and mtime from its stat."""
        st = os.stat(fs_path, follow_symlinks=True)
        with open(fs_path, "rb") as f:
            data = f.read()
        meta = replace(
            DEFAULT_METADATA,
            mode=Mode.from_bits((st.st_mode & 0o7777) if mode is None else mode),
            owner_id=st.st_uid,
            group_id=st.st_gid,
            last_modification_time=int(st.st_mtime),
        )
        return self.add(self._named(arc_path, meta), Binary(data))

    def add_symlink(self, arc_path: str, target: str) -> MetaData:
        """Record a symbolic link pointing to ``target``."""
        meta = replace(DEFAULT_METADATA, link_indicator=LinkIndicator.SYMBOLIC_LINK, linked_file_name=target)
        return self.add(self._named(arc_path, meta), Binary(b""))

    def finalize(self):
        """Write the two terminating null blocks. Further adds are rejected."""
        if self.f is None:
            raise RuntimeError("Archive not open")
        if self.finalized:
            return
        self.f.write(TERMINATOR)
        self.bytes_written += len(TERMINATOR)
        self.finalized = True
        logger.debug("finalized archive: %d entries, %d bytes", len(self.entries), self.bytes_written)

    # internals
    def _named(self, arc_path: str, metadata: Optional[MetaData]) -> MetaData:
        path = norm_path(arc_path)
        prefix = ""
        if self.split_long_paths:
            path, prefix = split_long_path(path)
        return replace(metadata or DEFAULT_METADATA, filename=path, file_name_prefix=prefix)
