from __future__ import annotations

import enum
import logging
from typing import List, Optional, Tuple

from .blocks import BlockKind, classify_block, padded_size
from .buffer import ByteCursor
from .constants import BLOCK_SIZE
from .content import Entry, classify_content, materialize
from .errors import ChecksumMismatch
from .header import HeaderInfo, decode_header, inspect_header

logger = logging.getLogger(__name__)


class DecoderState(enum.Enum):
    START = "start"
    PROCESSING = "processing"
    END_OF_DATA = "end_of_data"  # terminal


def next_state(kind: BlockKind) -> DecoderState:
    if kind is BlockKind.HEADER:
        return DecoderState.PROCESSING
    return DecoderState.END_OF_DATA


class ArchiveReader:
    """Block-by-block decoder over an in-memory archive.

    Each step reads one block and classifies it. A header block is followed
    by its padded body, which becomes an entry; a null or unrecognized block
    ends decoding and is itself discarded, as is everything after it.

    Decoded metadata carries only the filename and size, every other field
    is the default value. ``headers()`` gives the full view of each header.
    """

    def __init__(self, data: bytes):
        self.data = bytes(data)
        self.cursor = ByteCursor(self.data)
        self.state = DecoderState.START
        self.entries: List[Entry] = []
        self.header_offsets: List[int] = []
        # Why decoding stopped (diagnostics only)
        self.stop_kind: Optional[BlockKind] = None
        self.stop_offset: Optional[int] = None

    @classmethod
    def from_path(cls, path: str) -> "ArchiveReader":
        with open(path, "rb") as f:
            return cls(f.read())

    @property
    def done(self) -> bool:
        return self.state is DecoderState.END_OF_DATA

    def step(self) -> DecoderState:
        """Consume one header (with its body) or the terminal block."""
        if self.done:
            return self.state
        offset = self.cursor.offset
        block = self.cursor.read(BLOCK_SIZE)
        kind = classify_block(block)
        self.state = next_state(kind)
        if kind is not BlockKind.HEADER:
            self._stop(kind, offset)
            return self.state

        meta, _ext = decode_header(block)
        body = self.cursor.read_exact(padded_size(meta.file_size))
        if body is None:
            logger.debug(
                "body of %r truncated at offset %d (%d bytes left, %d expected)",
                meta.filename,
                offset,
                self.cursor.remaining(),
                padded_size(meta.file_size),
            )
            self.state = DecoderState.END_OF_DATA
            self._stop(BlockKind.ERROR, offset)
            return self.state
        content = materialize(classify_content(meta.filename), body, meta.file_size)
        self.entries.append((meta, content))
        self.header_offsets.append(offset)
        logger.debug("entry %r (%d bytes) at offset %d", meta.filename, meta.file_size, offset)
        return self.state

    def read_all(self) -> List[Entry]:
        while not self.done:
            self.step()
        return self.entries

    def headers(self) -> List[Tuple[int, HeaderInfo]]:
        """(offset, full header view) for every decoded entry."""
        self.read_all()
        return [(off, inspect_header(self.data[off : off + BLOCK_SIZE])) for off in self.header_offsets]

    def verify_headers(self, strict: bool = False) -> List[Tuple[int, HeaderInfo]]:
        """
        Recompute the checksum of every header reached by decoding.

        Returns the (offset, header) pairs whose stored checksum does not
        match. With ``strict`` the first mismatch raises ``ChecksumMismatch``.
        """
        bad: List[Tuple[int, HeaderInfo]] = []
        for off, info in self.headers():
            if info.checksum_ok:
                continue
            if strict:
                raise ChecksumMismatch(info.path, off, info.stored_checksum, info.computed_checksum)
            bad.append((off, info))
        return bad

    # internals
    def _stop(self, kind: BlockKind, offset: int) -> None:
        self.stop_kind = kind
        self.stop_offset = offset
        if kind is BlockKind.ERROR:
            logger.debug("unrecognized block at offset %d; decoding stopped after %d entries", offset, len(self.entries))
        else:
            logger.debug("terminator at offset %d", offset)


def extract_archive(data: bytes) -> List[Entry]:
    """Decode ``data`` into (metadata, content) pairs in archive order."""
    return ArchiveReader(data).read_all()
