from __future__ import annotations

import enum

from .constants import BLOCK_SIZE, MAGIC_FIELD, NUL, USTAR_MAGIC

_NULL_BLOCK = NUL * BLOCK_SIZE
_MAGIC_OFF = MAGIC_FIELD[0]


class BlockKind(enum.Enum):
    HEADER = "header"
    NULL = "null"    # archive terminator
    ERROR = "error"  # neither a header nor a terminator


def classify_block(block: bytes) -> BlockKind:
    """Classify a 512-byte block by its magic tag or all-NUL content.

    Short blocks (a truncated archive tail) are errors.
    """
    if len(block) != BLOCK_SIZE:
        return BlockKind.ERROR
    if block[_MAGIC_OFF : _MAGIC_OFF + len(USTAR_MAGIC)] == USTAR_MAGIC:
        return BlockKind.HEADER
    if block == _NULL_BLOCK:
        return BlockKind.NULL
    return BlockKind.ERROR


def padded_size(size: int) -> int:
    """Bytes a body of ``size`` occupies on the wire: the next block multiple."""
    return -(-size // BLOCK_SIZE) * BLOCK_SIZE


def block_padding(size: int) -> bytes:
    return NUL * (padded_size(size) - size)
