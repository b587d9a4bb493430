from __future__ import annotations

from .constants import CHECKSUM_FIELD, CHECKSUM_DIGITS
from .octal import encode_octal, decode_octal


_CHK_OFF, _CHK_LEN = CHECKSUM_FIELD
_BLANK = 32 * _CHK_LEN  # eight ASCII spaces


def header_checksum(header: bytes) -> int:
    """Unsigned byte sum of ``header`` with the checksum field taken as spaces."""
    return sum(header[:_CHK_OFF]) + _BLANK + sum(header[_CHK_OFF + _CHK_LEN :])


def encode_checksum(value: int) -> bytes:
    # 6 octal digits, NUL, space
    return encode_octal(CHECKSUM_DIGITS, value) + b"\x00 "


def stored_checksum(header: bytes) -> int:
    return decode_octal(header[_CHK_OFF : _CHK_OFF + _CHK_LEN])


def verify_checksum(header: bytes) -> bool:
    """True when the checksum stored in ``header`` matches its contents."""
    return stored_checksum(header) == header_checksum(header)
