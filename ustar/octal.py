"""
Fixed-width ASCII octal fields.

Numbers in a USTAR header are stored as zero-padded base-8 digits followed
by field-specific terminator bytes (see ``header.py``). This module only
deals with the digits.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

_STRIP_BYTES = b"\x00 \t\r\n"
_OCTAL_DIGITS = b"01234567"


def encode_octal(width: int, value: int) -> bytes:
    """Render ``value`` as exactly ``width`` octal digits.

    Values needing more than ``width`` digits keep only the low-order
    ``width`` digits; no error is raised, callers must keep values in range.
    """
    if value < 0:
        raise ValueError("octal fields cannot hold negative values")
    digits = f"{value:o}"
    if len(digits) > width:
        logger.debug("octal value %d truncated to %d digits", value, width)
        digits = digits[-width:]
    return digits.rjust(width, "0").encode("ascii")


def decode_octal(field: bytes) -> int:
    """Parse an octal header field.

    Terminator bytes, surrounding whitespace and leading zeros are stripped
    before the remaining digits are read as base 8. Empty or malformed
    fields decode to 0; anything but the digits 0-7 (signs, separators)
    counts as malformed, so the result is never negative.
    """
    digits = field.strip(_STRIP_BYTES).lstrip(b"0")
    if not digits:
        return 0
    if digits.strip(_OCTAL_DIGITS):
        logger.debug("malformed octal field %r decoded as 0", field)
        return 0
    return int(digits, 8)
