from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Tuple

from .checksum import encode_checksum, header_checksum, stored_checksum
from .constants import (
    BLOCK_SIZE,
    CHECKSUM_FIELD,
    DEVMAJOR_FIELD,
    DEVMINOR_FIELD,
    GID_FIELD,
    GNAME_FIELD,
    ID_DIGITS,
    LINKNAME_FIELD,
    MAGIC_FIELD,
    MODE_FIELD,
    MTIME_DIGITS,
    MTIME_FIELD,
    NAME_FIELD,
    NUL,
    PREFIX_FIELD,
    SIZE_DIGITS,
    SIZE_FIELD,
    TYPEFLAG_FIELD,
    UID_FIELD,
    UNAME_FIELD,
    USTAR_MAGIC,
    USTAR_VERSION,
    VERSION_FIELD,
)
from .content import file_extension
from .metadata import DEFAULT_METADATA, MetaData, Mode
from .octal import encode_octal, decode_octal


def _field(block: bytes, layout: Tuple[int, int]) -> bytes:
    off, width = layout
    return block[off : off + width]


def _put(buf: bytearray, layout: Tuple[int, int], value: bytes) -> None:
    off, width = layout
    if len(value) != width:
        raise ValueError(f"field at offset {off} needs {width} bytes, got {len(value)}")
    buf[off : off + width] = value


def _cstr(raw: bytes) -> str:
    return raw.split(NUL, 1)[0].decode("utf-8", errors="replace")


def encode_string(value: str, width: int) -> bytes:
    """UTF-8 ``value`` truncated to ``width`` bytes, NUL padded on the right."""
    data = value.encode("utf-8")[:width]
    return data + NUL * (width - len(data))


def encode_mode(mode: Mode) -> bytes:
    # "000" + owner/group/other digits + space + NUL; special bits are not written
    digits = "".join(str(p.digit()) for p in (mode.owner, mode.group, mode.other))
    return b"000" + digits.encode("ascii") + b" " + NUL


def encode_id(value: int) -> bytes:
    return encode_octal(ID_DIGITS, value) + b" " + NUL


def encode_header(meta: MetaData) -> bytes:
    """Build the 512-byte USTAR header block for ``meta``."""
    h = bytearray(BLOCK_SIZE)
    _put(h, NAME_FIELD, encode_string(meta.filename, NAME_FIELD[1]))
    _put(h, MODE_FIELD, encode_mode(meta.mode))
    _put(h, UID_FIELD, encode_id(meta.owner_id))
    _put(h, GID_FIELD, encode_id(meta.group_id))
    _put(h, SIZE_FIELD, encode_octal(SIZE_DIGITS, meta.file_size) + b" ")
    _put(h, MTIME_FIELD, encode_octal(MTIME_DIGITS, meta.last_modification_time) + b" ")
    _put(h, TYPEFLAG_FIELD, meta.link_indicator.value)
    _put(h, LINKNAME_FIELD, encode_string(meta.linked_file_name, LINKNAME_FIELD[1]))
    _put(h, MAGIC_FIELD, USTAR_MAGIC + NUL)
    _put(h, VERSION_FIELD, USTAR_VERSION)
    _put(h, UNAME_FIELD, encode_string(meta.user_name, UNAME_FIELD[1]))
    _put(h, GNAME_FIELD, encode_string(meta.group_name, GNAME_FIELD[1]))
    _put(h, DEVMAJOR_FIELD, NUL * DEVMAJOR_FIELD[1])
    _put(h, DEVMINOR_FIELD, NUL * DEVMINOR_FIELD[1])
    _put(h, PREFIX_FIELD, encode_string(meta.file_name_prefix, PREFIX_FIELD[1]))
    _put(h, CHECKSUM_FIELD, encode_checksum(header_checksum(h)))
    return bytes(h)


def decode_header(block: bytes) -> Tuple[MetaData, Optional[str]]:
    """Recover filename, size and the filename's extension from a header.

    Only these facts are read; every other field of the returned metadata is
    the ``DEFAULT_METADATA`` value. Use ``inspect_header`` to look at the
    remaining fields.
    """
    filename = _cstr(_field(block, NAME_FIELD))
    size = decode_octal(_field(block, SIZE_FIELD))
    meta = replace(DEFAULT_METADATA, filename=filename, file_size=size)
    return meta, file_extension(filename)


@dataclass
class HeaderInfo:
    filename: str
    mode: int
    owner_id: int
    group_id: int
    file_size: int
    mtime: int
    typeflag: str
    linked_file_name: str
    magic: bytes
    version: bytes
    user_name: str
    group_name: str
    file_name_prefix: str
    stored_checksum: int
    computed_checksum: int

    @property
    def checksum_ok(self) -> bool:
        return self.stored_checksum == self.computed_checksum

    @property
    def path(self) -> str:
        if self.file_name_prefix:
            return f"{self.file_name_prefix}/{self.filename}"
        return self.filename

    def mode_string(self) -> str:
        """ls-style permission string, e.g. ``-rw-r--r--``."""
        type_char = {"0": "-", "\x00": "-", "1": "h", "2": "l", "5": "d"}.get(self.typeflag, "-")
        perms = ""
        for shift in (6, 3, 0):
            bits = (self.mode >> shift) & 0o7
            perms += "r" if bits & 4 else "-"
            perms += "w" if bits & 2 else "-"
            perms += "x" if bits & 1 else "-"
        return type_char + perms


def inspect_header(block: bytes) -> HeaderInfo:
    """Read every field of a header block.

    A diagnostic view used for listing and verification; archive extraction
    goes through ``decode_header`` only.
    """
    if len(block) != BLOCK_SIZE:
        raise ValueError(f"header block must be {BLOCK_SIZE} bytes, got {len(block)}")
    typeflag = _field(block, TYPEFLAG_FIELD).decode("latin-1")
    return HeaderInfo(
        filename=_cstr(_field(block, NAME_FIELD)),
        mode=decode_octal(_field(block, MODE_FIELD)),
        owner_id=decode_octal(_field(block, UID_FIELD)),
        group_id=decode_octal(_field(block, GID_FIELD)),
        file_size=decode_octal(_field(block, SIZE_FIELD)),
        mtime=decode_octal(_field(block, MTIME_FIELD)),
        typeflag=typeflag,
        linked_file_name=_cstr(_field(block, LINKNAME_FIELD)),
        magic=_field(block, MAGIC_FIELD),
        version=_field(block, VERSION_FIELD),
        user_name=_cstr(_field(block, UNAME_FIELD)),
        group_name=_cstr(_field(block, GNAME_FIELD)),
        file_name_prefix=_cstr(_field(block, PREFIX_FIELD)),
        stored_checksum=stored_checksum(block),
        computed_checksum=header_checksum(block),
    )
