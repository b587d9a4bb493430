"""
ustar: a codec for the USTAR tape-archive format.

Features:

- Encode named text or binary items into 512-byte header and body blocks
  terminated by two null blocks (``create_archive``, ``ArchiveWriter``).
- Decode an archive buffer back into (metadata, content) pairs with a small
  block-classifying state machine (``extract_archive``, ``ArchiveReader``).
- Header inspection and checksum verification, plus a ``ustar`` CLI to pack,
  list, unpack and verify archives.

Decoding recovers each entry's filename and size only; the other metadata
fields come back as ``DEFAULT_METADATA``. Bodies of ``.txt``/``.text``/``.tex``
files decode to exact text, all others to bytes that keep their NUL padding.
"""

__version__ = "0.1"

from .content import Binary, ContentKind, Text, classify_content, file_extension
from .metadata import (
    DEFAULT_METADATA,
    LinkIndicator,
    MetaData,
    Mode,
    Permissions,
    SpecialBit,
    default_metadata,
)
from .reader import ArchiveReader, extract_archive
from .writer import (
    ArchiveWriter,
    create_archive,
    encode_entry,
    encode_files,
    encode_text_file,
    encode_text_files,
    write_archive,
)

__all__ = [
    "ArchiveReader",
    "ArchiveWriter",
    "Binary",
    "ContentKind",
    "DEFAULT_METADATA",
    "LinkIndicator",
    "MetaData",
    "Mode",
    "Permissions",
    "SpecialBit",
    "Text",
    "classify_content",
    "create_archive",
    "default_metadata",
    "encode_entry",
    "encode_files",
    "encode_text_file",
    "encode_text_files",
    "extract_archive",
    "file_extension",
    "write_archive",
]
