# Block geometry
BLOCK_SIZE = 512
TERMINATOR_SIZE = 2 * BLOCK_SIZE  # two all-NUL blocks close the archive

NUL = b"\x00"

# Magic and version
USTAR_MAGIC = b"ustar"             # 5 bytes at offset 257, followed by NUL
USTAR_VERSION = b"00"

# Header field layout: (offset, width), offsets 0-indexed, half-open ranges
NAME_FIELD = (0, 100)
MODE_FIELD = (100, 8)
UID_FIELD = (108, 8)
GID_FIELD = (116, 8)
SIZE_FIELD = (124, 12)
MTIME_FIELD = (136, 12)
CHECKSUM_FIELD = (148, 8)
TYPEFLAG_FIELD = (156, 1)
LINKNAME_FIELD = (157, 100)
MAGIC_FIELD = (257, 6)
VERSION_FIELD = (263, 2)
UNAME_FIELD = (265, 32)
GNAME_FIELD = (297, 32)
DEVMAJOR_FIELD = (329, 8)
DEVMINOR_FIELD = (337, 8)
PREFIX_FIELD = (345, 155)

# Digits written into the fixed-width numeric fields
ID_DIGITS = 6
SIZE_DIGITS = 11
MTIME_DIGITS = 11
CHECKSUM_DIGITS = 6

# Typeflag bytes
TYPE_NORMAL_FILE = b"0"
TYPE_HARD_LINK = b"1"
TYPE_SYMBOLIC_LINK = b"2"

# Extensions whose bodies are materialized as text when decoding
TEXT_EXTENSIONS = frozenset({"text", "txt", "tex"})

# Default permission bits (rw-r--r--)
DEFAULT_MODE = 0o644
