class UstarError(Exception):
    """Base class for ustar-specific errors."""


# Header integrity
class ChecksumMismatch(UstarError):
    def __init__(self, filename: str, offset: int, stored: int, computed: int):
        super().__init__(
            f"header checksum mismatch for {filename!r} at offset {offset}: stored {stored}, computed {computed}"
        )
        self.filename = filename
        self.offset = offset
        self.stored = stored
        self.computed = computed


# Archive paths
class UnsafePathError(UstarError, ValueError):
    pass


class PathTooLongError(UstarError, ValueError):
    pass
