from __future__ import annotations

from typing import Optional


class ByteCursor:
    """Forward-only reader over an in-memory archive buffer."""

    def __init__(self, data: bytes):
        self._view = memoryview(data)
        self.offset = 0

    def remaining(self) -> int:
        return len(self._view) - self.offset

    def read(self, n: int) -> bytes:
        """Up to ``n`` bytes; shorter only at the end of the buffer."""
        chunk = self._view[self.offset : self.offset + n].tobytes()
        self.offset += len(chunk)
        return chunk

    def read_exact(self, n: int) -> Optional[bytes]:
        """Exactly ``n`` bytes, or None (cursor unchanged) if fewer remain."""
        if self.remaining() < n:
            return None
        return self.read(n)
