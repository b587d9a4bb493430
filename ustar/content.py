from __future__ import annotations

"""
Entry payloads and the text/binary decision made when decoding.

Text and Binary differ in how a decoded body is materialized: text is cut
back to the recorded size, binary keeps the NUL padding up to the block
boundary.
"""

import enum
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from .constants import TEXT_EXTENSIONS
from .metadata import MetaData


@dataclass(frozen=True)
class Text:
    text: str

    def encode(self) -> bytes:
        return self.text.encode("utf-8")

    @classmethod
    def from_body(cls, body: bytes, file_size: int) -> "Text":
        return cls(body[:file_size].decode("utf-8", errors="replace"))


@dataclass(frozen=True)
class Binary:
    data: bytes

    def encode(self) -> bytes:
        return bytes(self.data)

    @classmethod
    def from_body(cls, body: bytes, file_size: int) -> "Binary":
        # padding retained
        return cls(bytes(body))


Content = Union[Text, Binary]
Entry = Tuple[MetaData, Content]


class ContentKind(enum.Enum):
    TEXT = "text"
    BINARY = "binary"


def file_extension(filename: str) -> Optional[str]:
    """Text after the final ``.`` of ``filename``; None when there is no dot."""
    _head, dot, ext = filename.rpartition(".")
    if not dot:
        return None
    return ext


def classify_content(filename: str) -> ContentKind:
    if file_extension(filename) in TEXT_EXTENSIONS:
        return ContentKind.TEXT
    return ContentKind.BINARY


def materialize(kind: ContentKind, body: bytes, file_size: int) -> Content:
    if kind is ContentKind.TEXT:
        return Text.from_body(body, file_size)
    return Binary.from_body(body, file_size)
