from __future__ import annotations

import enum
import stat
from dataclasses import dataclass, field, replace
from typing import FrozenSet

from .constants import DEFAULT_MODE, TYPE_NORMAL_FILE, TYPE_HARD_LINK, TYPE_SYMBOLIC_LINK


@dataclass(frozen=True)
class Permissions:
    read: bool = False
    write: bool = False
    execute: bool = False

    def digit(self) -> int:
        return 4 * self.read + 2 * self.write + 1 * self.execute

    @classmethod
    def from_digit(cls, d: int) -> "Permissions":
        return cls(read=bool(d & 4), write=bool(d & 2), execute=bool(d & 1))


class SpecialBit(enum.Enum):
    SETUID = stat.S_ISUID
    SETGID = stat.S_ISGID
    STICKY = stat.S_ISVTX


@dataclass(frozen=True)
class Mode:
    """Permission sets for owner, group and other, plus special bits.

    Special bits are part of the model but are not written to the header
    mode field (see ``header.encode_mode``).
    """

    owner: Permissions = Permissions()
    group: Permissions = Permissions()
    other: Permissions = Permissions()
    special: FrozenSet[SpecialBit] = frozenset()

    @classmethod
    def from_bits(cls, bits: int) -> "Mode":
        return cls(
            owner=Permissions.from_digit((bits >> 6) & 0o7),
            group=Permissions.from_digit((bits >> 3) & 0o7),
            other=Permissions.from_digit(bits & 0o7),
            special=frozenset(b for b in SpecialBit if bits & b.value),
        )

    def to_bits(self) -> int:
        bits = (self.owner.digit() << 6) | (self.group.digit() << 3) | self.other.digit()
        for b in self.special:
            bits |= b.value
        return bits


class LinkIndicator(enum.Enum):
    NORMAL_FILE = TYPE_NORMAL_FILE
    HARD_LINK = TYPE_HARD_LINK
    SYMBOLIC_LINK = TYPE_SYMBOLIC_LINK


@dataclass(frozen=True)
class MetaData:
    filename: str = ""
    mode: Mode = field(default_factory=lambda: Mode.from_bits(DEFAULT_MODE))
    owner_id: int = 0
    group_id: int = 0
    file_size: int = 0
    last_modification_time: int = 0  # Unix epoch seconds
    link_indicator: LinkIndicator = LinkIndicator.NORMAL_FILE
    linked_file_name: str = ""
    user_name: str = ""
    group_name: str = ""
    file_name_prefix: str = ""


DEFAULT_METADATA = MetaData()


def default_metadata(filename: str, file_size: int = 0) -> MetaData:
    """``DEFAULT_METADATA`` with the per-entry fields filled in."""
    return replace(DEFAULT_METADATA, filename=filename, file_size=file_size)
