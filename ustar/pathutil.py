from __future__ import annotations

from typing import Tuple

from .constants import NAME_FIELD, PREFIX_FIELD
from .errors import PathTooLongError, UnsafePathError


def norm_path(p: str) -> str:
    """Normalize archive paths to a canonical forward-slash form.

    Rules:
    - Convert backslashes to slashes
    - Strip leading/trailing slashes
    - Remove empty and '.' segments
    - Reject '..' segments
    """
    p = p.replace("\\", "/").strip("/")
    parts = [q for q in p.split("/") if q not in ("", ".")]
    for q in parts:
        if q == "..":
            raise UnsafePathError(f"Path may not contain '..': {p!r}")
    return "/".join(parts)


def split_long_path(path: str) -> Tuple[str, str]:
    """Split ``path`` into (name, prefix) so each fits its header field.

    Paths that already fit the name field come back with an empty prefix.
    Otherwise the split happens at the '/' that leaves the longest prefix
    still within limits.
    """
    name_max = NAME_FIELD[1]
    prefix_max = PREFIX_FIELD[1]
    if len(path.encode("utf-8")) <= name_max:
        return path, ""
    best = -1
    for i, ch in enumerate(path):
        if ch != "/":
            continue
        prefix, name = path[:i], path[i + 1 :]
        if len(prefix.encode("utf-8")) <= prefix_max and 0 < len(name.encode("utf-8")) <= name_max:
            best = i
    if best == -1:
        raise PathTooLongError(f"Path cannot be split to fit USTAR name/prefix fields: {path!r}")
    return path[best + 1 :], path[:best]
