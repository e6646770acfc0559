"""Logical object paths.

An :class:`ObjectPath` is a slash-delimited sequence of segments relative to a
table's storage root. Empty segments carry no meaning, so ``"a//b/"`` and ``"a/b"``
are the same path. Equality and ordering compare segment by segment.
"""

from dataclasses import dataclass
from typing import Final, Union

from hdfs_store.exceptions import InvalidPathError

__all__ = ("DELIMITER", "ObjectPath")

DELIMITER: Final[str] = "/"
_ILLEGAL_SEGMENTS: Final[frozenset[str]] = frozenset((".", ".."))


def _check_segment(segment: str) -> str:
    if DELIMITER in segment:
        msg = f"Path segment {segment!r} contains the delimiter"
        raise InvalidPathError(msg)
    if segment in _ILLEGAL_SEGMENTS:
        msg = f"Path segment {segment!r} is not allowed"
        raise InvalidPathError(msg)
    return segment


@dataclass(frozen=True, order=True)
class ObjectPath:
    """Immutable logical path made of non-empty segments."""

    parts: "tuple[str, ...]" = ()

    def __post_init__(self) -> None:
        for segment in self.parts:
            if not segment:
                msg = "Path segments must not be empty"
                raise InvalidPathError(msg)
            _check_segment(segment)

    @classmethod
    def parse(cls, path: "Union[str, ObjectPath]") -> "ObjectPath":
        """Parse a slash-delimited string, dropping empty segments."""
        if isinstance(path, ObjectPath):
            return path
        return cls(tuple(segment for segment in path.split(DELIMITER) if segment))

    @classmethod
    def from_parts(cls, *parts: str) -> "ObjectPath":
        return cls(tuple(part for part in parts if part))

    @property
    def is_root(self) -> bool:
        return not self.parts

    @property
    def filename(self) -> "str | None":
        return self.parts[-1] if self.parts else None

    @property
    def parent(self) -> "ObjectPath":
        return ObjectPath(self.parts[:-1])

    def child(self, segment: str) -> "ObjectPath":
        if not segment:
            return self
        return ObjectPath((*self.parts, _check_segment(segment)))

    def __truediv__(self, other: "Union[str, ObjectPath]") -> "ObjectPath":
        return ObjectPath((*self.parts, *ObjectPath.parse(other).parts))

    def prefix_matches(self, prefix: "ObjectPath") -> bool:
        """Whether ``prefix`` is a segment-wise prefix of this path (or equal to it)."""
        return self.parts[: len(prefix.parts)] == prefix.parts

    def relative_to(self, prefix: "ObjectPath") -> "ObjectPath":
        if not self.prefix_matches(prefix):
            msg = f"{self} is not below {prefix}"
            raise InvalidPathError(msg)
        return ObjectPath(self.parts[len(prefix.parts) :])

    def __str__(self) -> str:
        return DELIMITER.join(self.parts)

    def __repr__(self) -> str:
        return f"ObjectPath({str(self)!r})"
