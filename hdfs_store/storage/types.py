"""Value types exchanged through the object storage contract."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from hdfs_store.storage.path import ObjectPath

__all__ = (
    "GetOptions",
    "GetResult",
    "ListResult",
    "ObjectMeta",
    "PutMode",
    "PutOptions",
    "PutResult",
    "StorageCapabilities",
)


@dataclass(frozen=True)
class ObjectMeta:
    """Metadata of a stored object. A fresh read always produces a new instance."""

    location: ObjectPath
    size: int
    last_modified: datetime
    e_tag: Optional[str] = None
    version: Optional[str] = None


class PutMode(Enum):
    """How a put treats an existing object."""

    OVERWRITE = "overwrite"
    CREATE = "create"
    UPDATE = "update"


@dataclass(frozen=True)
class PutOptions:
    mode: PutMode = PutMode.OVERWRITE


@dataclass(frozen=True)
class PutResult:
    e_tag: Optional[str] = None
    version: Optional[str] = None


@dataclass(frozen=True)
class GetOptions:
    """Conditions and projections applied to a read.

    ``range`` is a half-open ``(start, end)`` byte span. ``head`` skips the payload.
    """

    range: "Optional[tuple[int, int]]" = None
    head: bool = False
    if_match: Optional[str] = None
    if_none_match: Optional[str] = None
    if_modified_since: Optional[datetime] = None
    if_unmodified_since: Optional[datetime] = None


@dataclass(frozen=True)
class GetResult:
    meta: ObjectMeta
    data: bytes
    range: "tuple[int, int]"

    def bytes(self) -> bytes:
        return self.data


@dataclass(frozen=True)
class ListResult:
    """One level of a directory-style listing."""

    common_prefixes: "list[ObjectPath]" = field(default_factory=list)
    objects: "list[ObjectMeta]" = field(default_factory=list)


@dataclass(frozen=True)
class StorageCapabilities:
    """Operations a backend can honour, known before any transfer starts."""

    supports_multipart_upload: bool = False
    supports_atomic_rename: bool = True
    supports_copy_if_not_exists: bool = True
    supports_conditional_put: bool = True
    supports_conditional_update: bool = False
    supports_range_reads: bool = True
