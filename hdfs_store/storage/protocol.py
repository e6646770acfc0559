from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import AsyncIterable

    from hdfs_store.storage.path import ObjectPath
    from hdfs_store.storage.types import (
        GetOptions,
        GetResult,
        ListResult,
        ObjectMeta,
        PutOptions,
        PutResult,
        StorageCapabilities,
    )
    from hdfs_store.typing import StorageOptions

__all__ = ("LogStoreFactory", "LogStoreProtocol", "ObjectStoreFactory", "ObjectStoreProtocol")


@runtime_checkable
class ObjectStoreProtocol(Protocol):
    """Generic object storage contract consumed by the table engine.

    Every path is a logical path relative to the store's root. All operations are
    asynchronous and may run concurrently against the same instance.
    """

    capabilities: "StorageCapabilities"

    async def put(self, location: "ObjectPath", payload: bytes) -> "PutResult":
        """Write ``payload`` as the full content of the object."""
        ...

    async def put_opts(self, location: "ObjectPath", payload: bytes, options: "PutOptions") -> "PutResult":
        """Write with explicit put options."""
        ...

    async def get(self, location: "ObjectPath") -> "GetResult":
        """Read the full object."""
        ...

    async def get_opts(self, location: "ObjectPath", options: "GetOptions") -> "GetResult":
        """Read with conditions and an optional byte range."""
        ...

    async def get_range(self, location: "ObjectPath", start: int, end: int) -> bytes:
        """Read the half-open byte span ``[start, end)``."""
        ...

    async def head(self, location: "ObjectPath") -> "ObjectMeta":
        """Return object metadata without transferring content."""
        ...

    async def delete(self, location: "ObjectPath") -> None:
        """Remove an object."""
        ...

    def list(self, prefix: "ObjectPath | None" = None) -> "AsyncIterable[ObjectMeta]":
        """Lazily enumerate every object below ``prefix``."""
        ...

    async def list_with_delimiter(self, prefix: "ObjectPath | None" = None) -> "ListResult":
        """List the immediate children of ``prefix``."""
        ...

    async def copy(self, source: "ObjectPath", destination: "ObjectPath") -> None:
        """Copy an object, replacing any existing destination."""
        ...

    async def copy_if_not_exists(self, source: "ObjectPath", destination: "ObjectPath") -> None:
        """Copy an object only if the destination does not exist."""
        ...

    async def rename_if_not_exists(self, source: "ObjectPath", destination: "ObjectPath") -> None:
        """Atomically move an object only if the destination does not exist."""
        ...

    async def put_multipart_opts(self, location: "ObjectPath", options: "PutOptions | None" = None) -> Any:
        """Start a multipart upload."""
        ...


@runtime_checkable
class LogStoreProtocol(Protocol):
    """Transactional log store layered on an object store."""

    def object_store(self) -> "ObjectStoreProtocol": ...

    async def read_commit_entry(self, version: int) -> "bytes | None": ...

    async def write_commit_entry(self, version: int, tmp_commit: "ObjectPath") -> None: ...

    async def get_latest_version(self, start_version: int = 0) -> int: ...


@runtime_checkable
class ObjectStoreFactory(Protocol):
    """Builds a storage backend for a URL."""

    def parse_url_opts(self, url: str, options: "StorageOptions") -> "tuple[ObjectStoreProtocol, ObjectPath]":
        """Return the backend for ``url`` and the logical path the engine treats as root."""
        ...


@runtime_checkable
class LogStoreFactory(Protocol):
    """Wraps an already-built storage backend into a log store."""

    def with_options(
        self, store: "ObjectStoreProtocol", location: str, options: "StorageOptions"
    ) -> "LogStoreProtocol":
        """Return a log store over ``store`` for the table at ``location``."""
        ...
