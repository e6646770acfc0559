# ruff: noqa: PLR0904
"""Base class for instrumented storage backends.

Concrete backends implement blocking primitives (``_put``, ``_get``, ...) against their
native client. This base exposes them as the asynchronous object storage contract:
each call runs in a worker thread, native failures are classified into the storage
error taxonomy, and operations are logged with correlation tracking.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from functools import partial
from typing import TYPE_CHECKING, Any, Callable, TypeVar

from hdfs_store.exceptions import NotSupportedError, RangeError, StorageError
from hdfs_store.storage.errors import execute_storage_operation
from hdfs_store.storage.path import ObjectPath
from hdfs_store.storage.types import GetOptions, PutOptions, StorageCapabilities
from hdfs_store.utils.logging import get_correlation_id, get_logger
from hdfs_store.utils.sync_tools import async_

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from anyio import CapacityLimiter

    from hdfs_store.storage.types import GetResult, ListResult, ObjectMeta, PutResult

__all__ = ("InstrumentedObjectStore", "ObjectListing")

ReturnT = TypeVar("ReturnT")


class ObjectListing:
    """Lazy, restartable listing of every object below a prefix.

    Nothing is read until iteration starts, and each new iteration lists afresh.
    """

    __slots__ = ("_prefix", "_store")

    def __init__(self, store: InstrumentedObjectStore, prefix: ObjectPath | None) -> None:
        self._store = store
        self._prefix = prefix or ObjectPath()

    async def __aiter__(self) -> AsyncIterator[ObjectMeta]:
        entries = await self._store._run("list", self._prefix, self._store._list, self._prefix)
        for meta in entries:
            yield meta

    async def collect(self) -> list[ObjectMeta]:
        return [meta async for meta in self]


class InstrumentedObjectStore(ABC):
    """Base class for asynchronous, instrumented storage backends.

    Start and success of each operation are logged only when
    ``log_storage_operations`` is enabled; failures are always logged.
    """

    capabilities: StorageCapabilities = StorageCapabilities()

    def __init__(
        self,
        backend_name: str | None = None,
        *,
        log_storage_operations: bool = False,
        limiter: CapacityLimiter | None = None,
    ) -> None:
        self.backend_name = backend_name or self.__class__.__name__
        self.log_storage_operations = log_storage_operations
        self.limiter = limiter
        self.logger = get_logger(f"storage.{self.backend_name}")

    @property
    def backend_type(self) -> str:
        return self.__class__.__name__.replace("Backend", "").lower()

    def _extra(self, path: str, **fields: Any) -> dict[str, Any]:
        fields.update(backend=self.backend_type, path=path, correlation_id=get_correlation_id())
        return {"extra_fields": fields}

    def _log_operation_start(self, operation: str, path: str) -> None:
        if self.log_storage_operations:
            self.logger.debug("Starting %s on %s", operation, path, extra=self._extra(path, operation=operation))

    def _log_operation_success(self, operation: str, path: str) -> None:
        if self.log_storage_operations:
            self.logger.info("Completed %s on %s", operation, path, extra=self._extra(path, operation=operation))

    def _log_operation_error(self, operation: str, path: str, error: StorageError) -> None:
        self.logger.error(
            "Failed %s on %s: %s",
            operation,
            path,
            error,
            extra=self._extra(path, operation=operation, error_type=type(error).__name__),
        )

    async def _run(self, operation: str, location: Any, func: Callable[..., ReturnT], *args: Any) -> ReturnT:
        path = str(location)
        self._log_operation_start(operation, path)
        try:
            result = await async_(execute_storage_operation, limiter=self.limiter)(
                partial(func, *args), backend=self.backend_type, operation=operation, path=path
            )
        except StorageError as error:
            self._log_operation_error(operation, path, error)
            raise
        self._log_operation_success(operation, path)
        return result

    # Object storage contract

    async def put(self, location: ObjectPath, payload: bytes) -> PutResult:
        return await self.put_opts(location, payload, PutOptions())

    async def put_opts(self, location: ObjectPath, payload: bytes, options: PutOptions) -> PutResult:
        return await self._run("put", location, self._put, ObjectPath.parse(location), bytes(payload), options)

    async def get(self, location: ObjectPath) -> GetResult:
        return await self.get_opts(location, GetOptions())

    async def get_opts(self, location: ObjectPath, options: GetOptions) -> GetResult:
        if options.range is not None:
            self._check_range(location, *options.range)
        return await self._run("get", location, self._get, ObjectPath.parse(location), options)

    async def get_range(self, location: ObjectPath, start: int, end: int) -> bytes:
        self._check_range(location, start, end)
        result = await self._run(
            "get_range", location, self._get, ObjectPath.parse(location), GetOptions(range=(start, end))
        )
        return result.data

    async def head(self, location: ObjectPath) -> ObjectMeta:
        return await self._run("head", location, self._head, ObjectPath.parse(location))

    async def delete(self, location: ObjectPath) -> None:
        await self._run("delete", location, self._delete, ObjectPath.parse(location))

    def list(self, prefix: ObjectPath | None = None) -> ObjectListing:
        return ObjectListing(self, ObjectPath.parse(prefix) if prefix is not None else None)

    async def list_with_delimiter(self, prefix: ObjectPath | None = None) -> ListResult:
        prefix = ObjectPath.parse(prefix) if prefix is not None else ObjectPath()
        return await self._run("list_with_delimiter", prefix, self._list_with_delimiter, prefix)

    async def copy(self, source: ObjectPath, destination: ObjectPath) -> None:
        await self._run("copy", source, self._copy, ObjectPath.parse(source), ObjectPath.parse(destination))

    async def copy_if_not_exists(self, source: ObjectPath, destination: ObjectPath) -> None:
        await self._run(
            "copy_if_not_exists",
            source,
            self._copy_if_not_exists,
            ObjectPath.parse(source),
            ObjectPath.parse(destination),
        )

    async def rename_if_not_exists(self, source: ObjectPath, destination: ObjectPath) -> None:
        await self._run(
            "rename_if_not_exists",
            source,
            self._rename_if_not_exists,
            ObjectPath.parse(source),
            ObjectPath.parse(destination),
        )

    async def put_multipart(self, location: ObjectPath) -> Any:
        return await self.put_multipart_opts(location)

    async def put_multipart_opts(self, location: ObjectPath, options: PutOptions | None = None) -> Any:
        """Multipart upload is refused up front; no data is ever written."""
        msg = f"Multipart upload is not supported by the {self.backend_type} backend"
        raise NotSupportedError(msg, backend=self.backend_type, operation="put_multipart_opts", path=str(location))

    def _check_range(self, location: ObjectPath, start: int, end: int) -> None:
        if start < 0 or end < start:
            msg = f"Invalid range {start}..{end} for {location}"
            raise RangeError(msg, backend=self.backend_type, operation="get_range", path=str(location))

    # Blocking primitives implemented by concrete backends

    @abstractmethod
    def _put(self, location: ObjectPath, payload: bytes, options: PutOptions) -> PutResult: ...

    @abstractmethod
    def _get(self, location: ObjectPath, options: GetOptions) -> GetResult: ...

    @abstractmethod
    def _head(self, location: ObjectPath) -> ObjectMeta: ...

    @abstractmethod
    def _delete(self, location: ObjectPath) -> None: ...

    @abstractmethod
    def _list(self, prefix: ObjectPath) -> list[ObjectMeta]: ...

    @abstractmethod
    def _list_with_delimiter(self, prefix: ObjectPath) -> ListResult: ...

    @abstractmethod
    def _copy(self, source: ObjectPath, destination: ObjectPath) -> None: ...

    @abstractmethod
    def _copy_if_not_exists(self, source: ObjectPath, destination: ObjectPath) -> None: ...

    @abstractmethod
    def _rename_if_not_exists(self, source: ObjectPath, destination: ObjectPath) -> None: ...
