"""Tests for InstrumentedObjectStore base class."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import pytest

from hdfs_store.exceptions import NotSupportedError, ObjectNotFoundError, RangeError, StorageIOError
from hdfs_store.storage.backends.base import InstrumentedObjectStore, ObjectListing
from hdfs_store.storage.path import ObjectPath
from hdfs_store.storage.types import GetOptions, GetResult, ListResult, ObjectMeta, PutOptions, PutResult

pytestmark = pytest.mark.anyio

_MODIFIED = datetime(2024, 1, 1, tzinfo=timezone.utc)


class MockBackend(InstrumentedObjectStore):
    """In-memory backend for exercising the base class."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__("MockBackend", **kwargs)
        self.objects: dict[ObjectPath, bytes] = {}
        self.calls: list[str] = []

    def _meta(self, location: ObjectPath) -> ObjectMeta:
        if location not in self.objects:
            raise FileNotFoundError(str(location))
        return ObjectMeta(location=location, size=len(self.objects[location]), last_modified=_MODIFIED)

    def _put(self, location: ObjectPath, payload: bytes, options: PutOptions) -> PutResult:
        self.calls.append("put")
        self.objects[location] = payload
        return PutResult(e_tag="1")

    def _get(self, location: ObjectPath, options: GetOptions) -> GetResult:
        self.calls.append("get")
        meta = self._meta(location)
        start, end = options.range or (0, meta.size)
        return GetResult(meta=meta, data=self.objects[location][start:end], range=(start, end))

    def _head(self, location: ObjectPath) -> ObjectMeta:
        self.calls.append("head")
        return self._meta(location)

    def _delete(self, location: ObjectPath) -> None:
        self.calls.append("delete")
        self._meta(location)
        del self.objects[location]

    def _list(self, prefix: ObjectPath) -> list[ObjectMeta]:
        self.calls.append("list")
        return [self._meta(location) for location in sorted(self.objects) if location.prefix_matches(prefix)]

    def _list_with_delimiter(self, prefix: ObjectPath) -> ListResult:
        self.calls.append("list_with_delimiter")
        return ListResult()

    def _copy(self, source: ObjectPath, destination: ObjectPath) -> None:
        self.calls.append("copy")

    def _copy_if_not_exists(self, source: ObjectPath, destination: ObjectPath) -> None:
        self.calls.append("copy_if_not_exists")

    def _rename_if_not_exists(self, source: ObjectPath, destination: ObjectPath) -> None:
        self.calls.append("rename_if_not_exists")
        raise OSError("namenode unreachable")


def test_backend_type_from_class_name() -> None:
    assert MockBackend().backend_type == "mock"


def test_logger_is_namespaced() -> None:
    assert MockBackend().logger.name == "hdfs_store.storage.MockBackend"


async def test_put_and_get_delegate_to_primitives() -> None:
    store = MockBackend()
    await store.put(ObjectPath.parse("a"), b"abc")
    result = await store.get(ObjectPath.parse("a"))
    assert result.data == b"abc"
    assert store.calls == ["put", "get"]


async def test_string_paths_are_parsed() -> None:
    store = MockBackend()
    await store.put("a//b/", b"abc")  # type: ignore[arg-type]
    assert ObjectPath.parse("a/b") in store.objects


async def test_native_errors_are_classified() -> None:
    store = MockBackend()
    with pytest.raises(ObjectNotFoundError) as exc_info:
        await store.head(ObjectPath.parse("missing"))
    assert exc_info.value.operation == "head"
    assert exc_info.value.backend == "mock"

    with pytest.raises(StorageIOError, match="namenode unreachable"):
        await store.rename_if_not_exists(ObjectPath.parse("a"), ObjectPath.parse("b"))


async def test_invalid_range_rejected_before_native_call() -> None:
    store = MockBackend()
    with pytest.raises(RangeError):
        await store.get_range(ObjectPath.parse("a"), -1, 2)
    assert store.calls == []


async def test_listing_is_lazy() -> None:
    store = MockBackend()
    listing = store.list(ObjectPath.parse("a"))
    assert isinstance(listing, ObjectListing)
    assert store.calls == []
    await store.put(ObjectPath.parse("a/x"), b"1")
    await store.put(ObjectPath.parse("b/y"), b"2")
    assert [str(meta.location) for meta in await listing.collect()] == ["a/x"]
    assert [str(meta.location) async for meta in listing] == ["a/x"]
    assert store.calls.count("list") == 2


async def test_put_multipart_fails_without_writing() -> None:
    store = MockBackend()
    with pytest.raises(NotSupportedError, match="Multipart upload"):
        await store.put_multipart_opts(ObjectPath.parse("big"))
    assert store.calls == []
    assert store.objects == {}


async def test_operations_logged_when_enabled(caplog: pytest.LogCaptureFixture) -> None:
    store = MockBackend(log_storage_operations=True)
    with caplog.at_level(logging.DEBUG, logger="hdfs_store"):
        await store.put(ObjectPath.parse("a"), b"abc")
    messages = [record.getMessage() for record in caplog.records]
    assert "Starting put on a" in messages
    assert "Completed put on a" in messages


async def test_operations_not_logged_by_default(caplog: pytest.LogCaptureFixture) -> None:
    store = MockBackend()
    with caplog.at_level(logging.DEBUG, logger="hdfs_store"):
        await store.put(ObjectPath.parse("a"), b"abc")
    assert not [record for record in caplog.records if "put" in record.getMessage()]


async def test_failures_always_logged(caplog: pytest.LogCaptureFixture) -> None:
    store = MockBackend()
    with caplog.at_level(logging.ERROR, logger="hdfs_store"), pytest.raises(ObjectNotFoundError):
        await store.delete(ObjectPath.parse("missing"))
    assert any(record.getMessage().startswith("Failed delete on missing") for record in caplog.records)
