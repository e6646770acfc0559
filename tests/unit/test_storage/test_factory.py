"""Tests for HdfsFactory and handler registration."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import fsspec
import pytest
from fsspec.implementations.local import LocalFileSystem

from hdfs_store.exceptions import ConstructionError, InvalidTableLocationError, MissingDependencyError
from hdfs_store.logstore import DefaultLogStore
from hdfs_store.storage import factory as factory_module
from hdfs_store.storage.backends import hdfs as hdfs_module
from hdfs_store.storage.backends.hdfs import HadoopFileStorageBackend, connect
from hdfs_store.storage.factory import HDFS_SCHEMES, HdfsFactory, register_handlers
from hdfs_store.storage.path import ObjectPath
from hdfs_store.storage.protocol import LogStoreFactory, ObjectStoreFactory, ObjectStoreProtocol
from hdfs_store.storage.registry import (
    logstore_factories,
    object_store_factories,
    resolve_log_store,
    resolve_object_store,
)

pytestmark = pytest.mark.anyio


def _local_factory(**kwargs: Any) -> HdfsFactory:
    return HdfsFactory(client_factory=lambda url, options: LocalFileSystem(), **kwargs)


def test_factory_satisfies_both_protocols() -> None:
    factory = _local_factory()
    assert isinstance(factory, ObjectStoreFactory)
    assert isinstance(factory, LogStoreFactory)


def test_parse_url_opts_returns_backend_at_logical_root(table_url: str, table_root: Path) -> None:
    store, root = _local_factory().parse_url_opts(table_url, {})
    assert isinstance(store, HadoopFileStorageBackend)
    assert isinstance(store, ObjectStoreProtocol)
    assert root == ObjectPath()
    assert store.root_url == f"hdfs://namenode:8020{table_root}"


def test_parse_url_opts_forwards_options_to_client(table_url: str) -> None:
    seen: list[tuple[str, Any]] = []

    def client_factory(url: str, options: Any) -> LocalFileSystem:
        seen.append((url, options))
        return LocalFileSystem()

    HdfsFactory(client_factory=client_factory).parse_url_opts(table_url, {"dfs.client.use.datanode.hostname": "true"})
    assert seen == [(table_url, {"dfs.client.use.datanode.hostname": "true"})]


def test_parse_url_opts_enables_operation_logging(table_url: str) -> None:
    store, _ = _local_factory().parse_url_opts(table_url, {"log_storage_operations": "yes"})
    assert store.log_storage_operations is True


def test_parse_url_opts_rejects_foreign_scheme(table_root: Path) -> None:
    with pytest.raises(InvalidTableLocationError) as exc_info:
        _local_factory().parse_url_opts(f"s3://bucket{table_root}", {})
    assert exc_info.value.url == f"s3://bucket{table_root}"


def test_parse_url_opts_missing_root(tmp_path: Path) -> None:
    with pytest.raises(ConstructionError):
        _local_factory().parse_url_opts(f"hdfs://namenode:8020{tmp_path}/missing", {})


def test_parse_url_opts_root_is_a_file(table_root: Path) -> None:
    (table_root / "data.parquet").write_bytes(b"PAR1")
    with pytest.raises(ConstructionError):
        _local_factory().parse_url_opts(f"hdfs://namenode:8020{table_root}/data.parquet", {})


async def test_backends_share_one_root(table_url: str, table_root: Path) -> None:
    store, _ = _local_factory().parse_url_opts(table_url, {})
    await store.put(ObjectPath.parse("_delta_log/00000000000000000000.json"), b"{}")
    assert (table_root / "_delta_log" / "00000000000000000000.json").read_bytes() == b"{}"


async def test_with_options_wraps_default_logstore(table_url: str) -> None:
    factory = _local_factory()
    store, _ = factory.parse_url_opts(table_url, {})
    log_store = factory.with_options(store, table_url, {"user": "hive"})
    assert isinstance(log_store, DefaultLogStore)
    assert log_store.object_store() is store
    assert log_store.root_uri() == table_url
    assert log_store.config.options == {"user": "hive"}


@pytest.mark.usefixtures("clean_registries")
def test_register_handlers_default_schemes() -> None:
    factory = register_handlers()
    for scheme in HDFS_SCHEMES:
        assert object_store_factories().get(scheme) is factory
        assert logstore_factories().get(scheme) is factory


@pytest.mark.usefixtures("clean_registries")
def test_register_handlers_additional_schemes() -> None:
    factory = register_handlers(["webhdfs"])
    assert object_store_factories().get_for_url("webhdfs://nn/table") is factory
    assert "webhdfs" in factory.schemes
    assert sorted(logstore_factories().schemes()) == ["hdfs", "viewfs", "webhdfs"]


@pytest.mark.usefixtures("clean_registries")
def test_register_handlers_is_idempotent() -> None:
    first = register_handlers()
    second = register_handlers()
    assert object_store_factories().get("hdfs") is second is not first
    assert len(object_store_factories()) == 2


@pytest.mark.usefixtures("clean_registries")
def test_register_handlers_uses_factory_class(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(factory_module, "HdfsFactory", lambda schemes: _local_factory(schemes=schemes))
    factory = register_handlers()
    assert factory.schemes == frozenset(HDFS_SCHEMES)


@pytest.mark.usefixtures("clean_registries")
async def test_resolve_through_registries(table_url: str) -> None:
    factory = _local_factory()
    object_store_factories().insert("hdfs", factory)
    logstore_factories().insert("hdfs", factory)

    store, root = resolve_object_store(table_url)
    assert root.is_root
    log_store = resolve_log_store(table_url)
    assert isinstance(log_store, DefaultLogStore)
    assert await log_store.get_latest_version() == -1
    assert store.root_url == log_store.object_store().root_url


def test_connect_without_pyarrow(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(hdfs_module, "PYARROW_INSTALLED", False)
    with pytest.raises(ConstructionError) as exc_info:
        connect("hdfs://namenode:8020/warehouse", {})
    assert isinstance(exc_info.value.__cause__, MissingDependencyError)


def test_connect_passes_client_configuration(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, Any] = {}

    def fake_filesystem(protocol: str, **kwargs: Any) -> LocalFileSystem:
        captured.update(kwargs, protocol=protocol)
        return LocalFileSystem()

    monkeypatch.setattr(hdfs_module, "PYARROW_INSTALLED", True)
    monkeypatch.setattr(fsspec, "filesystem", fake_filesystem)
    connect("hdfs://nn:9000/warehouse", {"hdfs_user": "etl", "dfs.replication": "2"})
    assert captured == {
        "protocol": "hdfs",
        "host": "nn",
        "port": 9000,
        "user": "etl",
        "kerb_ticket": None,
        "replication": 3,
        "extra_conf": {"dfs.replication": "2"},
    }


def test_connect_client_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    def failing_filesystem(protocol: str, **kwargs: Any) -> LocalFileSystem:
        msg = "Unable to load libhdfs"
        raise OSError(msg)

    monkeypatch.setattr(hdfs_module, "PYARROW_INSTALLED", True)
    monkeypatch.setattr(fsspec, "filesystem", failing_filesystem)
    with pytest.raises(ConstructionError, match="nn:8020"):
        connect("hdfs://nn/warehouse", {})


def test_connect_webhdfs_without_requests(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(hdfs_module, "REQUESTS_INSTALLED", False)
    with pytest.raises(ConstructionError) as exc_info:
        connect("hdfs://namenode:8020/warehouse", {"hdfs_client": "webhdfs"})
    assert isinstance(exc_info.value.__cause__, MissingDependencyError)


def test_connect_webhdfs_client(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, Any] = {}

    def fake_filesystem(protocol: str, **kwargs: Any) -> LocalFileSystem:
        captured.update(kwargs, protocol=protocol)
        return LocalFileSystem()

    monkeypatch.setattr(hdfs_module, "REQUESTS_INSTALLED", True)
    monkeypatch.setattr(hdfs_module, "PYARROW_INSTALLED", False)
    monkeypatch.setattr(fsspec, "filesystem", fake_filesystem)
    connect("hdfs://nn:8020/warehouse", {"hdfs_client": "webhdfs", "user": "etl"})
    assert captured == {"protocol": "webhdfs", "host": "nn", "port": 9870, "user": "etl"}
