from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest
from fsspec.implementations.local import LocalFileSystem

from hdfs_store.storage.backends.hdfs import HadoopFileStorageBackend
from hdfs_store.storage.registry import logstore_factories, object_store_factories

here = Path(__file__).parent
root_path = here.parent


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def local_fs() -> LocalFileSystem:
    return LocalFileSystem()


@pytest.fixture
def table_root(tmp_path: Path) -> Path:
    root = tmp_path / "warehouse" / "table"
    root.mkdir(parents=True)
    return root.resolve()


@pytest.fixture
def table_url(table_root: Path) -> str:
    return f"hdfs://namenode:8020{table_root}"


@pytest.fixture
def backend(table_url: str, local_fs: LocalFileSystem) -> HadoopFileStorageBackend:
    return HadoopFileStorageBackend(table_url, local_fs)


@pytest.fixture
def clean_registries() -> Generator[None, None, None]:
    object_store_factories().clear()
    logstore_factories().clear()
    yield
    object_store_factories().clear()
    logstore_factories().clear()
