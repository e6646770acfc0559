"""Unit tests for URL/path translation."""

import os
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from fsspec.implementations.local import LocalFileSystem

from hdfs_store.exceptions import ConstructionError, InvalidTableLocationError
from hdfs_store.storage.path import ObjectPath
from hdfs_store.storage.translate import (
    canonicalize_root,
    is_local_filesystem,
    path_to_filesystem,
    path_to_root_url,
    url_to_filesystem_path,
)


def test_url_to_filesystem_path() -> None:
    assert url_to_filesystem_path("hdfs://namenode:8020/warehouse/table") == "/warehouse/table"
    assert url_to_filesystem_path("viewfs://cluster/data/t%20x") == "/data/t x"
    assert url_to_filesystem_path("hdfs://namenode") == "/"


def test_url_without_scheme_is_rejected() -> None:
    with pytest.raises(InvalidTableLocationError):
        url_to_filesystem_path("/warehouse/table")


def test_canonicalize_resolves_relative_components(tmp_path: Path, local_fs: LocalFileSystem) -> None:
    (tmp_path / "a" / "b").mkdir(parents=True)
    resolved = canonicalize_root(local_fs, f"{tmp_path}/a/../a/b/")
    assert resolved == str((tmp_path / "a" / "b").resolve())


def test_canonicalize_resolves_symlinks(tmp_path: Path, local_fs: LocalFileSystem) -> None:
    target = tmp_path / "target"
    target.mkdir()
    link = tmp_path / "link"
    os.symlink(target, link)
    assert canonicalize_root(local_fs, str(link)) == str(target.resolve())


def test_canonicalize_is_idempotent(tmp_path: Path, local_fs: LocalFileSystem) -> None:
    (tmp_path / "x").mkdir()
    once = canonicalize_root(local_fs, f"{tmp_path}/./x")
    assert canonicalize_root(local_fs, once) == once


def test_canonicalize_missing_root_fails(tmp_path: Path, local_fs: LocalFileSystem) -> None:
    with pytest.raises(ConstructionError):
        canonicalize_root(local_fs, str(tmp_path / "missing"))


def test_canonicalize_file_root_fails(tmp_path: Path, local_fs: LocalFileSystem) -> None:
    file_path = tmp_path / "file.txt"
    file_path.write_text("x")
    with pytest.raises(ConstructionError):
        canonicalize_root(local_fs, str(file_path))


def test_canonicalize_remote_root_uses_client() -> None:
    fs = MagicMock()
    fs.protocol = ("hdfs", "arrow_hdfs")
    fs.info.return_value = {"name": "/warehouse/table", "type": "directory", "size": 0}
    assert canonicalize_root(fs, "/warehouse/./staging/../table/") == "/warehouse/table"
    fs.info.assert_called_once_with("/warehouse/table")


def test_canonicalize_remote_root_failure_is_construction_error() -> None:
    fs = MagicMock()
    fs.protocol = "hdfs"
    fs.info.side_effect = PermissionError("AccessControlException: Permission denied")
    with pytest.raises(ConstructionError, match="Permission denied"):
        canonicalize_root(fs, "/secure")


def test_path_to_root_url_keeps_authority(table_root: Path, local_fs: LocalFileSystem) -> None:
    url = path_to_root_url(local_fs, f"HDFS://namenode:8020{table_root}/")
    assert url == f"hdfs://namenode:8020{table_root}"


def test_path_to_filesystem_joins_segments() -> None:
    root = "hdfs://namenode:8020/warehouse/table"
    assert path_to_filesystem(root, ObjectPath.parse("_delta_log/0.json")) == "/warehouse/table/_delta_log/0.json"
    assert path_to_filesystem(root, ObjectPath()) == "/warehouse/table"


def test_trailing_empty_segment_never_doubles_separator() -> None:
    with_slash = path_to_filesystem("hdfs://nn/warehouse/table/", "part-0.parquet")
    without_slash = path_to_filesystem("hdfs://nn/warehouse/table", "part-0.parquet")
    assert with_slash == without_slash == "/warehouse/table/part-0.parquet"
    assert path_to_filesystem("hdfs://nn/warehouse/table", "a/b/") == "/warehouse/table/a/b"


def test_path_to_filesystem_at_filesystem_root() -> None:
    assert path_to_filesystem("hdfs://nn/", "a") == "/a"
    assert path_to_filesystem("hdfs://nn/", ObjectPath()) == "/"


def test_is_local_filesystem(local_fs: LocalFileSystem) -> None:
    assert is_local_filesystem(local_fs)
    remote = MagicMock()
    remote.protocol = ("hdfs", "arrow_hdfs")
    assert not is_local_filesystem(remote)
