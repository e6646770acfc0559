"""Hadoop filesystem storage backend.

Implements the object storage contract on top of an fsspec filesystem handle: the
pyarrow/libhdfs client or the WebHDFS client for ``hdfs://`` and ``viewfs://`` URLs,
or a local filesystem handle for single-node setups and tests.

Every logical path is resolved under the backend's canonical root URL, so one backend
never reads or writes outside its root. Writes and copies are staged next to their
destination and moved into place, which keeps partially written data invisible.

Renaming without replacement needs a primitive the native client executes as one step.
Local handles hard-link; WebHDFS handles issue a namenode ``RENAME``, which refuses an
existing destination. The libhdfs client only offers a move that clobbers existing
files, so every no-replace operation on it fails with ``NotSupportedError``.
"""

import dataclasses
import os
import posixpath
import re
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Final, Optional

from hdfs_store.config import WEBHDFS_CLIENT, HdfsClientConfig
from hdfs_store.exceptions import (
    AlreadyExistsError,
    ConstructionError,
    MissingDependencyError,
    NotModifiedError,
    NotSupportedError,
    ObjectNotFoundError,
    PreconditionFailedError,
    RangeError,
    StorageIOError,
)
from hdfs_store.storage.backends.base import InstrumentedObjectStore
from hdfs_store.storage.path import DELIMITER, ObjectPath
from hdfs_store.storage.translate import (
    filesystem_protocols,
    is_local_filesystem,
    path_to_filesystem,
    path_to_root_url,
)
from hdfs_store.storage.types import (
    GetOptions,
    GetResult,
    ListResult,
    ObjectMeta,
    PutMode,
    PutOptions,
    PutResult,
    StorageCapabilities,
)
from hdfs_store.typing import PYARROW_INSTALLED, REQUESTS_INSTALLED

if TYPE_CHECKING:
    from anyio import CapacityLimiter
    from fsspec import AbstractFileSystem

    from hdfs_store.typing import StorageOptions

__all__ = ("STORE_NAME", "HadoopFileStorageBackend", "connect")

STORE_NAME: Final[str] = "HdfsObjectStore"
WEBHDFS_PROTOCOLS: Final[frozenset[str]] = frozenset(("webhdfs", "webHDFS"))

_STAGING_SUFFIX = re.compile(r"#[0-9a-f]{32}$")
_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


def connect(url: str, options: "Optional[StorageOptions]" = None) -> "AbstractFileSystem":
    """Open the native HDFS client for ``url``.

    The ``hdfs_client`` option selects libhdfs through pyarrow (``arrow``, the default)
    or the namenode's REST interface (``webhdfs``).

    Raises:
        ConstructionError: If the client's dependency is missing or the client rejects
            the configuration.
    """
    config = HdfsClientConfig.from_url(url, options)
    if config.client == WEBHDFS_CLIENT:
        if not REQUESTS_INSTALLED:
            msg = "requests is required to connect to WebHDFS"
            raise ConstructionError(msg) from MissingDependencyError(package="requests", install_package="webhdfs")
        protocol, kwargs = "webhdfs", config.webhdfs_kwargs()
    else:
        if not PYARROW_INSTALLED:
            msg = "pyarrow is required to connect to HDFS"
            raise ConstructionError(msg) from MissingDependencyError(package="pyarrow", install_package="hdfs")
        protocol, kwargs = "hdfs", config.client_kwargs()

    import fsspec

    try:
        return fsspec.filesystem(protocol, **kwargs)
    except Exception as exc:
        msg = f"Failed to initialize HDFS client for {config.host}:{config.port}"
        raise ConstructionError(msg) from exc


def _to_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    return _EPOCH


def _is_staging(path: str) -> bool:
    return _STAGING_SUFFIX.search(path) is not None


class HadoopFileStorageBackend(InstrumentedObjectStore):
    """Hadoop file storage backend.

    Args:
        root_url: Table root, e.g. ``hdfs://namenode:8020/warehouse/table``.
        fs: Native filesystem handle shared by every operation of this backend.
        log_storage_operations: Log start and success of each operation.
        limiter: Optional bound on concurrent worker threads.

    Raises:
        ConstructionError: If the root cannot be canonicalized on ``fs``.
    """

    # Best case; narrowed per instance when the handle cannot rename without replacing.
    capabilities = StorageCapabilities(
        supports_multipart_upload=False,
        supports_atomic_rename=True,
        supports_copy_if_not_exists=True,
        supports_conditional_put=True,
        supports_conditional_update=False,
    )

    def __init__(
        self,
        root_url: str,
        fs: "AbstractFileSystem",
        *,
        log_storage_operations: bool = False,
        limiter: "Optional[CapacityLimiter]" = None,
    ) -> None:
        super().__init__(STORE_NAME, log_storage_operations=log_storage_operations, limiter=limiter)
        self.fs = fs
        self.root_url = path_to_root_url(fs, root_url)
        self._local = is_local_filesystem(fs)
        self._webhdfs = bool(filesystem_protocols(fs) & WEBHDFS_PROTOCOLS)
        if not (self._local or self._webhdfs):
            self.capabilities = dataclasses.replace(
                type(self).capabilities,
                supports_atomic_rename=False,
                supports_copy_if_not_exists=False,
                supports_conditional_put=False,
            )

    @classmethod
    def try_new(cls, url: str, options: "Optional[StorageOptions]" = None) -> "HadoopFileStorageBackend":
        """Connect to the cluster named by ``url`` and root a backend at its path."""
        config = HdfsClientConfig.from_url(url, options)
        return cls(url, connect(url, options), log_storage_operations=config.log_storage_operations)

    @property
    def backend_type(self) -> str:
        return "hdfs"

    @property
    def root_path(self) -> str:
        return path_to_filesystem(self.root_url, ObjectPath())

    def __str__(self) -> str:
        return f"HadoopFileStorageBackend({self.root_url})"

    def __repr__(self) -> str:
        return f"HadoopFileStorageBackend(root_url={self.root_url!r})"

    def path_to_filesystem(self, location: "ObjectPath") -> str:
        """Return the absolute filesystem path of ``location``."""
        return path_to_filesystem(self.root_url, location)

    def _location_of(self, fs_path: str) -> "Optional[ObjectPath]":
        path = DELIMITER + self.fs._strip_protocol(fs_path).lstrip(DELIMITER)  # noqa: SLF001
        root = self.root_path.rstrip(DELIMITER)
        if path != root and not path.startswith(root + DELIMITER):
            return None
        return ObjectPath.parse(path[len(root) :])

    def _meta(self, location: "ObjectPath", info: "dict[str, Any]") -> ObjectMeta:
        size = int(info.get("size") or 0)
        modified = info.get("mtime", info.get("created"))
        if modified is None and "modificationTime" in info:
            modified = info["modificationTime"] / 1000
        last_modified = _to_datetime(modified)
        stamp = int(last_modified.timestamp() * 1_000_000)
        inode = info.get("ino", info.get("fileId"))
        e_tag = f"{inode:x}-{stamp:x}-{size:x}" if isinstance(inode, int) else f"{stamp:x}-{size:x}"
        return ObjectMeta(location=location, size=size, last_modified=last_modified, e_tag=e_tag)

    def _file_info(self, location: "ObjectPath", path: str, operation: str) -> "dict[str, Any]":
        info = self.fs.info(path)
        if info.get("type") != "file":
            msg = f"Object not found: {location}"
            raise ObjectNotFoundError(msg, backend=self.backend_type, operation=operation, path=str(location))
        return info

    # Native move primitives

    def _staging_path(self, path: str) -> str:
        return f"{path}#{uuid.uuid4().hex}"

    def _discard(self, staging: str) -> None:
        try:
            if self.fs.exists(staging):
                self.fs.rm_file(staging)
        except Exception:
            self.logger.warning("Failed to remove staging file %s", staging, exc_info=True)

    def _ensure_parent(self, path: str) -> None:
        parent = posixpath.dirname(path)
        if parent and parent != DELIMITER:
            self.fs.makedirs(parent, exist_ok=True)

    def _require_atomic_rename(self, location: "ObjectPath", operation: str) -> None:
        if not self.capabilities.supports_atomic_rename:
            msg = f"{type(self.fs).__name__} offers no atomic rename without replacement"
            raise NotSupportedError(msg, backend=self.backend_type, operation=operation, path=str(location))

    def _namenode_rename(self, source: str, destination: str, *, overwrite: bool = False) -> bool:
        """Issue a WebHDFS ``RENAME``.

        Without ``overwrite`` the namenode refuses an existing destination and reports
        it through the returned boolean. With ``overwrite`` the replacement is a single
        namenode operation (``rename2`` with ``OVERWRITE``).
        """
        if overwrite:
            self.fs._call(  # noqa: SLF001
                "RENAME", method="put", path=source, destination=destination, renameoptions="OVERWRITE"
            )
            return True
        response = self.fs._call("RENAME", method="put", path=source, destination=destination)  # noqa: SLF001
        return bool(response.json().get("boolean"))

    def _replace(self, source: str, destination: str) -> None:
        """Move ``source`` over ``destination`` in one native call.

        The destination is never removed ahead of the move, so readers see either the old
        or the new object and a failed move leaves the old object in place.
        """
        if self._local:
            os.replace(source, destination)
        elif self._webhdfs:
            self._namenode_rename(source, destination, overwrite=True)
        else:
            self.fs.mv(source, destination)

    def _rename_no_replace(self, source: str, destination: str, location: "ObjectPath", operation: str) -> None:
        """Move ``source`` to ``destination`` unless it exists, as one atomic step.

        Local handles link then unlink. WebHDFS handles rely on the namenode rename,
        which returns false instead of replacing an existing destination.
        """
        self._require_atomic_rename(location, operation)
        if self._local:
            try:
                os.link(source, destination)
            except FileExistsError as exc:
                raise self._already_exists(location, operation) from exc
            os.unlink(source)
            return
        # The namenode moves a file into an existing directory instead of refusing it.
        if self.fs.isdir(destination):
            raise self._already_exists(location, operation)
        if self._namenode_rename(source, destination):
            return
        if self.fs.exists(destination):
            raise self._already_exists(location, operation)
        msg = f"Namenode refused to rename {source} to {destination}"
        raise StorageIOError(msg, backend=self.backend_type, operation=operation, path=str(location))

    def _already_exists(self, location: "ObjectPath", operation: str) -> AlreadyExistsError:
        msg = f"Object already exists: {location}"
        return AlreadyExistsError(msg, backend=self.backend_type, operation=operation, path=str(location))

    # Blocking primitives

    def _put(self, location: "ObjectPath", payload: bytes, options: PutOptions) -> PutResult:
        if options.mode is PutMode.UPDATE:
            msg = "Conditional update is not supported by HDFS"
            raise NotSupportedError(msg, backend=self.backend_type, operation="put", path=str(location))
        if options.mode is PutMode.CREATE:
            self._require_atomic_rename(location, "put")
        path = self.path_to_filesystem(location)
        self._ensure_parent(path)
        staging = self._staging_path(path)
        try:
            self.fs.pipe_file(staging, payload)
            # Renames keep inode and mtime, so the staged file describes the published one.
            meta = self._meta(location, self.fs.info(staging))
            if options.mode is PutMode.CREATE:
                self._rename_no_replace(staging, path, location, "put")
            else:
                self._replace(staging, path)
        except BaseException:
            self._discard(staging)
            raise
        return PutResult(e_tag=meta.e_tag, version=meta.version)

    def _check_preconditions(self, meta: ObjectMeta, options: GetOptions) -> None:
        location = str(meta.location)
        if options.if_match is not None and options.if_match not in {"*", meta.e_tag}:
            msg = f"e_tag {meta.e_tag} does not match {options.if_match}"
            raise PreconditionFailedError(msg, backend=self.backend_type, operation="get", path=location)
        if options.if_unmodified_since is not None and meta.last_modified > options.if_unmodified_since:
            msg = f"{location} modified at {meta.last_modified.isoformat()}"
            raise PreconditionFailedError(msg, backend=self.backend_type, operation="get", path=location)
        if options.if_none_match is not None and options.if_none_match in {"*", meta.e_tag}:
            msg = f"e_tag {meta.e_tag} matches {options.if_none_match}"
            raise NotModifiedError(msg, backend=self.backend_type, operation="get", path=location)
        if options.if_modified_since is not None and meta.last_modified <= options.if_modified_since:
            msg = f"{location} not modified since {options.if_modified_since.isoformat()}"
            raise NotModifiedError(msg, backend=self.backend_type, operation="get", path=location)

    def _get(self, location: "ObjectPath", options: GetOptions) -> GetResult:
        path = self.path_to_filesystem(location)
        meta = self._meta(location, self._file_info(location, path, "get"))
        self._check_preconditions(meta, options)
        if options.head:
            return GetResult(meta=meta, data=b"", range=(0, meta.size))
        if options.range is None:
            data = self.fs.cat_file(path)
            return GetResult(meta=meta, data=data, range=(0, len(data)))
        start, end = options.range
        if end > meta.size:
            msg = f"Range {start}..{end} is out of bounds for {location} of size {meta.size}"
            raise RangeError(msg, backend=self.backend_type, operation="get_range", path=str(location))
        data = self.fs.cat_file(path, start=start, end=end) if end > start else b""
        return GetResult(meta=meta, data=data, range=(start, end))

    def _head(self, location: "ObjectPath") -> ObjectMeta:
        path = self.path_to_filesystem(location)
        return self._meta(location, self._file_info(location, path, "head"))

    def _delete(self, location: "ObjectPath") -> None:
        path = self.path_to_filesystem(location)
        self._file_info(location, path, "delete")
        self.fs.rm_file(path)

    def _list(self, prefix: "ObjectPath") -> "list[ObjectMeta]":
        base = self.path_to_filesystem(prefix)
        try:
            info = self.fs.info(base)
        except FileNotFoundError:
            return []
        found = {base: info} if info.get("type") == "file" else self.fs.find(base, withdirs=False, detail=True)
        objects = []
        for fs_path, entry in sorted(found.items()):
            if entry.get("type") != "file" or _is_staging(fs_path):
                continue
            location = self._location_of(fs_path)
            if location is not None and location.prefix_matches(prefix):
                objects.append(self._meta(location, entry))
        return objects

    def _list_with_delimiter(self, prefix: "ObjectPath") -> ListResult:
        base = self.path_to_filesystem(prefix)
        try:
            if not self.fs.isdir(base):
                return ListResult()
            entries = self.fs.ls(base, detail=True)
        except FileNotFoundError:
            return ListResult()
        common_prefixes: list[ObjectPath] = []
        objects: list[ObjectMeta] = []
        for entry in entries:
            name = entry["name"]
            location = self._location_of(name)
            if location is None or location == prefix:
                continue
            if entry.get("type") == "directory":
                common_prefixes.append(location)
            elif entry.get("type") == "file" and not _is_staging(name):
                objects.append(self._meta(location, entry))
        return ListResult(
            common_prefixes=sorted(common_prefixes),
            objects=sorted(objects, key=lambda meta: meta.location),
        )

    def _copy(self, source: "ObjectPath", destination: "ObjectPath") -> None:
        self._copy_into(source, destination, replace=True)

    def _copy_if_not_exists(self, source: "ObjectPath", destination: "ObjectPath") -> None:
        self._copy_into(source, destination, replace=False)

    def _copy_into(self, source: "ObjectPath", destination: "ObjectPath", *, replace: bool) -> None:
        operation = "copy" if replace else "copy_if_not_exists"
        if not replace:
            self._require_atomic_rename(destination, operation)
        source_path = self.path_to_filesystem(source)
        destination_path = self.path_to_filesystem(destination)
        self._file_info(source, source_path, operation)
        self._ensure_parent(destination_path)
        staging = self._staging_path(destination_path)
        try:
            self.fs.cp_file(source_path, staging)
            if replace:
                self._replace(staging, destination_path)
            else:
                self._rename_no_replace(staging, destination_path, destination, operation)
        except BaseException:
            self._discard(staging)
            raise

    def _rename_if_not_exists(self, source: "ObjectPath", destination: "ObjectPath") -> None:
        self._require_atomic_rename(destination, "rename_if_not_exists")
        source_path = self.path_to_filesystem(source)
        destination_path = self.path_to_filesystem(destination)
        self._file_info(source, source_path, "rename_if_not_exists")
        self._ensure_parent(destination_path)
        self._rename_no_replace(source_path, destination_path, destination, "rename_if_not_exists")
