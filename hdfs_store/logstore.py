"""Default log store composition.

A log store layers commit entries on top of any object store. Mutual exclusion between
competing writers comes entirely from the store's ``rename_if_not_exists``: a commit is
staged under a temporary name and renamed onto its versioned name, and only one writer
can win a given version.
"""

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final, Optional

from hdfs_store.exceptions import AlreadyExistsError, ObjectNotFoundError, VersionAlreadyExistsError
from hdfs_store.storage.path import ObjectPath
from hdfs_store.utils.logging import get_logger

if TYPE_CHECKING:
    from hdfs_store.storage.protocol import ObjectStoreProtocol
    from hdfs_store.typing import StorageOptions

__all__ = ("LOG_DIRECTORY", "DefaultLogStore", "LogStoreConfig", "default_logstore")

logger = get_logger("logstore")

LOG_DIRECTORY: Final[str] = "_delta_log"
COMMIT_FILE_REGEX: Final = re.compile(r"^(\d{20})\.json$")
NO_VERSION: Final[int] = -1


@dataclass(frozen=True)
class LogStoreConfig:
    location: str
    options: "dict[str, str]" = field(default_factory=dict)


class DefaultLogStore:
    """Log store that delegates all storage to a single object store."""

    __slots__ = ("_store", "config")

    def __init__(self, store: "ObjectStoreProtocol", config: LogStoreConfig) -> None:
        self._store = store
        self.config = config

    def __repr__(self) -> str:
        return f"DefaultLogStore({self.config.location!r})"

    def name(self) -> str:
        return "DefaultLogStore"

    def object_store(self) -> "ObjectStoreProtocol":
        return self._store

    def root_uri(self) -> str:
        return self.config.location

    def log_path(self) -> ObjectPath:
        return ObjectPath((LOG_DIRECTORY,))

    def commit_path(self, version: int) -> ObjectPath:
        return self.log_path().child(f"{version:020d}.json")

    async def read_commit_entry(self, version: int) -> "Optional[bytes]":
        """Return the commit entry for ``version``, or None if it was never written."""
        try:
            result = await self._store.get(self.commit_path(version))
        except ObjectNotFoundError:
            return None
        return result.data

    async def write_commit_entry(self, version: int, tmp_commit: ObjectPath) -> None:
        """Publish ``tmp_commit`` as the entry for ``version``.

        Raises:
            VersionAlreadyExistsError: If another writer already committed this version.
        """
        commit_path = self.commit_path(version)
        try:
            await self._store.rename_if_not_exists(tmp_commit, commit_path)
        except AlreadyExistsError as exc:
            logger.debug("Lost commit race for version %d", version)
            raise VersionAlreadyExistsError(version, path=str(commit_path)) from exc

    async def abort_commit_entry(self, version: int, tmp_commit: ObjectPath) -> None:
        logger.debug("Aborting commit of version %d", version)
        await self._store.delete(tmp_commit)

    async def get_latest_version(self, start_version: int = 0) -> int:
        """Return the highest committed version at or above ``start_version``, or -1."""
        latest = NO_VERSION
        async for meta in self._store.list(self.log_path()):
            match = COMMIT_FILE_REGEX.match(meta.location.filename or "")
            if match is None or meta.location.parent != self.log_path():
                continue
            version = int(match.group(1))
            if version >= start_version:
                latest = max(latest, version)
        return latest


def default_logstore(
    store: "ObjectStoreProtocol", location: str, options: "Optional[StorageOptions]" = None
) -> DefaultLogStore:
    return DefaultLogStore(store, LogStoreConfig(location=location, options=dict(options or {})))
