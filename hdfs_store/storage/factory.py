"""Factory and scheme registration for the HDFS storage backend."""

from collections.abc import Iterable
from typing import TYPE_CHECKING, Callable, Final, Optional
from urllib.parse import urlsplit

from hdfs_store.config import HdfsClientConfig
from hdfs_store.exceptions import InvalidTableLocationError
from hdfs_store.logstore import default_logstore
from hdfs_store.storage.backends.hdfs import HadoopFileStorageBackend, connect
from hdfs_store.storage.path import ObjectPath
from hdfs_store.storage.registry import logstore_factories, object_store_factories
from hdfs_store.storage.translate import url_to_filesystem_path
from hdfs_store.utils.logging import get_logger

if TYPE_CHECKING:
    from fsspec import AbstractFileSystem

    from hdfs_store.logstore import DefaultLogStore
    from hdfs_store.storage.protocol import ObjectStoreProtocol
    from hdfs_store.typing import StorageOptions

__all__ = ("HDFS_SCHEMES", "HdfsFactory", "register_handlers")

logger = get_logger("storage.factory")

HDFS_SCHEMES: Final[tuple[str, ...]] = ("hdfs", "viewfs")

ClientFactory = Callable[[str, "StorageOptions"], "AbstractFileSystem"]


class HdfsFactory:
    """Builds HDFS storage backends and wraps them into log stores.

    Args:
        schemes: URL schemes this factory accepts.
        client_factory: Opens the native client for a URL; defaults to :func:`connect`.
    """

    __slots__ = ("client_factory", "schemes")

    def __init__(
        self, schemes: "Iterable[str]" = HDFS_SCHEMES, client_factory: "Optional[ClientFactory]" = None
    ) -> None:
        self.schemes = frozenset(scheme.lower() for scheme in schemes)
        self.client_factory = client_factory or connect

    def __repr__(self) -> str:
        return f"HdfsFactory(schemes={sorted(self.schemes)!r})"

    def parse_url_opts(
        self, url: str, options: "Optional[StorageOptions]" = None
    ) -> "tuple[ObjectStoreProtocol, ObjectPath]":
        """Build a backend rooted at ``url``'s path.

        Returns:
            The backend and the logical path the engine treats as its root.

        Raises:
            InvalidTableLocationError: If the scheme is not served by this factory or the URL
                cannot be converted to a filesystem path.
            ConstructionError: If the root cannot be canonicalized or the client cannot start.
        """
        options = options or {}
        scheme = urlsplit(url).scheme.lower()
        if scheme not in self.schemes:
            raise InvalidTableLocationError(url)
        url_to_filesystem_path(url)
        config = HdfsClientConfig.from_url(url, options)
        store = HadoopFileStorageBackend(
            url,
            self.client_factory(url, options),
            log_storage_operations=config.log_storage_operations,
        )
        logger.debug("Created %s for %s", store, url)
        return store, ObjectPath()

    def with_options(
        self, store: "ObjectStoreProtocol", location: str, options: "Optional[StorageOptions]" = None
    ) -> "DefaultLogStore":
        """Wrap ``store`` into the default log store."""
        return default_logstore(store, location, options or {})


def register_handlers(additional_schemes: "Optional[Iterable[str]]" = None) -> HdfsFactory:
    """Register the HDFS factory for ``hdfs``, ``viewfs`` and any additional schemes.

    Safe to call repeatedly: each call replaces the previous entries.
    """
    schemes = (*HDFS_SCHEMES, *(additional_schemes or ()))
    factory = HdfsFactory(schemes)
    for scheme in schemes:
        object_store_factories().insert(scheme, factory)
        logstore_factories().insert(scheme, factory)
    logger.debug("Registered HDFS handlers for schemes %s", ", ".join(schemes))
    return factory
