"""Process-wide, scheme-keyed factory registries.

Storage backend selection happens at runtime from a URL string. Each backend package
inserts its factory under one or more URL schemes; the engine then looks the scheme up
to build a store (and, separately, a log store). Lookups are keyed by scheme only:
one factory serves every host of its scheme.

Registration is insert-or-replace and may happen from any number of initialization
paths, in any order.
"""

import re
import threading
from typing import TYPE_CHECKING, Final, Generic, Optional, TypeVar
from urllib.parse import urlsplit

from mypy_extensions import mypyc_attr

from hdfs_store.exceptions import InvalidLocationError
from hdfs_store.utils.logging import get_logger

if TYPE_CHECKING:
    from hdfs_store.storage.path import ObjectPath
    from hdfs_store.storage.protocol import (
        LogStoreFactory,
        LogStoreProtocol,
        ObjectStoreFactory,
        ObjectStoreProtocol,
    )
    from hdfs_store.typing import StorageOptions

__all__ = (
    "FactoryRegistry",
    "logstore_factories",
    "object_store_factories",
    "resolve_log_store",
    "resolve_object_store",
    "scheme_of",
)

logger = get_logger("storage.registry")

FactoryT = TypeVar("FactoryT")

SCHEME_REGEX: Final = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*$")


def scheme_of(url: str) -> str:
    """Extract the lower-cased scheme of ``url``.

    Raises:
        InvalidLocationError: If ``url`` carries no valid scheme.
    """
    if not url:
        msg = "URL cannot be empty."
        raise InvalidLocationError(msg)
    scheme = urlsplit(url).scheme
    if not scheme or "://" not in url:
        msg = f"URL has no scheme: {url!r}"
        raise InvalidLocationError(msg)
    return scheme.lower()


def _normalize_scheme(scheme: str) -> str:
    scheme = scheme.split("://", 1)[0]
    if not SCHEME_REGEX.match(scheme):
        msg = f"Invalid URL scheme: {scheme!r}"
        raise InvalidLocationError(msg)
    return scheme.lower()


@mypyc_attr(allow_interpreted_subclasses=True)
class FactoryRegistry(Generic[FactoryT]):
    """Thread-safe mapping from URL scheme to factory.

    Examples:
        registry.insert("hdfs", factory)
        registry.get_for_url("hdfs://namenode:8020/warehouse/table")  # -> factory
        registry.get_for_url("s3x://bucket/table")  # raises InvalidLocationError
    """

    __slots__ = ("_factories", "_lock", "name")

    def __init__(self, name: str = "factories") -> None:
        self.name = name
        self._factories: dict[str, FactoryT] = {}
        self._lock = threading.RLock()

    def insert(self, scheme: str, factory: FactoryT) -> "Optional[FactoryT]":
        """Register ``factory`` for ``scheme``, replacing any prior entry.

        Returns:
            The factory previously registered for the scheme, if any.
        """
        key = _normalize_scheme(scheme)
        with self._lock:
            previous = self._factories.get(key)
            self._factories[key] = factory
        if previous is not None and previous is not factory:
            logger.debug("Replaced %s handler for scheme %r", self.name, key)
        return previous

    def get(self, scheme: str) -> FactoryT:
        """Return the factory for ``scheme``.

        Raises:
            InvalidLocationError: If no factory is registered for the scheme.
        """
        key = _normalize_scheme(scheme)
        with self._lock:
            factory = self._factories.get(key)
        if factory is None:
            msg = f"No {self.name} registered for scheme {key!r}"
            raise InvalidLocationError(msg)
        return factory

    def get_for_url(self, url: str) -> FactoryT:
        return self.get(scheme_of(url))

    def remove(self, scheme: str) -> "Optional[FactoryT]":
        with self._lock:
            return self._factories.pop(_normalize_scheme(scheme), None)

    def schemes(self) -> "list[str]":
        with self._lock:
            return sorted(self._factories)

    def clear(self) -> None:
        with self._lock:
            self._factories.clear()

    def __contains__(self, scheme: object) -> bool:
        if not isinstance(scheme, str):
            return False
        try:
            key = _normalize_scheme(scheme)
        except InvalidLocationError:
            return False
        with self._lock:
            return key in self._factories

    def __len__(self) -> int:
        with self._lock:
            return len(self._factories)


_init_lock = threading.Lock()
_object_store_factories: "Optional[FactoryRegistry[ObjectStoreFactory]]" = None
_logstore_factories: "Optional[FactoryRegistry[LogStoreFactory]]" = None


def object_store_factories() -> "FactoryRegistry[ObjectStoreFactory]":
    """Return the process-wide storage backend registry, creating it on first use."""
    global _object_store_factories  # noqa: PLW0603
    if _object_store_factories is None:
        with _init_lock:
            if _object_store_factories is None:
                _object_store_factories = FactoryRegistry("object store factory")
    return _object_store_factories


def logstore_factories() -> "FactoryRegistry[LogStoreFactory]":
    """Return the process-wide log store registry, creating it on first use."""
    global _logstore_factories  # noqa: PLW0603
    if _logstore_factories is None:
        with _init_lock:
            if _logstore_factories is None:
                _logstore_factories = FactoryRegistry("log store factory")
    return _logstore_factories


def resolve_object_store(
    url: str, options: "Optional[StorageOptions]" = None
) -> "tuple[ObjectStoreProtocol, ObjectPath]":
    """Look up the factory for ``url``'s scheme and build its storage backend."""
    factory = object_store_factories().get_for_url(url)
    return factory.parse_url_opts(url, options or {})


def resolve_log_store(url: str, options: "Optional[StorageOptions]" = None) -> "LogStoreProtocol":
    """Build the storage backend for ``url`` and wrap it into a log store."""
    options = options or {}
    logstore_factory = logstore_factories().get_for_url(url)
    store, _ = resolve_object_store(url, options)
    return logstore_factory.with_options(store, url, options)
