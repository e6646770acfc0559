"""Storage abstraction layer for hdfs_store.

This package provides:
- A generic, asynchronous object storage contract
- A Hadoop filesystem backend built on fsspec
- Process-wide, scheme-keyed registries for storage and log store factories
"""

from hdfs_store.storage.path import ObjectPath
from hdfs_store.storage.protocol import LogStoreFactory, LogStoreProtocol, ObjectStoreFactory, ObjectStoreProtocol
from hdfs_store.storage.registry import (
    FactoryRegistry,
    logstore_factories,
    object_store_factories,
    resolve_log_store,
    resolve_object_store,
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

__all__ = (
    "FactoryRegistry",
    "GetOptions",
    "GetResult",
    "ListResult",
    "LogStoreFactory",
    "LogStoreProtocol",
    "ObjectMeta",
    "ObjectPath",
    "ObjectStoreFactory",
    "ObjectStoreProtocol",
    "PutMode",
    "PutOptions",
    "PutResult",
    "StorageCapabilities",
    "logstore_factories",
    "object_store_factories",
    "resolve_log_store",
    "resolve_object_store",
)
