from hdfs_store import exceptions
from hdfs_store.config import HdfsClientConfig, str_is_truthy
from hdfs_store.logstore import DefaultLogStore, default_logstore
from hdfs_store.storage import (
    ObjectMeta,
    ObjectPath,
    logstore_factories,
    object_store_factories,
    resolve_log_store,
    resolve_object_store,
)
from hdfs_store.storage.backends.hdfs import HadoopFileStorageBackend
from hdfs_store.storage.factory import HDFS_SCHEMES, HdfsFactory, register_handlers

__all__ = (
    "HDFS_SCHEMES",
    "DefaultLogStore",
    "HadoopFileStorageBackend",
    "HdfsClientConfig",
    "HdfsFactory",
    "ObjectMeta",
    "ObjectPath",
    "default_logstore",
    "exceptions",
    "logstore_factories",
    "object_store_factories",
    "register_handlers",
    "resolve_log_store",
    "resolve_object_store",
    "str_is_truthy",
)
