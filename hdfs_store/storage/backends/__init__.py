from hdfs_store.storage.backends.base import InstrumentedObjectStore, ObjectListing
from hdfs_store.storage.backends.hdfs import HadoopFileStorageBackend

__all__ = ("HadoopFileStorageBackend", "InstrumentedObjectStore", "ObjectListing")
