from hdfs_store.utils import logging, sync_tools

__all__ = ("logging", "sync_tools")
