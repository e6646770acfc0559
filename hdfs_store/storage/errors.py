"""Classification of native-client failures into the storage error taxonomy."""

import errno
from typing import Callable, Final, Optional, TypeVar

from hdfs_store.exceptions import (
    AlreadyExistsError,
    NotSupportedError,
    ObjectNotFoundError,
    PermissionDeniedError,
    StorageError,
    StorageIOError,
)
from hdfs_store.utils.logging import get_logger

__all__ = ("classify_native_error", "execute_storage_operation")

logger = get_logger("storage.errors")

ReturnT = TypeVar("ReturnT")

_NOT_FOUND_ERRNOS: Final[frozenset[int]] = frozenset((errno.ENOENT, errno.ENOTDIR))
_EXISTS_ERRNOS: Final[frozenset[int]] = frozenset((errno.EEXIST, errno.ENOTEMPTY))
_PERMISSION_ERRNOS: Final[frozenset[int]] = frozenset((errno.EACCES, errno.EPERM))

# Java exception names surfaced verbatim in libhdfs / WebHDFS error messages.
_NOT_FOUND_MARKERS: Final[tuple[str, ...]] = ("FileNotFoundException", "No such file or directory")
_EXISTS_MARKERS: Final[tuple[str, ...]] = ("FileAlreadyExistsException", "File exists")
_PERMISSION_MARKERS: Final[tuple[str, ...]] = ("AccessControlException", "Permission denied")


def _error_class(exc: BaseException) -> "type[StorageError]":
    if isinstance(exc, FileNotFoundError):
        return ObjectNotFoundError
    if isinstance(exc, FileExistsError):
        return AlreadyExistsError
    if isinstance(exc, PermissionError):
        return PermissionDeniedError
    if isinstance(exc, NotImplementedError):
        return NotSupportedError

    code = getattr(exc, "errno", None)
    if code in _NOT_FOUND_ERRNOS:
        return ObjectNotFoundError
    if code in _EXISTS_ERRNOS:
        return AlreadyExistsError
    if code in _PERMISSION_ERRNOS:
        return PermissionDeniedError

    message = str(exc)
    if any(marker in message for marker in _NOT_FOUND_MARKERS):
        return ObjectNotFoundError
    if any(marker in message for marker in _EXISTS_MARKERS):
        return AlreadyExistsError
    if any(marker in message for marker in _PERMISSION_MARKERS):
        return PermissionDeniedError
    return StorageIOError


def classify_native_error(
    exc: BaseException, *, backend: Optional[str] = None, operation: Optional[str] = None, path: Optional[str] = None
) -> StorageError:
    """Map a native-client exception onto a :class:`StorageError` subclass.

    Errors that are already part of the taxonomy are returned unchanged.
    """
    if isinstance(exc, StorageError):
        return exc
    error_class = _error_class(exc)
    message = f"{operation or 'operation'} failed for {path}: {exc}" if path else f"{operation} failed: {exc}"
    return error_class(message, backend=backend, operation=operation, path=path)


def execute_storage_operation(
    func: "Callable[[], ReturnT]", *, backend: str, operation: str, path: Optional[str] = None
) -> "ReturnT":
    """Run a native call, re-raising any failure as a classified storage error."""
    try:
        return func()
    except StorageError:
        raise
    except Exception as exc:
        error = classify_native_error(exc, backend=backend, operation=operation, path=path)
        raise error from exc
