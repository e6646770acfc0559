from typing import Any, Optional

__all__ = (
    "AlreadyExistsError",
    "ConstructionError",
    "HdfsStoreError",
    "InvalidLocationError",
    "InvalidPathError",
    "InvalidTableLocationError",
    "MissingDependencyError",
    "NotModifiedError",
    "NotSupportedError",
    "ObjectNotFoundError",
    "PermissionDeniedError",
    "PreconditionFailedError",
    "RangeError",
    "StorageError",
    "StorageIOError",
    "VersionAlreadyExistsError",
)


class HdfsStoreError(Exception):
    """Base exception class from which all hdfs_store exceptions inherit."""

    detail: str

    def __init__(self, *args: Any, detail: str = "") -> None:
        """Initialize ``HdfsStoreError``.

        Args:
            *args: args are converted to :class:`str` before passing to :class:`Exception`
            detail: detail of the exception.
        """
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        super().__init__(*str_args)

    def __repr__(self) -> str:
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return " ".join((*self.args, self.detail)).strip()


class MissingDependencyError(HdfsStoreError, ImportError):
    """Missing optional dependency.

    This exception is raised only when a module depends on a dependency that has not been installed.
    """

    def __init__(self, package: str, install_package: Optional[str] = None) -> None:
        super().__init__(
            f"Package {package!r} is not installed but required. You can install it by running "
            f"'pip install hdfs-store[{install_package or package}]' to install hdfs-store with the required extra "
            f"or 'pip install {install_package or package}' to install the package separately",
        )


# -- Location errors --
class InvalidLocationError(HdfsStoreError):
    """A URL has no registered handler or cannot be mapped to a backend path."""


class InvalidTableLocationError(InvalidLocationError):
    """A factory was handed a URL it cannot serve."""

    url: str

    def __init__(self, url: str, message: Optional[str] = None) -> None:
        super().__init__(detail=message or f"Invalid table location: {url}")
        self.url = url


class InvalidPathError(InvalidLocationError, ValueError):
    """A logical path contains an illegal segment."""


class ConstructionError(HdfsStoreError):
    """A backend could not be constructed.

    Raised when the root cannot be canonicalized or the native client cannot be
    initialized with the given options. No partially built backend is ever returned.
    """


# -- Storage operation errors --
class StorageError(HdfsStoreError):
    """Base class for failures of a storage operation."""

    backend: Optional[str]
    operation: Optional[str]
    path: Optional[str]

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        backend: Optional[str] = None,
        operation: Optional[str] = None,
        path: Optional[str] = None,
    ) -> None:
        if message is None:
            message = f"Storage operation {operation or 'unknown'!r} failed"
            if path:
                message = f"{message} for {path}"
        super().__init__(detail=message)
        self.backend = backend
        self.operation = operation
        self.path = path


class ObjectNotFoundError(StorageError):
    """The object does not exist."""


class AlreadyExistsError(StorageError):
    """The destination object already exists."""


class PermissionDeniedError(StorageError):
    """The native client reported an access-control failure."""


class NotSupportedError(StorageError):
    """The operation is not implemented by this backend."""


class StorageIOError(StorageError):
    """Any other transport or storage failure reported by the native client."""


class RangeError(StorageError):
    """A requested byte range lies outside the object."""


class PreconditionFailedError(StorageError):
    """A conditional request did not match the current object."""


class NotModifiedError(StorageError):
    """The object was not modified since the given condition."""


class VersionAlreadyExistsError(AlreadyExistsError):
    """A commit entry for this log version has already been written."""

    version: int

    def __init__(self, version: int, *, path: Optional[str] = None) -> None:
        super().__init__(f"Log version {version} already exists", operation="write_commit_entry", path=path)
        self.version = version
