"""Translation between logical paths and native filesystem locations.

The root of a backend is resolved once, at construction time, to an absolute and
canonical location. Logical paths are then joined onto that root without touching
the filesystem again.
"""

import os
import posixpath
from typing import TYPE_CHECKING, Union
from urllib.parse import quote, unquote, urlsplit, urlunsplit

from hdfs_store.exceptions import ConstructionError, InvalidTableLocationError
from hdfs_store.storage.path import DELIMITER, ObjectPath

if TYPE_CHECKING:
    from fsspec import AbstractFileSystem

__all__ = (
    "canonicalize_root",
    "filesystem_protocols",
    "is_local_filesystem",
    "path_to_filesystem",
    "path_to_root_url",
    "url_to_filesystem_path",
)

LOCAL_PROTOCOLS = frozenset(("file", "local"))


def filesystem_protocols(fs: "AbstractFileSystem") -> "frozenset[str]":
    protocol = fs.protocol
    if isinstance(protocol, str):
        return frozenset((protocol,))
    return frozenset(protocol)


def is_local_filesystem(fs: "AbstractFileSystem") -> bool:
    return bool(filesystem_protocols(fs) & LOCAL_PROTOCOLS)


def url_to_filesystem_path(url: str) -> str:
    """Extract the absolute filesystem path carried by a URL.

    Raises:
        InvalidTableLocationError: If the URL has no scheme or its path is not absolute.
    """
    parts = urlsplit(url)
    if not parts.scheme:
        raise InvalidTableLocationError(url, f"URL has no scheme: {url}")
    path = unquote(parts.path) or DELIMITER
    if not path.startswith(DELIMITER):
        raise InvalidTableLocationError(url, f"URL path is not absolute: {url}")
    return path


def canonicalize_root(fs: "AbstractFileSystem", path: str) -> str:
    """Resolve ``path`` to a canonical, existing directory on ``fs``.

    Local handles resolve symlinks; remote handles normalise relative components and
    ask the native client to confirm the directory exists. The result is a fixed
    point: canonicalizing it again yields the same path.

    Raises:
        ConstructionError: If the path does not exist, is not a directory, or cannot be read.
    """
    try:
        if is_local_filesystem(fs):
            resolved = os.path.realpath(path, strict=True)
            if not os.path.isdir(resolved):
                msg = f"Root {path} is not a directory"
                raise ConstructionError(msg)
            return resolved
        resolved = posixpath.normpath(path)
        if resolved.startswith("//"):
            resolved = DELIMITER + resolved.lstrip(DELIMITER)
        info = fs.info(resolved)
    except ConstructionError:
        raise
    except Exception as exc:
        msg = f"Failed to canonicalize root {path}: {exc}"
        raise ConstructionError(msg) from exc
    if info.get("type") != "directory":
        msg = f"Root {path} is not a directory"
        raise ConstructionError(msg)
    return resolved


def path_to_root_url(fs: "AbstractFileSystem", url: str) -> str:
    """Canonicalize the path of ``url`` and return the resulting root URL."""
    parts = urlsplit(url)
    root_path = canonicalize_root(fs, url_to_filesystem_path(url))
    return urlunsplit((parts.scheme.lower(), parts.netloc, quote(root_path), "", ""))


def path_to_filesystem(root_url: str, location: "Union[str, ObjectPath]") -> str:
    """Return the absolute filesystem path of ``location`` under ``root_url``.

    An empty trailing segment on the root is dropped before joining, so the result
    never contains doubled separators.
    """
    root_path = unquote(urlsplit(root_url).path).rstrip(DELIMITER)
    parts = ObjectPath.parse(location).parts
    if not parts:
        return root_path or DELIMITER
    return DELIMITER.join((root_path, *parts))
