"""Optional dependency detection and shared type aliases."""

from collections.abc import Mapping
from importlib.util import find_spec

from typing_extensions import TypeAlias

__all__ = ("PYARROW_INSTALLED", "REQUESTS_INSTALLED", "StorageOptions")


def _module_exists(name: str) -> bool:
    try:
        return find_spec(name) is not None
    except ModuleNotFoundError:
        return False


PYARROW_INSTALLED = _module_exists("pyarrow")
"""Whether pyarrow (and with it the libhdfs binding) is importable."""

REQUESTS_INSTALLED = _module_exists("requests")
"""Whether requests, used by fsspec's WebHDFS client, is importable."""

StorageOptions: TypeAlias = Mapping[str, str]
"""Open, string-keyed configuration forwarded to the native client."""
