"""Configuration handling for HDFS storage backends.

Storage options arrive as an open, string-keyed mapping. Only a handful of generic keys
are interpreted here; everything else is forwarded verbatim to the native client's own
configuration mechanism (libhdfs ``extra_conf``).
"""

from dataclasses import dataclass, field
from typing import Any, Final, Optional
from urllib.parse import urlsplit

from hdfs_store.exceptions import ConstructionError, InvalidTableLocationError
from hdfs_store.typing import StorageOptions

__all__ = (
    "ARROW_CLIENT",
    "DEFAULT_NAMENODE_PORT",
    "DEFAULT_WEBHDFS_PORT",
    "WEBHDFS_CLIENT",
    "HdfsClientConfig",
    "str_is_truthy",
)

DEFAULT_NAMENODE_PORT: Final[int] = 8020
DEFAULT_WEBHDFS_PORT: Final[int] = 9870
DEFAULT_REPLICATION: Final[int] = 3
DEFAULT_HOST: Final[str] = "default"

ARROW_CLIENT: Final[str] = "arrow"
WEBHDFS_CLIENT: Final[str] = "webhdfs"
CLIENTS: Final[frozenset[str]] = frozenset((ARROW_CLIENT, WEBHDFS_CLIENT))

USER_KEYS: Final[tuple[str, ...]] = ("hdfs_user", "user")
KERB_TICKET_KEYS: Final[tuple[str, ...]] = ("kerb_ticket", "hdfs_kerb_ticket")
REPLICATION_KEY: Final[str] = "replication"
LOG_OPERATIONS_KEY: Final[str] = "log_storage_operations"
CLIENT_KEY: Final[str] = "hdfs_client"
WEBHDFS_PORT_KEY: Final[str] = "webhdfs_port"

GENERIC_KEYS: Final[frozenset[str]] = frozenset(
    (*USER_KEYS, *KERB_TICKET_KEYS, REPLICATION_KEY, LOG_OPERATIONS_KEY, CLIENT_KEY, WEBHDFS_PORT_KEY)
)

TRUTHY_VALUES: Final[frozenset[str]] = frozenset(("1", "true", "on", "yes", "y"))


def str_is_truthy(value: Optional[str]) -> bool:
    """Parse a permissive boolean flag, case-insensitively."""
    if value is None:
        return False
    return value.strip().lower() in TRUTHY_VALUES


def _first(options: "StorageOptions", keys: "tuple[str, ...]") -> Optional[str]:
    for key in keys:
        if key in options:
            return options[key]
    return None


def _int_option(options: "StorageOptions", key: str, default: int) -> int:
    value = options.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        msg = f"Invalid value for storage option {key!r}: {value!r}"
        raise ConstructionError(msg) from exc


@dataclass(frozen=True)
class HdfsClientConfig:
    """Connection settings for the native HDFS client."""

    host: str
    port: int
    user: Optional[str] = None
    kerb_ticket: Optional[str] = None
    replication: int = DEFAULT_REPLICATION
    extra_conf: "dict[str, str]" = field(default_factory=dict)
    log_storage_operations: bool = False
    client: str = ARROW_CLIENT
    webhdfs_port: int = DEFAULT_WEBHDFS_PORT

    @classmethod
    def from_url(cls, url: str, options: "Optional[StorageOptions]" = None) -> "HdfsClientConfig":
        """Build a client configuration from a table URL and storage options.

        ``hdfs://nn:9000/path`` connects to ``nn`` on port 9000 (8020 when omitted).
        ``viewfs://cluster/path`` hands ``viewfs://cluster`` to the client so the mount
        table is resolved natively. Without an authority the client falls back to
        ``fs.defaultFS``.

        Raises:
            InvalidTableLocationError: If the URL carries an invalid port.
            ConstructionError: If an option value cannot be used to configure the client.
        """
        options = options or {}
        parts = urlsplit(url)
        scheme = parts.scheme.lower()
        if not parts.netloc:
            host, port = DEFAULT_HOST, 0
        elif scheme == "viewfs":
            host, port = f"viewfs://{parts.netloc}", 0
        else:
            try:
                port = parts.port or DEFAULT_NAMENODE_PORT
            except ValueError as exc:
                raise InvalidTableLocationError(url, f"Invalid port in {url}") from exc
            host = parts.hostname or parts.netloc

        client = options.get(CLIENT_KEY, ARROW_CLIENT).strip().lower()
        if client not in CLIENTS:
            msg = f"Unknown HDFS client {client!r}, expected one of {', '.join(sorted(CLIENTS))}"
            raise ConstructionError(msg)

        return cls(
            host=host,
            port=port,
            user=_first(options, USER_KEYS),
            kerb_ticket=_first(options, KERB_TICKET_KEYS),
            replication=_int_option(options, REPLICATION_KEY, DEFAULT_REPLICATION),
            extra_conf={key: value for key, value in options.items() if key not in GENERIC_KEYS},
            log_storage_operations=str_is_truthy(options.get(LOG_OPERATIONS_KEY)),
            client=client,
            webhdfs_port=_int_option(options, WEBHDFS_PORT_KEY, DEFAULT_WEBHDFS_PORT),
        )

    def client_kwargs(self) -> "dict[str, Any]":
        """Keyword arguments for fsspec's ``hdfs`` filesystem."""
        return {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "kerb_ticket": self.kerb_ticket,
            "replication": self.replication,
            "extra_conf": dict(self.extra_conf) or None,
        }

    def webhdfs_kwargs(self) -> "dict[str, Any]":
        """Keyword arguments for fsspec's ``webhdfs`` filesystem.

        Raises:
            ConstructionError: If the namenode cannot be addressed over HTTP.
        """
        if self.host == DEFAULT_HOST or self.host.startswith("viewfs://"):
            msg = f"WebHDFS needs an explicit namenode host, got {self.host!r}"
            raise ConstructionError(msg)
        if self.kerb_ticket:
            return {"host": self.host, "port": self.webhdfs_port, "kerberos": True}
        return {"host": self.host, "port": self.webhdfs_port, "user": self.user}
