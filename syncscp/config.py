"""
Configuration for syncscp

Everything a run needs is collected once into an immutable SyncConfig and
passed down explicitly. Defaults may come from a YAML profile (-c), flags
given on the command line always win.
"""
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Optional

from .errors import UsageError

# ══════════════════════════════════════════════════════════════════════════════
#  DEFAULTS
# ══════════════════════════════════════════════════════════════════════════════

SSH_PORT = 22
CONNECT_TIMEOUT = 30  # seconds; applies to dial, banner and auth

# Permission bits given to a freshly written destination file
DEST_FILE_MODE = 0o644

# Read/write chunk size for the byte copy (paramiko's max SFTP packet payload)
COPY_BUFSIZE = 32768

DEFAULT_KNOWN_HOSTS = "~/.ssh/known_hosts"


class Direction(str, Enum):
    PUSH = "push"  # local -> remote
    PULL = "pull"  # remote -> local

    @classmethod
    def from_reverse(cls, reverse: bool) -> "Direction":
        return cls.PULL if reverse else cls.PUSH


class HostKeyPolicy(str, Enum):
    ACCEPT_ANY = "accept-any"
    FINGERPRINT = "fingerprint"
    KNOWN_HOSTS = "known-hosts"


class OnChange(str, Enum):
    LOG_ONLY = "log-only"
    RESYNC = "resync"


@dataclass(frozen=True)
class SyncConfig:
    address: str
    username: str
    password: str
    file_path: str
    reverse: bool = False
    monitor: bool = False
    debug: bool = False
    host_key_policy: HostKeyPolicy = HostKeyPolicy.ACCEPT_ANY
    fingerprint: Optional[str] = None
    known_hosts: str = DEFAULT_KNOWN_HOSTS
    on_change: OnChange = OnChange.LOG_ONLY

    @property
    def direction(self) -> Direction:
        return Direction.from_reverse(self.reverse)

    def with_overrides(self, **changes) -> "SyncConfig":
        return replace(self, **changes)

    def validate(self):
        """Raise UsageError for the first missing required value."""
        if not self.address:
            raise UsageError("Please input address.")
        if not self.username:
            raise UsageError("Please input user.")
        if not self.password:
            raise UsageError("Please input password.")
        if not self.file_path:
            raise UsageError("Please input file path")
        if self.host_key_policy == HostKeyPolicy.FINGERPRINT and not self.fingerprint:
            raise UsageError("--host-key-policy fingerprint requires --fingerprint")


# ══════════════════════════════════════════════════════════════════════════════
#  PATH SPEC  ── "local_path:remote_path"
# ══════════════════════════════════════════════════════════════════════════════

def resolve_paths(spec: str) -> tuple[str, str]:
    """
    Split a ``local_path:remote_path`` spec into its two halves.

    Paths that themselves contain ':' (Windows drive letters, remote paths
    with colons) are not supported and are rejected here.
    """
    parts = spec.split(":")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise UsageError("Please input the correct file path")
    return parts[0], parts[1]


def split_address(address: str) -> tuple[str, int]:
    """Parse ``host:port`` (port optional, IPv6 as ``[::1]:22``)."""
    host, port = address, SSH_PORT
    if address.startswith("["):
        end = address.find("]")
        if end == -1:
            raise UsageError(f"invalid address: {address!r}")
        host = address[1:end]
        rest = address[end + 1:]
        if rest:
            if not rest.startswith(":"):
                raise UsageError(f"invalid address: {address!r}")
            port = rest[1:]
    elif address.count(":") == 1:
        host, port = address.split(":")
    if not host:
        raise UsageError(f"invalid address: {address!r}")
    try:
        port = int(port)
    except ValueError:
        raise UsageError(f"invalid port in address: {address!r}")
    if not 0 < port < 65536:
        raise UsageError(f"invalid port in address: {address!r}")
    return host, port


# ══════════════════════════════════════════════════════════════════════════════
#  PROFILE FILE  ── optional YAML defaults (-c)
# ══════════════════════════════════════════════════════════════════════════════

# YAML key -> SyncConfig field
_PROFILE_KEYS = {
    "address": "address",
    "server": "address",
    "user": "username",
    "username": "username",
    "file": "file_path",
    "file_path": "file_path",
    "reverse": "reverse",
    "monitor": "monitor",
    "debug": "debug",
    "host_key_policy": "host_key_policy",
    "fingerprint": "fingerprint",
    "known_hosts": "known_hosts",
    "on_change": "on_change",
}


def load_profile(path: Path) -> dict:
    """
    Read a YAML profile and return it as SyncConfig keyword arguments.
    Unknown keys raise UsageError so typos don't silently fall back to defaults.
    """
    import yaml

    try:
        with Path(path).expanduser().open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as exc:
        raise UsageError(f"cannot read profile {path}: {exc}")
    except yaml.YAMLError as exc:
        raise UsageError(f"invalid YAML in {path}: {exc}")
    if not isinstance(data, dict):
        raise UsageError(f"profile {path} must be a mapping")

    out: dict = {}
    for key, value in data.items():
        if key == "password":
            raise UsageError(f"{path}: passwords are not read from profiles, use -p or the prompt")
        field = _PROFILE_KEYS.get(key)
        if field is None:
            raise UsageError(f"unknown key in profile {path}: {key!r}")
        if value is None:
            continue
        if field in ("reverse", "monitor", "debug"):
            out[field] = bool(value)
        elif field == "host_key_policy":
            out[field] = _enum_value(HostKeyPolicy, value, key)
        elif field == "on_change":
            out[field] = _enum_value(OnChange, value, key)
        else:
            out[field] = str(value)
    return out


def _enum_value(enum_cls, value, key):
    try:
        return enum_cls(str(value))
    except ValueError:
        choices = ", ".join(m.value for m in enum_cls)
        raise UsageError(f"invalid {key}: {value!r} (choose from {choices})")
