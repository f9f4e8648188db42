"""
SSH/SFTP session setup with pluggable host key verification
"""
import base64
import hashlib
import os
from typing import Optional

import paramiko

from ..config import CONNECT_TIMEOUT, HostKeyPolicy, split_address
from ..errors import ConnectError
from ..utils.logging import vlog, warn


def key_fingerprint(key: paramiko.PKey) -> str:
    """OpenSSH-style SHA256 fingerprint, e.g. ``SHA256:nThbg6kX...``."""
    digest = hashlib.sha256(key.asbytes()).digest()
    return "SHA256:" + base64.b64encode(digest).decode("ascii").rstrip("=")


class AcceptAnyPolicy(paramiko.MissingHostKeyPolicy):
    """
    Accept every host key without recording it.
    Offers no protection against interception.
    """

    def missing_host_key(self, client, hostname, key):
        vlog(f"[SSH] accepting {key.get_name()} key {key_fingerprint(key)} for {hostname}")


class PinnedFingerprintPolicy(paramiko.MissingHostKeyPolicy):
    """Accept only a host key whose SHA256 fingerprint matches *fingerprint*."""

    def __init__(self, fingerprint: str):
        fp = fingerprint.strip()
        if not fp.startswith("SHA256:"):
            fp = "SHA256:" + fp
        self.fingerprint = fp.rstrip("=")

    def missing_host_key(self, client, hostname, key):
        actual = key_fingerprint(key)
        if actual != self.fingerprint:
            raise paramiko.SSHException(
                f"host key mismatch for {hostname}: got {actual}, expected {self.fingerprint}"
            )
        vlog(f"[SSH] host key {actual} matches pinned fingerprint")


def build_policy(policy: HostKeyPolicy, fingerprint: Optional[str] = None):
    if policy == HostKeyPolicy.ACCEPT_ANY:
        return AcceptAnyPolicy()
    if policy == HostKeyPolicy.FINGERPRINT:
        if not fingerprint:
            raise ConnectError("fingerprint host key policy needs a fingerprint")
        return PinnedFingerprintPolicy(fingerprint)
    return paramiko.RejectPolicy()


class Session:
    """
    Wraps paramiko SSHClient + SFTPClient for one transfer.
    Use as a context manager; both are closed on every exit path.
    """

    def __init__(self, ssh: paramiko.SSHClient, sftp: paramiko.SFTPClient):
        self._ssh = ssh
        self.sftp = sftp

    def open(self, path: str, mode: str = "r"):
        return self.sftp.open(path, mode)

    def close(self):
        try:
            self.sftp.close()
        finally:
            self._ssh.close()
        vlog("[SSH] disconnected.")

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


def connect(user: str, password: str, address: str,
            host_key_policy: HostKeyPolicy = HostKeyPolicy.ACCEPT_ANY,
            fingerprint: Optional[str] = None,
            known_hosts: Optional[str] = None) -> Session:
    """
    Open a password-authenticated SFTP session to ``host:port``.
    Errors are logged and raised as ConnectError; there is no retry.
    """
    host, port = split_address(address)

    client = paramiko.SSHClient()
    if host_key_policy == HostKeyPolicy.KNOWN_HOSTS:
        path = os.path.expanduser(known_hosts or "~/.ssh/known_hosts")
        try:
            client.load_host_keys(path)
        except OSError as exc:
            client.close()
            vlog(f"[SSH] {exc}")
            raise ConnectError(f"cannot load known hosts file {path}: {exc}") from exc
    elif host_key_policy == HostKeyPolicy.ACCEPT_ANY:
        warn("host key verification is disabled (accept-any)")
    client.set_missing_host_key_policy(build_policy(host_key_policy, fingerprint))

    vlog(f"[SSH] connecting to {user}@{host}:{port} …")
    try:
        client.connect(
            hostname=host, port=port, username=user, password=password,
            timeout=CONNECT_TIMEOUT, banner_timeout=CONNECT_TIMEOUT,
            auth_timeout=CONNECT_TIMEOUT,
            look_for_keys=False, allow_agent=False,
        )
    except (paramiko.SSHException, OSError) as exc:
        client.close()
        vlog(f"[SSH] {exc}")
        raise ConnectError(f"cannot connect to {address}: {exc}") from exc

    try:
        sftp = client.open_sftp()
    except (paramiko.SSHException, OSError) as exc:
        client.close()
        vlog(f"[SSH] {exc}")
        raise ConnectError(f"cannot start SFTP subsystem on {address}: {exc}") from exc

    vlog("[SSH] connected ✓")
    return Session(client, sftp)
