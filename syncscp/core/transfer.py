"""
Single-file transfer between the local filesystem and an SFTP session
"""
import os
from typing import Callable, Optional

import paramiko

from ..config import COPY_BUFSIZE, DEST_FILE_MODE, SyncConfig
from ..errors import TransferError
from ..utils.logging import log, vlog
from .ssh_manager import Session, connect

_IO_ERRORS = (OSError, paramiko.SSHException)


def _open_local_dest(path: str):
    """Write-only, create, truncate; new files get DEST_FILE_MODE (minus umask)."""
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, DEST_FILE_MODE)
    return os.fdopen(fd, "wb")


def _open_remote_dest(session: Session, path: str):
    f = session.open(path, "wb")
    try:
        f.chmod(DEST_FILE_MODE)
    except BaseException:
        f.close()
        raise
    f.set_pipelined(True)
    return f


def _open_remote_source(session: Session, path: str):
    f = session.open(path, "rb")
    try:
        f.prefetch()
    except BaseException:
        f.close()
        raise
    return f


def copy_stream(src, dst, bufsize: int = COPY_BUFSIZE) -> int:
    """Copy *src* to *dst* until EOF and return the byte count."""
    total = 0
    while True:
        buf = src.read(bufsize)
        if not buf:
            break
        dst.write(buf)
        total += len(buf)
    return total


def transfer(local_path: str, remote_path: str, reverse: bool = False, *,
             config: Optional[SyncConfig] = None,
             connector: Optional[Callable[[SyncConfig], Session]] = None) -> int:
    """
    Copy one file over SFTP and return the number of bytes written.

    reverse=False pushes local_path to remote_path; reverse=True pulls
    remote_path into local_path. The source is opened before the destination
    so that a missing source leaves the destination untouched. The session
    and both file handles are closed on every exit path.
    """
    if connector is None:
        if config is None:
            raise ValueError("transfer() needs a config or a connector")
        connector = session_from_config
    src_path, dst_path = (remote_path, local_path) if reverse else (local_path, remote_path)
    vlog(f"[{'PULL' if reverse else 'PUSH'}] {src_path} -> {dst_path}")

    with connector(config) as session:
        try:
            if reverse:
                src = _open_remote_source(session, remote_path)
            else:
                src = open(local_path, "rb")
        except _IO_ERRORS as exc:
            raise TransferError(f"cannot open source {src_path}: {exc}") from exc

        with src:
            try:
                if reverse:
                    dst = _open_local_dest(local_path)
                else:
                    dst = _open_remote_dest(session, remote_path)
            except _IO_ERRORS as exc:
                raise TransferError(f"cannot open destination {dst_path}: {exc}") from exc

            try:
                with dst:
                    n = copy_stream(src, dst)
            except _IO_ERRORS as exc:
                raise TransferError(f"copy to {dst_path} failed: {exc}") from exc

    log(f"Transfer bytes: {n} finished.")
    return n


def session_from_config(config: SyncConfig) -> Session:
    return connect(
        config.username, config.password, config.address,
        host_key_policy=config.host_key_policy,
        fingerprint=config.fingerprint,
        known_hosts=config.known_hosts,
    )
