#!/usr/bin/env python3
"""
syncscp  —  push or pull a single file over SFTP
================================================

Examples:
  syncscp -a host:22 -u deploy -p secret -f build/app.tar:/srv/app.tar
  syncscp -a host:22 -u deploy -p secret -f app.log:/var/log/app.log -r
  syncscp -a host:22 -u deploy -p secret -f notes.md:/tmp/notes.md -m --on-change resync

Any failure prints one diagnostic line on stderr and exits with status 1.
"""
import argparse
import getpass
import sys
from typing import Optional

from syncscp import __version__
from syncscp.config import (
    DEFAULT_KNOWN_HOSTS, HostKeyPolicy, OnChange, SyncConfig,
    load_profile, resolve_paths,
)
from syncscp.errors import SyncError
from syncscp.utils.logging import log, error, set_debug

MONITOR_PULL_MESSAGE = "monitoring mode. Only support monitor push the local file to the remote end"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="syncscp",
        description="Push or pull a single file over SFTP",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    # Booleans default to None so an explicit flag can be told apart from a
    # value supplied by the profile file.
    parser.add_argument("-v", dest="version", action="store_true",
                        help="show version and exit")
    parser.add_argument("-d", dest="debug", action="store_true", default=None,
                        help="debug mode: timestamps and file:line in log output")
    parser.add_argument("-m", dest="monitor", action="store_true", default=None,
                        help="monitoring mode. Only supports pushing the local file to the remote end")
    parser.add_argument("-a", dest="address", metavar="HOST:PORT",
                        help="connect to address")
    parser.add_argument("-u", dest="username", metavar="USER",
                        help="user for login")
    parser.add_argument("-p", dest="password", metavar="PASSWORD",
                        help="password to use when connecting to server; "
                             "asked from the tty if not given")
    parser.add_argument("-f", dest="file_path", metavar="LOCAL:REMOTE",
                        help="file path. Format is from/local.txt:to/remote.txt")
    parser.add_argument("-r", dest="reverse", action="store_true", default=None,
                        help="pull the remote file to local instead of pushing")
    parser.add_argument("-c", dest="config", metavar="FILE",
                        help="YAML profile with default values for the options above")
    parser.add_argument("--host-key-policy", dest="host_key_policy",
                        choices=[p.value for p in HostKeyPolicy],
                        help="how to verify the server's host key (default: accept-any, insecure)")
    parser.add_argument("--fingerprint", metavar="SHA256:…",
                        help="expected host key fingerprint for --host-key-policy fingerprint")
    parser.add_argument("--known-hosts", dest="known_hosts", metavar="FILE",
                        help=f"known_hosts file for --host-key-policy known-hosts "
                             f"(default: {DEFAULT_KNOWN_HOSTS})")
    parser.add_argument("--on-change", dest="on_change",
                        choices=[o.value for o in OnChange],
                        help="what monitoring mode does on a write (default: log-only)")
    return parser


def build_config(args: argparse.Namespace) -> SyncConfig:
    """Merge the optional profile file with command-line flags (flags win)."""
    values: dict = {}
    if args.config:
        values.update(load_profile(args.config))

    for name in ("address", "username", "password", "file_path", "reverse",
                 "monitor", "debug", "fingerprint", "known_hosts"):
        value = getattr(args, name)
        if value is not None:
            values[name] = value
    if args.host_key_policy is not None:
        values["host_key_policy"] = HostKeyPolicy(args.host_key_policy)
    if args.on_change is not None:
        values["on_change"] = OnChange(args.on_change)

    for required in ("address", "username", "password", "file_path"):
        values.setdefault(required, "")
    return SyncConfig(**values)


def run(cfg: SyncConfig) -> int:
    """Validate *cfg* and perform one transfer or the watch loop."""
    from syncscp.core.transfer import transfer
    from syncscp.core.watcher import watch

    if not cfg.password and cfg.address and cfg.username and sys.stdin.isatty():
        cfg = cfg.with_overrides(password=getpass.getpass(f"{cfg.username}@{cfg.address}'s password: "))
    cfg.validate()

    local_path, remote_path = resolve_paths(cfg.file_path)

    if cfg.monitor:
        if cfg.reverse:
            log(MONITOR_PULL_MESSAGE)
            return 0
        watch(
            local_path, remote_path,
            on_change=cfg.on_change,
            resync=lambda lp, rp: transfer(lp, rp, reverse=False, config=cfg),
        )
    else:
        transfer(local_path, remote_path, reverse=cfg.reverse, config=cfg)
    return 0


def main(argv: Optional[list] = None) -> int:
    """CLI entry point for syncscp"""
    if argv is None:
        argv = sys.argv[1:]
    parser = build_parser()
    if not argv:
        parser.print_help()
        return 0
    args = parser.parse_args(argv)

    if args.version:
        log(f"Version: {__version__}")
        return 0

    try:
        cfg = build_config(args)
        set_debug(cfg.debug)
        return run(cfg)
    except SyncError as exc:
        error(str(exc))
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
