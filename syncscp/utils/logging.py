"""
Logging utilities for syncscp

Plain mode prints the message only. Debug mode (-d) prefixes a timestamp and
the caller's file:line.
"""
import os
import sys
from datetime import datetime

_verbose = False
_debug = False


def set_verbose(verbose: bool):
    """Set the verbose flag"""
    global _verbose
    _verbose = verbose


def set_debug(debug: bool):
    """Enable timestamps and file:line prefixes; implies verbose."""
    global _debug
    _debug = debug
    set_verbose(debug)


def _format(msg: str, depth: int) -> str:
    if not _debug:
        return msg
    ts = datetime.now().strftime("%Y/%m/%d %H:%M:%S")
    frame = sys._getframe(depth)
    where = f"{os.path.basename(frame.f_code.co_filename)}:{frame.f_lineno}"
    return f"{ts} {where}: {msg}"


def log(msg: str, _depth: int = 2):
    """Log a message to stdout"""
    print(_format(msg, _depth), flush=True)


def vlog(msg: str):
    """Log a verbose message (only if verbose mode is enabled)"""
    if _verbose:
        log(msg, _depth=3)


def warn(msg: str):
    """Log a warning message"""
    log(f"⚠  {msg}", _depth=3)


def error(msg: str):
    """Log an error message to stderr"""
    print(_format(f"ERROR: {msg}", 2), file=sys.stderr, flush=True)
