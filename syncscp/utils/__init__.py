"""Utilities (logging)"""
from .logging import log, vlog, warn, error, set_verbose, set_debug

__all__ = ["log", "vlog", "warn", "error", "set_verbose", "set_debug"]
