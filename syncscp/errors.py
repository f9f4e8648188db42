"""
Exception types raised by syncscp components.
The CLI is the only place that turns these into a process exit.
"""


class SyncError(Exception):
    """Base class for every failure syncscp reports to the user."""


class UsageError(SyncError):
    """Missing or malformed command-line input."""


class ConnectError(SyncError):
    """Dial, authentication, host-key or SFTP subsystem failure."""


class TransferError(SyncError):
    """Opening an endpoint or copying bytes failed."""


class WatchError(SyncError):
    """The filesystem watch could not be set up."""
