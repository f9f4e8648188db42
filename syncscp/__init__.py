"""syncscp - push or pull a single file over SFTP, optionally on change"""

__version__ = "1.0.0"
