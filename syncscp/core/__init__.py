"""Core functionality"""
from .ssh_manager import Session, connect

__all__ = ["Session", "connect"]
