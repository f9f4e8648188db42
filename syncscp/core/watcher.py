"""
Filesystem watch for a single local file.

Uses the watchdog library. The observer thread only enqueues events; they are
logged (and optionally re-synced) on the calling thread, which blocks until
the observer stops or *stop_event* is set.
"""
import os
import queue
import threading
from typing import Callable, Optional

from watchdog.events import (
    FileCreatedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from ..config import OnChange
from ..errors import SyncError, WatchError
from ..utils.logging import log, vlog, warn

# How often the loop wakes up to check the observer and stop_event
POLL_INTERVAL = 0.5


class SingleFileHandler(FileSystemEventHandler):
    """Forward events that touch one path into a queue."""

    def __init__(self, path: str, events: "queue.Queue[FileSystemEvent]"):
        self._path = os.path.realpath(path)
        self._events = events

    def _matches(self, event: FileSystemEvent) -> bool:
        if event.is_directory:
            return False
        paths = [event.src_path, getattr(event, "dest_path", "")]
        return any(_same_file(p, self._path) for p in paths)

    def on_any_event(self, event: FileSystemEvent) -> None:
        if self._matches(event):
            self._events.put(event)


def _same_file(a, b: str) -> bool:
    return bool(a) and os.path.realpath(os.fsdecode(a)) == os.path.realpath(b)


def is_write(event: FileSystemEvent, path: str) -> bool:
    """True when *event* leaves new content at *path*, including rename-style saves."""
    if isinstance(event, FileMovedEvent):
        return _same_file(event.dest_path, path)
    if isinstance(event, (FileModifiedEvent, FileCreatedEvent)):
        return _same_file(event.src_path, path)
    return False


def describe(event: FileSystemEvent) -> str:
    text = f"event: {event.event_type} {os.fsdecode(event.src_path)}"
    dest = getattr(event, "dest_path", "")
    if dest:
        text += f" -> {os.fsdecode(dest)}"
    return text


def watch(local_path: str, remote_path: Optional[str] = None,
          on_change: OnChange = OnChange.LOG_ONLY,
          resync: Optional[Callable[[str, str], object]] = None,
          stop_event: Optional[threading.Event] = None,
          observer_factory=Observer):
    """
    Block, logging every event for *local_path*.

    With on_change=RESYNC, *resync(local_path, remote_path)* runs after each
    write. A failed resync is logged and the watch carries on.
    """
    if on_change == OnChange.RESYNC and (resync is None or remote_path is None):
        raise WatchError("resync on change needs a remote path and a resync callback")

    directory = os.path.dirname(os.path.abspath(local_path))
    # Parent dir is watched so rename-style saves onto the file are seen too
    if not os.path.isdir(directory):
        raise WatchError(f"cannot watch {local_path}: {directory} does not exist")
    if not os.path.isfile(local_path):
        raise WatchError(f"cannot watch {local_path}: no such file")

    events: "queue.Queue[FileSystemEvent]" = queue.Queue()
    observer = observer_factory()
    try:
        observer.schedule(SingleFileHandler(local_path, events), directory, recursive=False)
        observer.start()
    except OSError as exc:
        raise WatchError(f"cannot watch {local_path}: {exc}") from exc

    log(f"watching {local_path} ({on_change.value})")
    try:
        while observer.is_alive() or not events.empty():
            if stop_event is not None and stop_event.is_set():
                break
            try:
                event = events.get(timeout=POLL_INTERVAL)
            except queue.Empty:
                continue
            log(describe(event))
            if on_change == OnChange.RESYNC and is_write(event, local_path):
                try:
                    resync(local_path, remote_path)
                except SyncError as exc:
                    warn(f"resync failed: {exc}")
    finally:
        observer.stop()
        observer.join(timeout=5)
        vlog("watcher stopped.")
