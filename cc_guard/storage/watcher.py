"""
Incremental log tailing.

LogWatcher owns the per-file read offsets and the deduplication index. The
watchdog observer thread only queues notifications; they are applied on the
caller's thread by process_pending(), one complete read-parse-update at a
time, so the index is never mutated concurrently.
"""

import os
import queue
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Tuple, Union

import structlog
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from cc_guard.core.parser import parse_line
from cc_guard.core.pricing import ModelPricing
from .discovery import discover_log_files, is_log_file, resolve_logs_dir
from .models import UsageEntry
from .repository import UsageRepository


logger = structlog.get_logger()

CHANGE = "change"
ADD = "add"

WatchEvent = Tuple[str, str]


class _LogEventHandler(FileSystemEventHandler):
    """Forwards log file notifications from the observer thread to a queue."""

    def __init__(self, events: "queue.Queue[WatchEvent]"):
        super().__init__()
        self._events = events

    def _put(self, kind: str, path: Union[str, bytes]) -> None:
        path = os.fsdecode(path)
        if is_log_file(path):
            self._events.put((kind, path))

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._put(CHANGE, event.src_path)

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._put(ADD, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._put(ADD, event.dest_path)


class LogWatcher:
    """Watches a Claude Code logs directory and keeps a deduplicated entry set.

    Use as a context manager to hold the file-system watch:

        with LogWatcher(log_dir) as watcher:
            while True:
                watcher.process_pending(timeout=1.0)
                entries = watcher.entries
    """

    def __init__(
        self,
        log_dir: Optional[Union[str, Path]] = None,
        custom_pricing: Optional[Mapping[str, ModelPricing]] = None,
        observer_factory: Callable[[], Observer] = Observer,
    ):
        """Initialize the watcher without touching the file system.

        Args:
            log_dir: Logs directory (defaults to ~/.claude/projects)
            custom_pricing: Pricing overrides applied while parsing
            observer_factory: Builds the watchdog observer
        """
        self.log_dir = resolve_logs_dir(log_dir)
        self.custom_pricing = custom_pricing
        self.repository = UsageRepository()
        self.file_count = 0
        self.is_watching = False
        self.error: Optional[str] = None
        self.last_update: Optional[datetime] = None

        self._offsets: Dict[str, int] = {}
        self._events: "queue.Queue[WatchEvent]" = queue.Queue()
        self._observer_factory = observer_factory
        self._observer = None

    @property
    def entries(self) -> List[UsageEntry]:
        return self.repository.entries()

    def offset(self, path: Union[str, Path]) -> int:
        """Stored read offset for a file (0 if never read)."""
        return self._offsets.get(_key(path), 0)

    def start(self) -> bool:
        """Read every existing log file in full.

        Returns:
            False if the logs directory doesn't exist, True otherwise
        """
        if not self.log_dir.is_dir():
            self.error = f"Claude Code logs directory not found: {self.log_dir}"
            self.is_watching = False
            logger.warning("logs_directory_not_found", path=str(self.log_dir))
            return False

        log_files = discover_log_files(self.log_dir)
        for log_file in log_files:
            self._read_new_lines(log_file.path)

        self.file_count = len(log_files)
        self.is_watching = True
        self.error = None
        logger.info(
            "log_watcher_started",
            path=str(self.log_dir),
            file_count=self.file_count,
            entry_count=len(self.repository),
        )
        return True

    def handle_change(self, path: Union[str, Path]) -> int:
        """Read bytes appended to a file since the last read.

        Returns:
            Number of entries accepted
        """
        return self._read_new_lines(path)

    def handle_created(self, path: Union[str, Path]) -> int:
        """Read a newly created file and count it as watched."""
        self.file_count += 1
        return self._read_new_lines(path)

    def handle_error(self, error: BaseException) -> None:
        """Report a watch-subsystem error; entries and offsets are kept."""
        self.error = f"File watcher error: {error}"
        logger.error("watcher_error", error=str(error))

    def process_pending(self, timeout: Optional[float] = None) -> int:
        """Apply queued notifications on the calling thread.

        Args:
            timeout: Seconds to wait for the first notification (None: don't wait)

        Returns:
            Number of notifications processed
        """
        self._check_observer()
        try:
            if timeout:
                event = self._events.get(timeout=timeout)
            else:
                event = self._events.get_nowait()
        except queue.Empty:
            return 0

        processed = 0
        while True:
            self._dispatch(event)
            processed += 1
            try:
                event = self._events.get_nowait()
            except queue.Empty:
                return processed

    def stop(self) -> None:
        """Release the file-system watch."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
            self._observer = None
            logger.info("log_watcher_stopped", path=str(self.log_dir))
        self.is_watching = False

    def __enter__(self) -> "LogWatcher":
        if self.start():
            self._start_observer()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def _start_observer(self) -> None:
        try:
            observer = self._observer_factory()
            observer.schedule(_LogEventHandler(self._events), str(self.log_dir), recursive=True)
            observer.start()
        except OSError as e:
            self.handle_error(e)
            return
        self._observer = observer

    def _check_observer(self) -> None:
        if self._observer is not None and not self._observer.is_alive():
            self._observer = None
            self.is_watching = False
            self.handle_error(RuntimeError("observer thread stopped"))

    def _dispatch(self, event: WatchEvent) -> None:
        kind, path = event
        if kind == CHANGE:
            self.handle_change(path)
        elif kind == ADD:
            self.handle_created(path)

    def _read_new_lines(self, path: Union[str, Path]) -> int:
        key = _key(path)
        offset = self._offsets.get(key, 0)
        try:
            size = os.stat(key).st_size
            if size <= offset:
                return 0
            with open(key, "rb") as f:
                f.seek(offset)
                data = f.read(size - offset)
        except OSError as e:
            # Deleted or unreadable; keep serving what we have
            logger.debug("log_file_skipped", path=key, error=str(e))
            return 0

        # Hold back an unterminated last line until the rest of it is written
        end = data.rfind(b"\n")
        if end < 0:
            return 0
        self._offsets[key] = offset + end + 1
        data = data[:end + 1]

        added = 0
        for line in data.decode("utf-8", errors="replace").split("\n"):
            entry = parse_line(line, key, self.custom_pricing)
            if entry is not None:
                self.repository.add(entry)
                added += 1

        if added:
            self.last_update = datetime.now(timezone.utc)
        return added


def _key(path: Union[str, Path]) -> str:
    return os.path.abspath(os.fspath(path))
