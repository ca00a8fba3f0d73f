"""
File watcher for the notes root.
Reports structural changes and external edits, debounced per path.
"""

import logging
import threading
from pathlib import Path
from typing import Callable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from notevault.api.models.files import FileResult
from notevault.config import config
from notevault.vault import VaultPaths, ensure_root_directory

logger = logging.getLogger(__name__)

STRUCTURAL = "structural"
CONTENT = "content"


class DebouncedHandler(FileSystemEventHandler):
    """
    File system event handler with debouncing.
    Collapses bursts of events for one path into a single callback.

    Creation, deletion and moves of files or folders are structural and
    trigger ``on_change()``. Modification of a file triggers
    ``on_external_change(path)``. Anything under a dot-named entry is ignored.
    """

    def __init__(
        self,
        root: str,
        on_change: Callable[[], None],
        on_external_change: Callable[[str], None],
        debounce_seconds: float = 0.3,
    ):
        super().__init__()
        self.root = Path(root)
        self.on_change = on_change
        self.on_external_change = on_external_change
        self.debounce_seconds = debounce_seconds

        # Track pending event kind per path
        self._pending: dict[str, str] = {}
        self._lock = threading.Lock()
        self._timers: dict[str, threading.Timer] = {}

    def _should_handle(self, path: str) -> bool:
        """Check that no component below the root is a dotfile."""
        try:
            parts = Path(path).relative_to(self.root).parts
        except ValueError:
            return False
        return not any(part.startswith(".") for part in parts)

    def _schedule_processing(self, path: str, kind: str) -> None:
        """Schedule debounced processing for a path."""
        with self._lock:
            # A structural event wins over a pending modification
            if self._pending.get(path) == STRUCTURAL:
                kind = STRUCTURAL
            self._pending[path] = kind

            if path in self._timers:
                self._timers[path].cancel()

            timer = threading.Timer(
                self.debounce_seconds,
                self._process_path,
                args=(path,)
            )
            timer.daemon = True
            self._timers[path] = timer
            timer.start()

    def _process_path(self, path: str) -> None:
        """Deliver the pending event for a path."""
        with self._lock:
            kind = self._pending.pop(path, None)
            self._timers.pop(path, None)
        if kind is None:
            return

        try:
            if kind == STRUCTURAL:
                self.on_change()
            else:
                self.on_external_change(path)
        except Exception as e:
            logger.error(f"Error processing {path}: {e}")

    def on_created(self, event: FileSystemEvent) -> None:
        if self._should_handle(event.src_path):
            logger.debug(f"Created: {event.src_path}")
            self._schedule_processing(event.src_path, STRUCTURAL)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if self._should_handle(event.src_path):
            logger.debug(f"Deleted: {event.src_path}")
            self._schedule_processing(event.src_path, STRUCTURAL)

    def on_modified(self, event: FileSystemEvent) -> None:
        # Folder modifications only echo changes to their entries
        if event.is_directory:
            return
        if self._should_handle(event.src_path):
            logger.debug(f"Modified: {event.src_path}")
            self._schedule_processing(event.src_path, CONTENT)

    def on_moved(self, event: FileSystemEvent) -> None:
        old_should = self._should_handle(event.src_path)
        new_should = self._should_handle(event.dest_path)
        logger.debug(f"Moved: {event.src_path} -> {event.dest_path}")

        if old_should:
            self._schedule_processing(event.src_path, STRUCTURAL)
        if new_should:
            self._schedule_processing(event.dest_path, STRUCTURAL)

    def stop(self) -> None:
        """Stop all pending timers."""
        with self._lock:
            for timer in self._timers.values():
                timer.cancel()
            self._timers.clear()
            self._pending.clear()


class VaultWatcher:
    """
    Watches the notes root for changes made outside the backend.
    Uses watchdog for cross-platform file system monitoring.
    """

    def __init__(
        self,
        root: Optional[Path] = None,
        on_change: Optional[Callable[[], None]] = None,
        on_external_change: Optional[Callable[[str], None]] = None,
        debounce_seconds: Optional[float] = None,
    ):
        self.paths = VaultPaths.from_root(root)
        self.on_change = on_change or (lambda: None)
        self.on_external_change = on_external_change or (lambda path: None)
        self.debounce_seconds = debounce_seconds or config.DEBOUNCE_SECONDS

        self._observer: Optional[Observer] = None
        self._handler: Optional[DebouncedHandler] = None
        self._running = False

    def start(self) -> FileResult:
        """Start watching; an active watch is replaced."""
        try:
            if self._running:
                self._shutdown()

            ensure_root_directory(self.paths)
            logger.info(f"Starting vault watcher: {self.paths.root}")

            self._handler = DebouncedHandler(
                root=self.paths.root,
                on_change=self.on_change,
                on_external_change=self.on_external_change,
                debounce_seconds=self.debounce_seconds,
            )
            self._observer = Observer()
            self._observer.schedule(self._handler, self.paths.root, recursive=True)
            self._observer.start()
            self._running = True
        except OSError as e:
            logger.error(f"Failed to start watcher: {e}")
            self._observer = None
            self._handler = None
            self._running = False
            return FileResult(success=False, error=str(e))

        logger.info("Vault watcher started")
        return FileResult(success=True)

    def stop(self) -> FileResult:
        """Stop watching. Stopping an idle watcher succeeds."""
        if not self._running:
            return FileResult(success=True)
        try:
            self._shutdown()
        except RuntimeError as e:
            logger.error(f"Failed to stop watcher: {e}")
            return FileResult(success=False, error=str(e))
        logger.info("Vault watcher stopped")
        return FileResult(success=True)

    def _shutdown(self) -> None:
        logger.info("Stopping vault watcher")
        try:
            if self._handler:
                self._handler.stop()
            if self._observer:
                self._observer.stop()
                self._observer.join(timeout=5)
        finally:
            self._running = False
            self._observer = None
            self._handler = None

    @property
    def is_running(self) -> bool:
        """Check if watcher is running."""
        return self._running
