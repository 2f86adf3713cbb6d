"""Filesystem watcher that keeps a `TagIndexService` current.

Create and modify events re-index the file, delete events drop it, and moves
do both.
"""

from __future__ import annotations

import logging
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .index import TagIndexService

log = logging.getLogger(__name__)


def _as_path(raw_path: str | bytes) -> Path:
    return Path(raw_path if isinstance(raw_path, str) else raw_path.decode())


class _DocumentEventHandler(FileSystemEventHandler):
    """Watchdog handler that forwards document events to the tag index."""

    def __init__(self, service: TagIndexService) -> None:
        super().__init__()
        self._service = service
        self._extensions = tuple(service.config.extensions)
        self._exclude_dirs = set(service.config.exclude_dirs)

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._update(event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._update(event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._remove(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._remove(event.src_path)
        self._update(event.dest_path)

    def _is_document(self, path: Path) -> bool:
        if path.suffix.lower() not in self._extensions:
            return False
        return not any(part in self._exclude_dirs for part in path.parts)

    def _update(self, raw_path: str | bytes) -> None:
        path = _as_path(raw_path)
        if self._is_document(path):
            log.debug("Re-indexing %s", path)
            self._service.update_file(path)

    def _remove(self, raw_path: str | bytes) -> None:
        path = _as_path(raw_path)
        if self._is_document(path):
            log.debug("Removing %s from index", path)
            self._service.remove_file(path)


class WorkspaceWatcher:
    """Watchdog observer over a tag index's workspace root.

    Args:
        service: Index updated on every relevant file event.
    """

    def __init__(self, service: TagIndexService) -> None:
        self._service = service
        self._observer: Observer | None = None

    @property
    def running(self) -> bool:
        return self._observer is not None

    def start(self) -> None:
        """Start the filesystem observer."""
        root = self._service.root
        if not root.is_dir():
            log.warning("Workspace root %s does not exist; not watching", root)
            return

        handler = _DocumentEventHandler(self._service)
        self._observer = Observer()
        self._observer.schedule(handler, str(root), recursive=True)
        self._observer.daemon = True
        self._observer.start()
        log.info("Watching: %s", root)

    def stop(self) -> None:
        """Stop the filesystem observer."""
        if self._observer:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None
