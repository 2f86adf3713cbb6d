"""Workspace-wide index of tagged headings."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from pathlib import Path

from .config import HeadingTagsConfig
from .definitions import TagDefinitionStore, validate_tag_name
from .exceptions import TagValidationError
from .filesystem import iter_workspace_files, load_document, path_to_uri
from .models import Document, TagDefinition, TaggedHeading
from .parser import parse_document
from .tree import compute_breadcrumbs

log = logging.getLogger(__name__)

Listener = Callable[[], None]


class TagIndexService:
    """Tag → heading index over every document of a workspace.

    Each document is indexed by purging all of its entries and re-inserting
    them from a fresh parse. Listeners are notified once after each full scan
    and after each single-document update.

    Readers may see a partial index while a scan is running.

    Args:
        root: Workspace directory scanned by `scan_workspace`.
        config: Workspace configuration.
        definitions: Tag definition store; built from `config` when omitted.

    Examples:
        service = TagIndexService(Path("notes"), HeadingTagsConfig())
        service.scan_workspace()
        service.get_blocks_by_tag("todo")
    """

    def __init__(
        self,
        root: Path,
        config: HeadingTagsConfig | None = None,
        definitions: TagDefinitionStore | None = None,
    ):
        self.root = root
        self.config = config or HeadingTagsConfig()
        self.definitions = definitions or TagDefinitionStore.from_config(self.config)
        self._tag_index: dict[str, list[TaggedHeading]] = {}
        self._breadcrumbs: dict[str, dict[int, list[str]]] = {}
        self._listeners: list[Listener] = []
        self._lock = threading.RLock()
        self._scanning = False
        self._rescan_requested = False

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register `listener` for update notifications.

        Returns:
            Callable[[], None]: Function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                log.exception("Tag index listener failed")

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def scan_workspace(self) -> bool:
        """Rebuild the whole index from the files under `root`.

        Files are read one at a time. A file that cannot be read is logged and
        left out of the index. A scan requested while another one is running
        is coalesced into one extra pass after the current one.

        Returns:
            bool: False when the request was coalesced into a running scan.
        """
        with self._lock:
            if self._scanning:
                self._rescan_requested = True
                log.debug("Scan already running; queued another pass")
                return False
            self._scanning = True

        try:
            while True:
                self._scan_once()
                with self._lock:
                    if not self._rescan_requested:
                        self._scanning = False
                        break
                    self._rescan_requested = False
        except BaseException:
            with self._lock:
                self._scanning = False
                self._rescan_requested = False
            raise

        self._notify()
        return True

    def _scan_once(self) -> None:
        files = list(
            iter_workspace_files(self.root, self.config.extensions, self.config.exclude_dirs)
        )
        with self._lock:
            self._tag_index.clear()
            self._breadcrumbs.clear()

        for path in files:
            try:
                document = load_document(path, self.config.max_file_size)
            except (OSError, UnicodeDecodeError) as error:
                log.warning("Failed to index %s: %s", path, error)
                continue
            with self._lock:
                self._index_document(document)

        log.info("Indexed %d files, %d tags", len(files), len(self._tag_index))

    def update_document(self, document: Document) -> None:
        """Re-index one document from its current text."""
        with self._lock:
            self._index_document(document)
        self._notify()

    def update_file(self, path: Path) -> bool:
        """Re-index a file from disk.

        Returns:
            bool: False when the file could not be read; its previous entries
                are kept.
        """
        try:
            document = load_document(path, self.config.max_file_size)
        except (OSError, UnicodeDecodeError) as error:
            log.warning("Failed to update %s: %s", path, error)
            return False

        self.update_document(document)
        return True

    def remove_file(self, uri: str | Path) -> None:
        """Drop every entry that belongs to a file."""
        with self._lock:
            self._remove_entries_for(self._normalize_uri(uri))
        self._notify()

    def save_document(self, document: Document) -> list[TagDefinition]:
        """Re-index a saved document and register the tags it introduces.

        Returns:
            list[TagDefinition]: Definitions registered for new tags.
        """
        self.update_document(document)
        return self.auto_register_new_tags(self.get_tags_for_file(document.uri))

    def _index_document(self, document: Document) -> None:
        matches = parse_document(document)
        uri = document.uri
        breadcrumbs = compute_breadcrumbs(matches)

        self._remove_entries_for(uri)
        self._breadcrumbs[uri] = breadcrumbs

        for match in matches:
            tagged = TaggedHeading(
                heading=match,
                uri=uri,
                id=f"{uri}:{match.line}",
                breadcrumb=breadcrumbs.get(match.line, []),
            )
            for tag in dict.fromkeys(match.tags):
                self._tag_index.setdefault(tag, []).append(tagged)

    def _remove_entries_for(self, uri: str) -> None:
        self._breadcrumbs.pop(uri, None)
        for tag in list(self._tag_index):
            remaining = [block for block in self._tag_index[tag] if block.uri != uri]
            if remaining:
                self._tag_index[tag] = remaining
            else:
                del self._tag_index[tag]

    def _normalize_uri(self, uri: str | Path) -> str:
        return path_to_uri(uri) if isinstance(uri, Path) else uri

    # ------------------------------------------------------------------
    # Tag definitions
    # ------------------------------------------------------------------

    def auto_register_new_tags(self, tags: Iterable[str]) -> list[TagDefinition]:
        """Define tags that have no definition yet.

        New definitions get the configured default icon and color. They are
        pinned only while fewer than ``config.max_pinned`` definitions are
        pinned. Invalid names are logged and skipped.

        Returns:
            list[TagDefinition]: The definitions that were added.
        """
        registered = []
        with self._lock:
            for tag in tags:
                if tag in self.definitions:
                    continue
                try:
                    name = validate_tag_name(tag)
                except TagValidationError as error:
                    log.warning("Skipping tag registration: %s", error)
                    continue
                if name in self.definitions:
                    continue

                pinned = self.definitions.pinned_count() < self.config.max_pinned
                definition = self.definitions.add(
                    TagDefinition(
                        name=name,
                        icon=self.config.default_icon,
                        color=self.config.default_color,
                        pinned=pinned,
                    )
                )
                log.info("Registered new tag %s", name)
                registered.append(definition)
        return registered

    def get_remark_tag(self) -> str:
        return self.config.remark_tag

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_all_tags(self) -> list[str]:
        return sorted(set(self._tag_index) | set(self.definitions.names()))

    def get_blocks_by_tag(self, tag: str) -> list[TaggedHeading]:
        return list(self._tag_index.get(tag, []))

    def get_tags_for_file(self, uri: str | Path) -> list[str]:
        uri = self._normalize_uri(uri)
        return sorted(
            tag for tag, blocks in self._tag_index.items() if any(block.uri == uri for block in blocks)
        )

    def get_blocks_for_file(self, uri: str | Path, tag: str | None = None) -> list[TaggedHeading]:
        """Return tagged headings of one file, sorted by line.

        Without `tag`, headings carrying several tags appear once.
        """
        uri = self._normalize_uri(uri)
        if tag is not None:
            candidates = self._tag_index.get(tag, [])
        else:
            candidates = [block for blocks in self._tag_index.values() for block in blocks]

        blocks: list[TaggedHeading] = []
        seen_ids: set[str] = set()
        for block in candidates:
            if block.uri == uri and block.id not in seen_ids:
                seen_ids.add(block.id)
                blocks.append(block)

        return sorted(blocks, key=lambda block: block.line)

    def get_breadcrumb(self, uri: str | Path, line: int) -> list[str] | None:
        return self._breadcrumbs.get(self._normalize_uri(uri), {}).get(line)

    def indexed_files(self) -> list[str]:
        return sorted(self._breadcrumbs)
