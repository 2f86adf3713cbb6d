from __future__ import annotations

import logging
from pathlib import Path

import pytest

import heading_tags.index as index_module
from heading_tags.config import HeadingTagsConfig
from heading_tags.filesystem import path_to_uri
from heading_tags.index import TagIndexService
from heading_tags.models import Document, HeadingKind


@pytest.fixture()
def service(tmp_path: Path) -> TagIndexService:
    return TagIndexService(tmp_path, HeadingTagsConfig())


def test_removing_a_file_leaves_the_survivor(service, write_file):
    survivor = write_file("a.md", "# Keep <!-- #todo -->\n")
    doomed = write_file("b.md", "# Drop <!-- #todo -->\n")
    service.scan_workspace()
    assert len(service.get_blocks_by_tag("todo")) == 2

    doomed.unlink()
    service.remove_file(doomed)

    blocks = service.get_blocks_by_tag("todo")
    assert [(block.uri, block.text) for block in blocks] == [(path_to_uri(survivor), "Keep")]


def test_scan_is_idempotent(service, write_file):
    write_file("a.md", "# A <!-- #x #y -->\n## B <!-- #x -->\n")
    write_file("nested/c.typ", "= C // #y\n")

    service.scan_workspace()
    first = {tag: [block.id for block in service.get_blocks_by_tag(tag)] for tag in ("x", "y")}
    service.scan_workspace()
    second = {tag: [block.id for block in service.get_blocks_by_tag(tag)] for tag in ("x", "y")}

    assert first == second
    assert len(first["x"]) == 2
    assert len(first["y"]) == 2


def test_excluded_directories_are_skipped(service, write_file):
    write_file("node_modules/pkg/readme.md", "# Dep <!-- #todo -->\n")
    write_file("notes.txt", "# Not a document <!-- #todo -->\n")

    service.scan_workspace()
    assert service.get_blocks_by_tag("todo") == []
    assert service.indexed_files() == []


def test_update_document_replaces_previous_entries(service):
    service.update_document(Document(uri="mem://a", text="# A <!-- #old -->"))
    service.update_document(Document(uri="mem://a", text="# A <!-- #new -->"))

    assert service.get_blocks_by_tag("old") == []
    assert [block.id for block in service.get_blocks_by_tag("new")] == ["mem://a:0"]


def test_repeated_tag_on_one_heading_is_indexed_once(service):
    service.update_document(Document(uri="mem://a", text="# A <!-- #x #x -->\n"))

    assert [block.id for block in service.get_blocks_by_tag("x")] == ["mem://a:0"]


def test_breadcrumbs_and_ids(service):
    service.update_document(
        Document(uri="mem://a", text="# Top\n## [Mid](x) <!-- #todo :: check :: -->\n")
    )

    (block,) = service.get_blocks_by_tag("todo")
    assert block.id == "mem://a:1"
    assert block.breadcrumb == ["Top", "Mid"]
    assert block.heading.remark == "check"
    assert service.get_breadcrumb("mem://a", 0) == ["Top"]
    assert service.get_breadcrumb("mem://a", 5) is None


def test_blocks_for_file_are_deduplicated_and_sorted(service):
    service.update_document(
        Document(uri="mem://a", text="# B <!-- #y -->\n# A <!-- #x #y -->\n", kind=HeadingKind.MARKDOWN)
    )

    assert [block.line for block in service.get_blocks_for_file("mem://a")] == [0, 1]
    assert [block.line for block in service.get_blocks_for_file("mem://a", "x")] == [1]
    assert service.get_tags_for_file("mem://a") == ["x", "y"]


def test_all_tags_include_definitions(service):
    service.update_document(Document(uri="mem://a", text="# A <!-- #custom -->"))
    assert service.get_all_tags() == ["custom", "highlight", "review", "todo"]


def test_get_remark_tag(tmp_path: Path):
    service = TagIndexService(tmp_path, HeadingTagsConfig(remark_tag="note"))
    assert service.get_remark_tag() == "note"


def test_save_document_registers_new_tags_within_pin_budget(tmp_path: Path):
    service = TagIndexService(tmp_path, HeadingTagsConfig(max_pinned=1))

    registered = service.save_document(
        Document(uri="mem://a", text="# A <!-- #beta #alpha #todo -->")
    )

    assert [(definition.name, definition.pinned) for definition in registered] == [
        ("alpha", True),
        ("beta", False),
    ]
    assert service.definitions.get("alpha").icon == "tag"
    assert service.definitions.get("alpha").color == "charts.blue"
    assert service.save_document(Document(uri="mem://a", text="# A <!-- #alpha -->")) == []


def test_auto_register_skips_invalid_names(service, caplog):
    with caplog.at_level(logging.WARNING):
        registered = service.auto_register_new_tags(["ok", "  ", "two words"])

    assert [definition.name for definition in registered] == ["ok"]
    assert "Skipping tag registration" in caplog.text


def test_unreadable_files_are_logged_and_skipped(service, write_file, tmp_path: Path, caplog):
    write_file("good.md", "# Good <!-- #todo -->\n")
    (tmp_path / "bad.md").write_bytes(b"# Bad <!-- #todo -->\n\xff\n")

    with caplog.at_level(logging.WARNING):
        assert service.scan_workspace()

    assert [block.text for block in service.get_blocks_by_tag("todo")] == ["Good"]
    assert "Failed to index" in caplog.text


def test_oversized_files_are_skipped(tmp_path: Path, write_file):
    write_file("big.md", "# Big <!-- #todo -->\n" + "x" * 100)
    service = TagIndexService(tmp_path, HeadingTagsConfig(max_file_size=10))

    service.scan_workspace()
    assert service.get_blocks_by_tag("todo") == []


def test_update_file_failure_keeps_entries(service, write_file):
    target = write_file("a.md", "# A <!-- #todo -->\n")
    service.scan_workspace()
    target.unlink()

    assert service.update_file(target) is False
    assert len(service.get_blocks_by_tag("todo")) == 1


def test_update_file_reindexes(service, write_file):
    target = write_file("a.md", "# A <!-- #todo -->\n")
    service.scan_workspace()
    target.write_text("# A <!-- #done -->\n", encoding="utf-8")

    assert service.update_file(target)
    assert service.get_blocks_by_tag("todo") == []
    assert len(service.get_blocks_by_tag("done")) == 1


def test_listeners_are_notified_once_per_scan(service, write_file):
    write_file("a.md", "# A\n")
    write_file("b.md", "# B\n")
    events = []
    unsubscribe = service.subscribe(lambda: events.append("changed"))

    service.scan_workspace()
    assert events == ["changed"]

    unsubscribe()
    service.scan_workspace()
    assert events == ["changed"]


def test_failing_listener_does_not_break_updates(service, caplog):
    def broken():
        raise RuntimeError("boom")

    service.subscribe(broken)
    with caplog.at_level(logging.ERROR):
        service.update_document(Document(uri="mem://a", text="# A <!-- #x -->"))

    assert len(service.get_blocks_by_tag("x")) == 1
    assert "listener failed" in caplog.text


def test_scan_requested_during_scan_is_coalesced(service, write_file, monkeypatch):
    write_file("a.md", "# A <!-- #todo -->\n")
    original_load = index_module.load_document
    loads = []
    nested_results = []
    notifications = []
    service.subscribe(lambda: notifications.append(True))

    def reentrant_load(path, max_file_size=None):
        loads.append(path)
        if len(loads) == 1:
            nested_results.append(service.scan_workspace())
        return original_load(path, max_file_size)

    monkeypatch.setattr(index_module, "load_document", reentrant_load)

    assert service.scan_workspace() is True
    assert nested_results == [False]
    assert len(loads) == 2
    assert len(notifications) == 1
    assert len(service.get_blocks_by_tag("todo")) == 1


def test_failed_scan_resets_state(service, write_file, monkeypatch):
    write_file("a.md", "# A\n")

    def exploding_load(path, max_file_size=None):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(index_module, "load_document", exploding_load)
    with pytest.raises(RuntimeError):
        service.scan_workspace()

    monkeypatch.undo()
    assert service.scan_workspace() is True
