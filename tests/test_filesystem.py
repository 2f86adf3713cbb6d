from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

from heading_tags.filesystem import (
    get_max_file_size,
    heading_kind_for_path,
    iter_workspace_files,
    load_document,
    path_to_uri,
    read_text,
    stat_document,
    write_document,
)
from heading_tags.models import HeadingKind


def test_get_max_file_size_default(monkeypatch):
    monkeypatch.delenv("HEADING_TAGS_MAX_FILE_SIZE", raising=False)
    assert get_max_file_size(default=42) == 42


def test_get_max_file_size_reads_env(monkeypatch):
    monkeypatch.setenv("HEADING_TAGS_MAX_FILE_SIZE", "2048")
    assert get_max_file_size() == 2048


def test_get_max_file_size_rejects_non_integer(monkeypatch):
    monkeypatch.setenv("HEADING_TAGS_MAX_FILE_SIZE", "invalid")
    with pytest.raises(ValueError):
        get_max_file_size()


def test_get_max_file_size_rejects_non_positive(monkeypatch):
    monkeypatch.setenv("HEADING_TAGS_MAX_FILE_SIZE", "0")
    with pytest.raises(ValueError):
        get_max_file_size()


@pytest.mark.parametrize(
    ("name", "kind"),
    [("paper.typ", HeadingKind.TYPST), ("PAPER.TYP", HeadingKind.TYPST), ("notes.md", HeadingKind.MARKDOWN)],
)
def test_heading_kind_for_path(name: str, kind: HeadingKind):
    assert heading_kind_for_path(name) is kind


def test_iter_workspace_files_filters_and_sorts(tmp_path: Path):
    for name in ["b.md", "a.typ", "skip.txt", "sub/c.markdown", "node_modules/dep.md", ".git/x.md"]:
        target = tmp_path / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text("# x\n", encoding="utf-8")

    found = [path.relative_to(tmp_path).as_posix() for path in iter_workspace_files(tmp_path)]
    assert found == ["a.typ", "b.md", "sub/c.markdown"]


def test_iter_workspace_files_custom_extensions(tmp_path: Path):
    (tmp_path / "a.md").write_text("# x\n", encoding="utf-8")
    (tmp_path / "b.typ").write_text("= x\n", encoding="utf-8")

    assert list(iter_workspace_files(tmp_path, [".typ"], [])) == [tmp_path / "b.typ"]


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="Symlink support is required")
def test_symlinks_are_rejected(tmp_path: Path):
    source = tmp_path / "source.md"
    source.write_text("# Heading\n", encoding="utf-8")
    link = tmp_path / "alias.md"
    try:
        os.symlink(source, link)
    except OSError as error:  # pragma: no cover - platform dependent
        pytest.skip(f"Unable to create symlink: {error}")

    with pytest.raises(IOError, match="Symlinks"):
        stat_document(link)
    assert list(iter_workspace_files(tmp_path)) == [source]


def test_stat_document_rejects_directory(tmp_path: Path):
    with pytest.raises(IOError, match="not a regular file"):
        stat_document(tmp_path)


def test_stat_document_size_limit(tmp_path: Path):
    target = tmp_path / "notes.md"
    target.write_text("# A\n", encoding="utf-8")

    assert stat_document(target, max_file_size=4).st_size == 4
    with pytest.raises(IOError, match="maximum allowed size"):
        stat_document(target, max_file_size=3)


def test_read_text_missing_file(tmp_path: Path):
    with pytest.raises(IOError, match="Cannot access"):
        read_text(tmp_path / "missing.md")


def test_load_document_keeps_line_endings(tmp_path: Path):
    target = tmp_path / "notes.md"
    target.write_bytes(b"# A\r\nbody\r\n")

    document = load_document(target)

    assert document.text == "# A\r\nbody\r\n"
    assert document.kind is HeadingKind.MARKDOWN
    assert document.uri == path_to_uri(target)


def test_load_document_size_limit(tmp_path: Path):
    target = tmp_path / "notes.md"
    target.write_text("# A\n", encoding="utf-8")

    with pytest.raises(IOError, match="maximum allowed size"):
        load_document(target, max_file_size=2)


def test_write_document_replaces_content_and_keeps_mode(tmp_path: Path):
    target = tmp_path / "notes.md"
    target.write_text("# Old\n", encoding="utf-8")
    os.chmod(target, 0o640)

    write_document(target, "# New\r\n")

    assert target.read_bytes() == b"# New\r\n"
    assert stat.S_IMODE(os.stat(target).st_mode) == 0o640
    assert [path.name for path in tmp_path.iterdir()] == ["notes.md"]


def test_write_document_missing_file(tmp_path: Path):
    with pytest.raises(IOError):
        write_document(tmp_path / "missing.md", "text")
