"""Text edits on heading blocks.

Block edits take a `Document` plus nodes from an outline built on that exact
text, and return the new document text. `compile_tagged_blocks` builds a new
document from indexed blocks of several files. Nothing is written to disk.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from .comments import normalize_tags_and_remark, update_line_with_comment
from .constants import (
    DEFAULT_REMARK_TAG,
    MAX_HEADING_LEVEL,
    MIN_HEADING_LEVEL,
    TYPST_HEADER_PREFIXES,
)
from .definitions import validate_tag_name
from .exceptions import BlockEditError
from .models import Document, HeadingKind, HeadingMatch, HeadingNode, Range, TaggedHeading
from .parser import parse_document
from .subtree import compute_range, filter_nested_selections
from .tree import HeadingOutline, build_outline

LINE_SPLIT_PATTERN = re.compile(r"(\r?\n)")


@dataclass
class _Block:
    node: HeadingNode
    range: Range
    start: int
    end: int
    text: str


def _line_ending(text: str) -> str:
    return "\r\n" if "\r\n" in text else "\n"


def _collect_blocks(
    document: Document, ordered_nodes: list[HeadingNode], nodes: list[HeadingNode]
) -> list[_Block]:
    blocks = []
    for node in filter_nested_selections(document, ordered_nodes, nodes):
        block_range = compute_range(document, ordered_nodes, node)
        blocks.append(
            _Block(
                node=node,
                range=block_range,
                start=document.offset_at(block_range.start),
                end=document.offset_at(block_range.end),
                text=document.get_text(block_range),
            )
        )
    return blocks


def _remove_blocks(text: str, blocks: list[_Block]) -> str:
    for block in sorted(blocks, key=lambda item: item.start, reverse=True):
        text = text[: block.start] + text[block.end :]
    return text


def _replace_lines(text: str, replacements: dict[int, str]) -> str:
    parts = LINE_SPLIT_PATTERN.split(text)
    for line, replacement in replacements.items():
        parts[line * 2] = replacement
    return "".join(parts)


def _heading_at(document: Document, line: int) -> HeadingMatch:
    if not 0 <= line < document.line_count:
        raise BlockEditError(f"Line {line + 1} is outside of {document.uri}")
    match = next((item for item in parse_document(document) if item.line == line), None)
    if match is None:
        raise BlockEditError(f"Could not parse heading at line {line + 1}")
    return match


def delete_blocks(
    document: Document, ordered_nodes: list[HeadingNode], nodes: list[HeadingNode]
) -> str:
    """Delete the selected heading blocks, including their content.

    Nodes nested inside another selected block are deleted once, with their
    ancestor.
    """
    return _remove_blocks(document.text, _collect_blocks(document, ordered_nodes, nodes))


def _relocate(document: Document, blocks: list[_Block], target: int) -> str:
    """Remove `blocks` and insert their combined text at offset `target`.

    `target` is an offset in the original text outside every block.
    """
    newline = _line_ending(document.text)
    removed_before = sum(block.end - block.start for block in blocks if block.start < target)
    remaining = _remove_blocks(document.text, blocks)
    insert_at = max(0, target - removed_before)

    pieces = [block.text for block in blocks]
    for index, piece in enumerate(pieces):
        if not piece.endswith("\n"):
            pieces[index] = piece + newline
    combined = "".join(pieces)

    if insert_at >= len(remaining) and remaining and not remaining.endswith("\n"):
        remaining += newline
        insert_at = len(remaining)

    result = remaining[:insert_at] + combined + remaining[insert_at:]
    if not document.text.endswith("\n") and result.endswith(newline):
        result = result[: -len(newline)]
    return result


def move_blocks(outline: HeadingOutline, document: Document, nodes: list[HeadingNode], offset: int) -> str:
    """Move sibling heading blocks up (``offset < 0``) or down among their siblings.

    Returns the text unchanged when the move would leave the sibling list.

    Raises:
        BlockEditError: If the nodes do not share the same parent.

    Examples:
        new_text = move_blocks(outline, document, [outline.roots[1]], -1)
    """
    if not nodes:
        return document.text

    nodes = sorted(nodes, key=lambda item: item.line)
    parent = outline.parent_of(nodes[0])
    if any(outline.parent_of(node) is not parent for node in nodes):
        raise BlockEditError("Select headings within the same parent to reorder.")

    siblings = outline.siblings_of(nodes[0])
    indices = [siblings.index(node) for node in nodes]
    new_index = min(indices) + offset if offset < 0 else max(indices) + offset
    if new_index < 0 or new_index >= len(siblings):
        return document.text

    blocks = _collect_blocks(document, outline.ordered, nodes)
    reference = compute_range(document, outline.ordered, siblings[new_index])
    target = document.offset_at(reference.start if offset < 0 else reference.end)
    return _relocate(document, blocks, target)


def move_blocks_before(
    outline: HeadingOutline,
    document: Document,
    nodes: list[HeadingNode],
    target: HeadingNode | None,
) -> str:
    """Move heading blocks in front of `target`, or to the end when it is None.

    Raises:
        BlockEditError: If the target lies inside a moved block or contains one.
    """
    blocks = _collect_blocks(document, outline.ordered, nodes)
    if not blocks:
        return document.text

    if target is None:
        return _relocate(document, blocks, len(document.text))

    target_range = compute_range(document, outline.ordered, target)
    for block in blocks:
        if block.range.contains(target_range) or target_range.contains(block.range):
            raise BlockEditError("Cannot move a heading block into its own subtree.")

    return _relocate(document, blocks, document.offset_at(target_range.start))


def _shift_marker(line: str, match: HeadingMatch, delta: int) -> str:
    marker = "#" if match.kind is HeadingKind.MARKDOWN else "="
    level = min(MAX_HEADING_LEVEL, max(MIN_HEADING_LEVEL, match.level + delta))
    return marker * level + line[match.level :]


def shift_heading_levels(document: Document, lines: Iterable[int], delta: int) -> str:
    """Change the level of the headings on `lines` by `delta`.

    Levels are clamped to 1..6 for both Markdown and Typst. Lines that are not
    headings are left alone.
    """
    matches = {match.line: match for match in parse_document(document)}
    source_lines = document.lines
    replacements = {
        line: _shift_marker(source_lines[line], matches[line], delta)
        for line in lines
        if line in matches
    }
    return _replace_lines(document.text, replacements)


def shift_block(
    document: Document, ordered_nodes: list[HeadingNode], node: HeadingNode, delta: int
) -> str:
    """Shift a heading and every heading nested inside its block."""
    block_range = compute_range(document, ordered_nodes, node)
    lines = [
        candidate.line for candidate in ordered_nodes if block_range.contains(candidate.range)
    ]
    return shift_heading_levels(document, lines, delta)


def set_heading_tags(
    document: Document, line: int, tags: list[str], remark_tag: str = DEFAULT_REMARK_TAG
) -> str:
    """Replace the tags of the heading on `line`, keeping its remark when allowed.

    Raises:
        TagValidationError: If a tag name is empty or contains whitespace.
        BlockEditError: If `line` is not a heading.
    """
    tags = [validate_tag_name(tag) for tag in tags]
    match = _heading_at(document, line)
    content = normalize_tags_and_remark(tags, match.remark, remark_tag, ensure_remark_tag=False)
    updated = update_line_with_comment(document.lines[line], match.kind, content.tags, content.remark)
    return _replace_lines(document.text, {line: updated})


def set_heading_remark(
    document: Document, line: int, remark: str | None, remark_tag: str = DEFAULT_REMARK_TAG
) -> str:
    """Replace the remark of the heading on `line`.

    A remark on an untagged heading adds `remark_tag` so it stays searchable.
    """
    match = _heading_at(document, line)
    content = normalize_tags_and_remark(match.tags, remark, remark_tag)
    updated = update_line_with_comment(document.lines[line], match.kind, content.tags, content.remark)
    return _replace_lines(document.text, {line: updated})


def rename_tag(document: Document, old_name: str, new_name: str) -> str:
    """Rename a tag in every heading comment of the document.

    Raises:
        TagValidationError: If `new_name` is not a valid tag name.
    """
    validate_tag_name(new_name)
    source_lines = document.lines
    replacements = {}

    for match in parse_document(document):
        if old_name not in match.tags:
            continue
        renamed = []
        for tag in match.tags:
            tag = new_name if tag == old_name else tag
            if tag not in renamed:
                renamed.append(tag)
        replacements[match.line] = update_line_with_comment(
            source_lines[match.line], match.kind, renamed, match.remark
        )

    return _replace_lines(document.text, replacements)


def export_subtree(
    document: Document, ordered_nodes: list[HeadingNode], node: HeadingNode, preamble: str = ""
) -> str:
    """Return a heading block as a standalone document.

    `preamble` (for example Typst imports) is placed before the block. Line
    endings are normalized to ``\\n`` and the result ends with a newline.
    """
    block_text = document.get_text(compute_range(document, ordered_nodes, node))

    parts = []
    normalized_preamble = preamble.replace("\r\n", "\n").strip()
    if normalized_preamble:
        parts.append(normalized_preamble)
    parts.append(block_text.replace("\r\n", "\n").lstrip())

    combined = "\n\n".join(parts)
    if not combined.endswith("\n"):
        combined += "\n"
    return combined


def extract_file_headers(document: Document) -> list[str]:
    """Return the `#import`, `#set` and `#show` lines opening a Typst file.

    Scanning stops at the first heading or other content line. Markdown
    documents have no such headers.

    Examples:
        extract_file_headers(Document("a.typ", '#import "x.typ"\\n= A', HeadingKind.TYPST))
        # ['#import "x.typ"']
    """
    if document.kind is not HeadingKind.TYPST:
        return []

    headers = []
    for line in document.lines:
        stripped = line.strip()
        if stripped.startswith(TYPST_HEADER_PREFIXES):
            headers.append(line)
        elif stripped and not stripped.startswith("#"):
            break
    return headers


def _heading_marker(kind: HeadingKind, level: int) -> str:
    if kind is HeadingKind.TYPST:
        return "=" * level
    return "#" * min(level, MAX_HEADING_LEVEL)


def compile_tagged_blocks(
    documents: Mapping[str, Document],
    blocks: Iterable[TaggedHeading],
    title: str | None = None,
) -> str:
    """Gather tagged heading blocks from several files into one document.

    Blocks are grouped by file in the order their files first appear, then
    taken in line order. Each block is preceded by its ancestor headings,
    rebuilt from its breadcrumb with one level per ancestor. A block already
    inside another selected block of the same file is taken once, with that
    block. The Typst headers of every contributing file are placed first,
    without duplicates, followed by an optional top-level `title` heading.

    Args:
        documents: Loaded documents keyed by uri.
        blocks: Tagged headings to gather, as returned by the tag index.
        title: Optional title heading for the new document.

    Returns:
        str: The compiled text, ending with a newline.

    Raises:
        BlockEditError: If a block's document is missing or its line is no
            longer a heading.

    Examples:
        text = compile_tagged_blocks(documents, service.get_blocks_by_tag("todo"), "Todo")
    """
    by_uri: dict[str, dict[int, TaggedHeading]] = {}
    for block in blocks:
        by_uri.setdefault(block.uri, {}).setdefault(block.line, block)

    headers: dict[str, None] = {}
    sections: list[str] = []
    title_kind = None

    for uri, file_blocks in by_uri.items():
        document = documents.get(uri)
        if document is None:
            raise BlockEditError(f"Document {uri} is not loaded")
        title_kind = title_kind or document.kind
        headers.update(dict.fromkeys(extract_file_headers(document)))

        outline = build_outline(parse_document(document))
        nodes = []
        for line in file_blocks:
            node = outline.find_by_line(line)
            if node is None:
                raise BlockEditError(f"Could not find heading at line {line + 1} of {uri}")
            nodes.append(node)

        for node in filter_nested_selections(document, outline.ordered, nodes):
            breadcrumb = file_blocks[node.line].breadcrumb
            lines = [
                f"{_heading_marker(document.kind, depth)} {label}"
                for depth, label in enumerate(breadcrumb[:-1], start=1)
            ]
            block_text = document.get_text(compute_range(document, outline.ordered, node))
            lines.append(block_text.replace("\r\n", "\n").rstrip("\n"))
            sections.append("\n".join(lines))

    parts = []
    if headers:
        parts.append("\n".join(headers))
    if title and title.strip():
        parts.append(f"{_heading_marker(title_kind or HeadingKind.TYPST, 1)} {title.strip()}")
    parts.extend(sections)
    return "\n\n".join(parts) + "\n"
