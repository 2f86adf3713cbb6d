"""Text spans covered by heading blocks.

A heading block spans from the heading line up to the next heading of the same
or a shallower level, or to the end of the document. Ranges are only valid for
the document text the ordered node list was built from: rebuild the outline
after every edit before computing ranges again.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .constants import MAX_FILE_COMPONENT_LENGTH
from .models import Document, HeadingNode, Range

UNSAFE_FILENAME_PATTERN = re.compile(r"[\s/\\:?*\"<>|]+")


@dataclass
class SubtreeSlice:
    """Range and text covered by a heading block."""

    range: Range
    text: str


def compute_range(document: Document, ordered_nodes: list[HeadingNode], node: HeadingNode) -> Range:
    """Compute the range covered by `node` and its descendants.

    Args:
        document: Document the nodes were parsed from.
        ordered_nodes: All headings of the document in document order.
        node: Heading whose block is requested.

    Returns:
        Range: From the start of the heading line to the start of the next
            heading with a level <= ``node.level``, or to the end of the
            document. A node missing from `ordered_nodes` yields its own range.

    Examples:
        outline = build_outline(parse_document(document))
        compute_range(document, outline.ordered, outline.roots[0])
    """
    index = next(
        (position for position, candidate in enumerate(ordered_nodes) if candidate.id == node.id),
        None,
    )
    if index is None:
        return node.range

    for candidate in ordered_nodes[index + 1 :]:
        if candidate.level <= node.level:
            return Range(node.range.start, candidate.range.start)

    return Range(node.range.start, document.end_position())


def compute_subtree_slice(
    document: Document, ordered_nodes: list[HeadingNode], node: HeadingNode
) -> SubtreeSlice:
    block_range = compute_range(document, ordered_nodes, node)
    return SubtreeSlice(range=block_range, text=document.get_text(block_range))


def filter_nested_selections(
    document: Document, ordered_nodes: list[HeadingNode], nodes: list[HeadingNode]
) -> list[HeadingNode]:
    """Drop selected nodes already covered by another selected node's block.

    Returns:
        list[HeadingNode]: Remaining nodes in document order.
    """
    kept: list[tuple[HeadingNode, Range]] = []

    for node in sorted(nodes, key=lambda item: item.line):
        node_range = compute_range(document, ordered_nodes, node)
        if any(existing_range.contains(node_range) for _, existing_range in kept):
            continue
        kept.append((node, node_range))

    return [node for node, _ in kept]


def make_safe_file_component(raw: str) -> str:
    """Turn a heading title into a filename component.

    Examples:
        make_safe_file_component("Intro: What/Why?")  # "intro-what-why"
        make_safe_file_component("   ")  # "untitled"
    """
    trimmed = raw.strip()
    if not trimmed:
        return "untitled"

    component = UNSAFE_FILENAME_PATTERN.sub("-", trimmed)
    component = re.sub(r"-+", "-", component).strip("-").lower()
    return component[:MAX_FILE_COMPONENT_LENGTH] or "untitled"
