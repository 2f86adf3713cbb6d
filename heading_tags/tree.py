"""Heading tree construction."""

from __future__ import annotations

from dataclasses import dataclass, field

from .models import HeadingMatch, HeadingNode


@dataclass
class HeadingOutline:
    """Heading tree of one document with its pre-order list and parent map.

    Attributes:
        roots: Top-level headings.
        ordered: All headings in document (pre-order) order.
        parents: Parent of each node keyed by node id; None for roots.
    """

    roots: list[HeadingNode] = field(default_factory=list)
    ordered: list[HeadingNode] = field(default_factory=list)
    parents: dict[str, HeadingNode | None] = field(default_factory=dict)

    def parent_of(self, node: HeadingNode) -> HeadingNode | None:
        return self.parents.get(node.id)

    def siblings_of(self, node: HeadingNode) -> list[HeadingNode]:
        parent = self.parent_of(node)
        return parent.children if parent is not None else self.roots

    def find_by_line(self, line: int) -> HeadingNode | None:
        for node in self.ordered:
            if node.line == line:
                return node
        return None

    def heading_at_line(self, line: int) -> HeadingNode | None:
        """Return the nearest heading starting at or before `line`."""
        current = None
        for node in self.ordered:
            if node.line > line:
                break
            current = node
        return current

    def ancestors_of(self, node: HeadingNode) -> list[HeadingNode]:
        """Return the ancestors of `node`, outermost first."""
        chain = []
        parent = self.parent_of(node)
        while parent is not None:
            chain.append(parent)
            parent = self.parent_of(parent)
        chain.reverse()
        return chain


def _make_node(match: HeadingMatch, ordinal: int) -> HeadingNode:
    return HeadingNode(
        id=f"{match.line}-{ordinal}",
        label=match.text,
        level=match.level,
        kind=match.kind,
        range=match.range,
    )


def build_outline(matches: list[HeadingMatch]) -> HeadingOutline:
    """Nest headings by level in a single pass.

    A heading becomes a child of the nearest preceding heading with a lower
    level. Headings of equal level are siblings.

    Examples:
        outline = build_outline(parse_headings("# A\\n## B\\n## C\\n# D"))
        [node.label for node in outline.roots]  # ["A", "D"]
    """
    outline = HeadingOutline()
    stack: list[HeadingNode] = []

    for ordinal, match in enumerate(matches):
        node = _make_node(match, ordinal)

        while stack and stack[-1].level >= node.level:
            stack.pop()

        parent = stack[-1] if stack else None
        if parent is None:
            outline.roots.append(node)
        else:
            parent.children.append(node)

        outline.parents[node.id] = parent
        outline.ordered.append(node)
        stack.append(node)

    return outline


def build_tree(matches: list[HeadingMatch]) -> list[HeadingNode]:
    return build_outline(matches).roots


def flatten(roots: list[HeadingNode]) -> list[HeadingNode]:
    """Return nodes in pre-order."""
    ordered: list[HeadingNode] = []
    stack = list(reversed(roots))
    while stack:
        node = stack.pop()
        ordered.append(node)
        stack.extend(reversed(node.children))
    return ordered


def compute_breadcrumbs(matches: list[HeadingMatch]) -> dict[int, list[str]]:
    """Map each heading line to the display texts of its ancestor chain.

    Uses the same stack discipline as `build_outline` without building nodes.
    Each breadcrumb ends with the heading itself.
    """
    breadcrumbs: dict[int, list[str]] = {}
    stack: list[HeadingMatch] = []

    for match in matches:
        while stack and stack[-1].level >= match.level:
            stack.pop()
        stack.append(match)
        breadcrumbs[match.line] = [item.display_text for item in stack]

    return breadcrumbs
