"""Data models for heading-tags."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum, auto


class HeadingKind(Enum):
    """Markup flavor of a heading line.

    Determines the heading syntax (``#`` or ``=``) and the trailing comment
    syntax (``<!-- -->`` or ``//``).
    """

    MARKDOWN = "markdown"
    TYPST = "typst"


class ParserState(Enum):
    """Parser states used while scanning document lines.

    Attributes:
        NORMAL: Default state for regular text.
        IN_FENCED_CODE: Inside a fenced code block.
    """

    NORMAL = auto()
    IN_FENCED_CODE = auto()


@dataclass
class ParserContext:
    """Encapsulate parser state while walking document text.

    Attributes:
        state: Current parser state.
        fence_char: Fence character that opened a fenced code block, if any.
        fence_length: Number of fence characters that opened the block.
    """

    state: ParserState = ParserState.NORMAL
    fence_char: str | None = None
    fence_length: int = 0


@dataclass(frozen=True, order=True)
class Position:
    """Zero-based line/character position."""

    line: int
    character: int = 0


@dataclass(frozen=True)
class Range:
    """Span between two positions, end exclusive."""

    start: Position
    end: Position

    def contains(self, other: Range) -> bool:
        return self.start <= other.start and other.end <= self.end

    @classmethod
    def of_line(cls, line: int, length: int) -> Range:
        return cls(Position(line, 0), Position(line, length))


@dataclass(frozen=True)
class CommentContent:
    """Decoded body of a heading comment.

    Attributes:
        tags: Tag names in source order, without the leading ``#``.
        remark: Free-text remark, or None when the comment carries none.
    """

    tags: list[str] = field(default_factory=list)
    remark: str | None = None


@dataclass
class HeadingMatch:
    """A heading line recognized by the parser.

    Attributes:
        kind: Markup flavor of the heading.
        level: Number of marker characters (``#`` or ``=``).
        text: Heading title with the comment suffix removed, trimmed.
        display_text: Title with inline markup removed; presentation only.
        line: Zero-based line number.
        range: Span of the heading's own line.
        tags: Tags from the trailing comment.
        remark: Remark from the trailing comment, if any.
    """

    kind: HeadingKind
    level: int
    text: str
    display_text: str
    line: int
    range: Range
    tags: list[str] = field(default_factory=list)
    remark: str | None = None


@dataclass(eq=False)
class HeadingNode:
    """A heading in the document outline.

    Nodes compare by identity; ``id`` is only stable within one parse.
    """

    id: str
    label: str
    level: int
    kind: HeadingKind
    range: Range
    children: list[HeadingNode] = field(default_factory=list)

    @property
    def line(self) -> int:
        return self.range.start.line


@dataclass
class TaggedHeading:
    """A tagged heading as stored in the workspace tag index.

    Attributes:
        heading: The originating parse result.
        uri: Identifier of the owning document.
        id: ``"<uri>:<line>"``, unique across the workspace.
        breadcrumb: Display texts from the root heading down to this one.
    """

    heading: HeadingMatch
    uri: str
    id: str
    breadcrumb: list[str] = field(default_factory=list)

    @property
    def line(self) -> int:
        return self.heading.line

    @property
    def text(self) -> str:
        return self.heading.text

    @property
    def tags(self) -> list[str]:
        return self.heading.tags


@dataclass
class TagDefinition:
    """User-visible metadata for a tag.

    Attributes:
        name: Tag name without the leading ``#``.
        color: Theme color identifier.
        icon: Icon identifier.
        pinned: Whether the tag is shown with priority.
    """

    name: str
    color: str | None = None
    icon: str | None = None
    pinned: bool = False


@dataclass
class Document:
    """In-memory document text with its identifier and markup kind.

    Attributes:
        uri: Identifier of the document, usually its resolved path.
        text: Full document text.
        kind: Markup flavor used for comment syntax.
    """

    uri: str
    text: str
    kind: HeadingKind = HeadingKind.MARKDOWN

    @property
    def lines(self) -> list[str]:
        return split_lines(self.text)

    @property
    def line_count(self) -> int:
        return len(self.lines)

    def end_position(self) -> Position:
        lines = self.lines
        return Position(len(lines) - 1, len(lines[-1]))

    def offset_at(self, position: Position) -> int:
        """Convert a position into a character offset.

        Positions past the end of a line or of the document clamp to the
        nearest valid offset.
        """
        line_start = 0
        for index, match in enumerate(_LINE_BREAKS.finditer(self.text)):
            if index == position.line:
                return line_start + min(position.character, match.start() - line_start)
            line_start = match.end()
        if position.line > self.text.count("\n"):
            return len(self.text)
        return line_start + min(position.character, len(self.text) - line_start)

    def get_text(self, span: Range | None = None) -> str:
        if span is None:
            return self.text
        return self.text[self.offset_at(span.start) : self.offset_at(span.end)]


_LINE_BREAKS = re.compile(r"\r?\n")


def split_lines(text: str) -> list[str]:
    return _LINE_BREAKS.split(text)
