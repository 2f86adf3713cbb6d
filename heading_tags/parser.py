"""Heading parsing for Markdown and Typst documents."""

from __future__ import annotations

from pathlib import Path

from .comments import decode_comment, find_comment
from .constants import (
    FENCE_MARKERS,
    FENCE_MAX_INDENT,
    MARKDOWN_HEADING_PATTERN,
    MIN_FENCE_LENGTH,
    TYPST_HEADING_PATTERN,
)
from .display import sanitize_heading_for_display
from .exceptions import ParseFileError
from .filesystem import load_document
from .models import (
    CommentContent,
    Document,
    HeadingKind,
    HeadingMatch,
    ParserContext,
    ParserState,
    Range,
    split_lines,
)


def _normalize_fence_line(line: str) -> str:
    """Strip up to three leading spaces and any blockquote markers.

    Examples:
        _normalize_fence_line("   > > ```")  # "```"
    """
    index = 0
    while index < FENCE_MAX_INDENT and index < len(line) and line[index] == " ":
        index += 1

    normalized = line[index:]
    while normalized.startswith(">"):
        normalized = normalized[1:].lstrip(" ")
    return normalized


def _fence_run_length(text: str, marker: str) -> int:
    return len(text) - len(text.lstrip(marker))


def _try_open_fence(ctx: ParserContext, line: str) -> bool:
    """Detect the start of a fenced code block.

    Args:
        ctx: Parser context to update when a fence opens.
        line: Current line being scanned.

    Returns:
        bool: True when the line begins a fence and the context is updated.

    Examples:
        _try_open_fence(ParserContext(), "```python")  # True
    """
    if ctx.state is not ParserState.NORMAL:
        return False

    normalized = _normalize_fence_line(line)
    if not normalized or normalized[0] not in FENCE_MARKERS:
        return False

    run_length = _fence_run_length(normalized, normalized[0])
    if run_length < MIN_FENCE_LENGTH:
        return False

    ctx.state = ParserState.IN_FENCED_CODE
    ctx.fence_char = normalized[0]
    ctx.fence_length = run_length
    return True


def _try_close_fence(ctx: ParserContext, line: str) -> bool:
    """Attempt to close the active fenced code block.

    The closer needs at least as many fence characters as the opener and only
    whitespace after them.

    Examples:
        ctx = ParserContext(state=ParserState.IN_FENCED_CODE, fence_char="`", fence_length=3)
        _try_close_fence(ctx, "````")  # True
    """
    if ctx.state is not ParserState.IN_FENCED_CODE or ctx.fence_char is None:
        return False

    normalized = _normalize_fence_line(line)
    run_length = _fence_run_length(normalized, ctx.fence_char)
    if run_length < ctx.fence_length:
        return False

    if normalized[run_length:].strip():
        return False

    ctx.state = ParserState.NORMAL
    ctx.fence_char = None
    ctx.fence_length = 0
    return True


def _split_title(raw_title: str, kind: HeadingKind) -> tuple[str, CommentContent]:
    comment = find_comment(raw_title, kind)
    if comment is None:
        return raw_title.strip(), CommentContent()
    return raw_title[: comment.start()].strip(), decode_comment(comment.group(1))


def _make_match(
    kind: HeadingKind, line_number: int, level: int, line: str, text: str, content: CommentContent
) -> HeadingMatch:
    return HeadingMatch(
        kind=kind,
        level=level,
        text=text,
        display_text=sanitize_heading_for_display(text, kind),
        line=line_number,
        range=Range.of_line(line_number, len(line)),
        tags=content.tags,
        remark=content.remark,
    )


def parse_heading_line(line: str, line_number: int = 0) -> HeadingMatch | None:
    """Recognize a single heading line, ignoring fence state.

    Markdown syntax is tried first; Typst headings need a non-empty title once
    the comment suffix is removed.

    Examples:
        parse_heading_line("## Intro <!-- #todo -->")
        parse_heading_line("== Intro // #todo", 4)
        parse_heading_line("===")  # None
    """
    markdown_match = MARKDOWN_HEADING_PATTERN.match(line)
    if markdown_match:
        hashes, raw_title = markdown_match.groups()
        text, content = _split_title(raw_title, HeadingKind.MARKDOWN)
        return _make_match(HeadingKind.MARKDOWN, line_number, len(hashes), line, text, content)

    typst_match = TYPST_HEADING_PATTERN.match(line)
    if typst_match:
        level = len(typst_match.group(1))
        text, content = _split_title(line[level:], HeadingKind.TYPST)
        if text:
            return _make_match(HeadingKind.TYPST, line_number, level, line, text, content)

    return None


def parse_headings(content: str) -> list[HeadingMatch]:
    """Parse Markdown (``#``) and Typst (``=``) headings from document text.

    Lines inside fenced code blocks are never headings. Lines that match no
    heading syntax are skipped; this function does not raise.

    Args:
        content: Full document text.

    Returns:
        list[HeadingMatch]: Headings in document order.

    Examples:
        parse_headings("# Title\\n```\\n## Hidden\\n```\\n## Visible <!-- #todo -->")
    """
    matches: list[HeadingMatch] = []
    ctx = ParserContext()

    for line_number, line in enumerate(split_lines(content)):
        if ctx.state is ParserState.IN_FENCED_CODE:
            _try_close_fence(ctx, line)
            continue

        if _try_open_fence(ctx, line):
            continue

        match = parse_heading_line(line, line_number)
        if match is not None:
            matches.append(match)

    return matches


def parse_document(document: Document) -> list[HeadingMatch]:
    return parse_headings(document.text)


def parse_file(filepath: Path, max_file_size: int | None = None) -> list[HeadingMatch]:
    """Read a document file and parse its headings.

    Args:
        filepath: Path to a Markdown or Typst file.
        max_file_size: Optional size limit in bytes.

    Returns:
        list[HeadingMatch]: Headings in document order.

    Raises:
        ParseFileError: If the file is too large, cannot be read, or is not
            valid UTF-8.

    Examples:
        headings = parse_file(Path("notes.typ"))
    """
    try:
        document = load_document(filepath, max_file_size)
    except UnicodeDecodeError as error:
        raise ParseFileError(f"Invalid UTF-8 sequence in {filepath}: {error}") from error
    except OSError as error:
        raise ParseFileError(str(error)) from error

    return parse_document(document)
