"""Encoding and decoding of the tag/remark comment attached to headings.

Markdown headings carry ``<!-- #tag1 #tag2 :: remark :: -->`` and Typst
headings carry ``// #tag1 #tag2 :: remark ::`` at the end of the line.
"""

from __future__ import annotations

import re

from .constants import (
    COLON_RUN_PATTERN,
    COMMENT_ESCAPE_PATTERN,
    MARKDOWN_COMMENT_PATTERN,
    MARKDOWN_COMMENT_STRIP_PATTERN,
    REMARK_PATTERN,
    TYPST_COMMENT_PATTERN,
    TYPST_COMMENT_STRIP_PATTERN,
)
from .models import CommentContent, HeadingKind


def escape_comment_text(value: str) -> str:
    """Escape a tag or remark so it cannot open or close a remark span.

    Backslashes are doubled and every colon in a run of two or more becomes
    ``\\:``. A single colon is left as written.

    Examples:
        escape_comment_text("x::y")  # "x\\:\\:y"
        escape_comment_text("a:::")  # "a\\:\\:\\:"
    """
    escaped = value.replace("\\", "\\\\")
    return COLON_RUN_PATTERN.sub(lambda match: "\\:" * len(match.group()), escaped)


def unescape_comment_text(value: str) -> str:
    return COMMENT_ESCAPE_PATTERN.sub(r"\1", value)


def comment_pattern(kind: HeadingKind) -> re.Pattern[str]:
    return MARKDOWN_COMMENT_PATTERN if kind is HeadingKind.MARKDOWN else TYPST_COMMENT_PATTERN


def find_comment(text: str, kind: HeadingKind) -> re.Match[str] | None:
    """Locate the trailing comment of a heading title.

    A Markdown comment only counts when ``-->`` ends the line.

    Returns:
        re.Match[str] | None: Match whose group 1 is the comment body, or None.
    """
    return comment_pattern(kind).search(text)


def extract_comment_content(line_text: str, kind: HeadingKind) -> str | None:
    """Return the body of the trailing comment on a line, if present.

    Examples:
        extract_comment_content("# T <!-- #a -->", HeadingKind.MARKDOWN)  # "#a"
    """
    match = find_comment(line_text, kind)
    return match.group(1) if match else None


def _extract_tags(comment: str) -> list[str]:
    return [
        unescape_comment_text(token[1:])
        for token in comment.split()
        if token.startswith("#") and len(token) > 1
    ]


def decode_comment(comment: str) -> CommentContent:
    """Split a comment body into tags and an optional remark.

    The first ``::...::`` span is the remark; it is trimmed and unescaped, and
    an empty span gives no remark. Remaining whitespace-separated tokens
    starting with ``#`` become tags in source order. Duplicates are preserved.

    Args:
        comment: Comment body without the comment delimiters.

    Returns:
        CommentContent: Decoded tags and remark.

    Examples:
        decode_comment("#todo :: check a\\:\\:b :: #review")
        # CommentContent(tags=["todo", "review"], remark="check a::b")
    """
    remark = None
    remaining = comment

    remark_match = REMARK_PATTERN.search(comment)
    if remark_match:
        remark = unescape_comment_text(remark_match.group(1).strip()) or None
        remaining = (comment[: remark_match.start()] + comment[remark_match.end() :]).strip()

    return CommentContent(tags=_extract_tags(remaining), remark=remark)


def encode_comment(tags: list[str], remark: str | None = None) -> str:
    """Build a comment body from tags and a remark.

    Returns an empty string when there is nothing to encode; callers must then
    omit the comment wrapper entirely.

    Examples:
        encode_comment(["todo", "review"], "later")  # "#todo #review :: later ::"
    """
    clean_tags = [tag.strip() for tag in tags if tag.strip()]
    tag_part = " ".join(f"#{escape_comment_text(tag)}" for tag in clean_tags)

    remark_value = (remark or "").strip()
    remark_part = f":: {escape_comment_text(remark_value)} ::" if remark_value else ""

    return " ".join(part for part in (tag_part, remark_part) if part)


def strip_line_comment(line_text: str, kind: HeadingKind) -> str:
    pattern = (
        MARKDOWN_COMMENT_STRIP_PATTERN if kind is HeadingKind.MARKDOWN else TYPST_COMMENT_STRIP_PATTERN
    )
    return pattern.sub("", line_text, count=1)


def update_line_with_comment(
    line_text: str, kind: HeadingKind, tags: list[str], remark: str | None = None
) -> str:
    """Replace the trailing comment of a heading line.

    Examples:
        update_line_with_comment("## Title", HeadingKind.MARKDOWN, ["a"])  # "## Title <!-- #a -->"
        update_line_with_comment("= T // #a", HeadingKind.TYPST, [])  # "= T"
    """
    base = strip_line_comment(line_text, kind).rstrip()
    content = encode_comment(tags, remark)
    if not content:
        return base

    comment = f"<!-- {content} -->" if kind is HeadingKind.MARKDOWN else f"// {content}"
    return f"{base} {comment}".rstrip()


def normalize_tags_and_remark(
    tags: list[str],
    remark: str | None,
    remark_tag: str,
    ensure_remark_tag: bool = True,
) -> CommentContent:
    """Apply the tag/remark coupling policy.

    Tags are trimmed and de-duplicated (first occurrence wins). A remark with
    no other tag keeps the heading discoverable through `remark_tag` when
    `ensure_remark_tag` is set. Without a remark, `remark_tag` is dropped. A
    remark never survives an empty tag list.

    Examples:
        normalize_tags_and_remark(["a", "a"], None, "remark")  # tags ["a"]
        normalize_tags_and_remark([], "note", "remark")  # tags ["remark"], remark "note"
        normalize_tags_and_remark([], "note", "remark", ensure_remark_tag=False)  # no tags, no remark
    """
    unique_tags: list[str] = []
    for tag in tags:
        trimmed = tag.strip()
        if trimmed and trimmed not in unique_tags:
            unique_tags.append(trimmed)

    remark_value = (remark or "").strip() or None

    if remark_value:
        other_tags = [tag for tag in unique_tags if tag != remark_tag]
        if other_tags:
            normalized_tags = other_tags
        elif ensure_remark_tag and remark_tag:
            normalized_tags = [remark_tag]
        else:
            normalized_tags = [tag for tag in unique_tags if tag == remark_tag]
    else:
        normalized_tags = [tag for tag in unique_tags if tag != remark_tag]

    if not normalized_tags:
        remark_value = None

    return CommentContent(tags=normalized_tags, remark=remark_value)
