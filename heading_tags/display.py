"""Presentation-only cleanup of heading titles."""

from __future__ import annotations

import re

from .models import HeadingKind

INLINE_CODE_PATTERN = re.compile(r"(?<![`\\])(`+)(?!`)(.*?)(?<!`)\1(?!`)")
WHITESPACE_PATTERN = re.compile(r"\s+")

TYPST_LINK_PATTERN = re.compile(r"#link\s*\([^)]*\)\s*\[(.*?)\]")
TYPST_CONTENT_CALL_PATTERN = re.compile(r"#(?:emph|strong|underline|strike|quote|math)\s*\[(.*?)\]")
TYPST_STRING_CALL_PATTERN = re.compile(
    r"#(?:code|raw|emph|strong|underline|strike|quote|math)\s*\(\s*[\"']([^\"']+)[\"']\s*\)"
)
TYPST_LABEL_PATTERN = re.compile(r"<[^>]+>")
TYPST_MATH_PATTERN = re.compile(r"\$(.+?)\$")
TYPST_ESCAPE_PATTERN = re.compile(r"\\([\\\[\](){}])")


def is_escaped(text: str, pos: int) -> bool:
    """Determine whether the character at `pos` follows an odd run of backslashes.

    Examples:
        is_escaped("\\\\*", 2)  # False, two backslashes
        is_escaped("\\*", 1)  # True, one backslash
    """
    backslash_count = 0
    i = pos - 1
    while i >= 0 and text[i] == "\\":
        backslash_count += 1
        i -= 1
    return backslash_count % 2 == 1


def _find_closing(text: str, start: int, opener: str, closer: str) -> int | None:
    """Return the index just past the `closer` balancing `text[start]`."""
    depth = 0
    i = start
    while i < len(text):
        character = text[i]
        if character == "\\":
            i += 2
            continue
        if character == opener:
            depth += 1
        elif character == closer:
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1
    return None


def _match_link(text: str, start: int) -> tuple[str, int] | None:
    """Match ``[label](url)``, ``[label](<url>)`` or ``[label][ref]`` at `start`.

    Returns:
        tuple[str, int] | None: The label and the index just past the link.
    """
    label_end = _find_closing(text, start, "[", "]")
    if label_end is None or label_end >= len(text):
        return None

    label = text[start + 1 : label_end - 1]
    follower = text[label_end]
    if follower == "(":
        if text.startswith("<", label_end + 1):
            url_end = text.find(">", label_end + 2)
            if url_end == -1:
                return None
            close = url_end + 1
            while close < len(text) and text[close] in " \t":
                close += 1
            if close < len(text) and text[close] == ")":
                return label, close + 1
            return None
        end = _find_closing(text, label_end, "(", ")")
        return (label, end) if end is not None else None
    if follower == "[":
        ref_end = text.find("]", label_end + 1)
        return (label, ref_end + 1) if ref_end != -1 else None
    return None


def strip_markdown_links(text: str) -> str:
    r"""Remove Markdown link and image syntax while keeping the visible text.

    Inline code spans are left untouched and escaped image markers (``\!``)
    keep the whole sequence literal.

    Examples:
        strip_markdown_links("[title](https://example.com)")  # "title"
        strip_markdown_links("`[code](x)` and [title](y)")  # "`[code](x)` and title"
    """
    code_spans = {match.start(): match.end() for match in INLINE_CODE_PATTERN.finditer(text)}
    result: list[str] = []
    i = 0

    while i < len(text):
        if i in code_spans:
            result.append(text[i : code_spans[i]])
            i = code_spans[i]
            continue

        if text[i] == "[" and not is_escaped(text, i):
            after_bang = i > 0 and text[i - 1] == "!"
            if not (after_bang and is_escaped(text, i - 1)):
                link = _match_link(text, i)
                if link is not None:
                    label, end = link
                    if after_bang and result and result[-1] == "!":
                        result.pop()
                    result.append(label)
                    i = end
                    continue

        result.append(text[i])
        i += 1

    return "".join(result)


def strip_typst_inline(text: str) -> str:
    """Remove Typst inline markup, keeping the content it wraps."""
    result = TYPST_LINK_PATTERN.sub(r"\1", text)
    result = TYPST_CONTENT_CALL_PATTERN.sub(r"\1", result)
    result = TYPST_STRING_CALL_PATTERN.sub(r"\1", result)
    result = TYPST_LABEL_PATTERN.sub(" ", result)
    result = TYPST_MATH_PATTERN.sub(r"\1", result)
    return TYPST_ESCAPE_PATTERN.sub(r"\1", result)


def sanitize_heading_for_display(text: str, kind: HeadingKind) -> str:
    """Simplify a heading title for display.

    The result is never used to edit the document. When sanitizing leaves
    nothing behind, the original text is returned so labels are never empty.

    Examples:
        sanitize_heading_for_display("#strong[Bold]  title", HeadingKind.TYPST)  # "Bold title"
        sanitize_heading_for_display("[Docs](https://x.y)", HeadingKind.MARKDOWN)  # "Docs"
    """
    if kind is HeadingKind.TYPST:
        result = strip_typst_inline(text)
    else:
        result = strip_markdown_links(text)

    result = WHITESPACE_PATTERN.sub(" ", result).strip()
    return result or text
