from __future__ import annotations

import pytest

from heading_tags.display import (
    is_escaped,
    sanitize_heading_for_display,
    strip_markdown_links,
    strip_typst_inline,
)
from heading_tags.models import HeadingKind


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("[title](https://example.com)", "title"),
        ("![alt](img.png) text", "alt text"),
        ("[a](<u r l>)", "a"),
        ("[ref][1] here", "ref here"),
        ("[nested [x]](u)", "nested [x]"),
        ("`[code](x)` and [t](y)", "`[code](x)` and t"),
        ("[unclosed", "[unclosed"),
        ("[label] alone", "[label] alone"),
        (r"\[not](link)", r"\[not](link)"),
        (r"\![alt](x)", r"\![alt](x)"),
    ],
)
def test_strip_markdown_links(text: str, expected: str):
    assert strip_markdown_links(text) == expected


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ('#link("https://typst.app")[Site]', "Site"),
        ('#emph[A] and #strong("B")', "A and B"),
        ('#raw("x = 1")', "x = 1"),
        ("Intro <intro>", "Intro  "),
        ("$x^2$ growth", "x^2 growth"),
        (r"\[a\]", "[a]"),
    ],
)
def test_strip_typst_inline(text: str, expected: str):
    assert strip_typst_inline(text) == expected


def test_sanitize_collapses_whitespace():
    assert sanitize_heading_for_display("Intro <intro>", HeadingKind.TYPST) == "Intro"
    assert sanitize_heading_for_display("a \t  b", HeadingKind.MARKDOWN) == "a b"


def test_sanitize_falls_back_to_original_text():
    assert sanitize_heading_for_display("<label>", HeadingKind.TYPST) == "<label>"
    assert sanitize_heading_for_display("   ", HeadingKind.MARKDOWN) == "   "


def test_markdown_display_keeps_emphasis():
    assert sanitize_heading_for_display("**Bold** _it_", HeadingKind.MARKDOWN) == "**Bold** _it_"


def test_is_escaped():
    assert is_escaped("\\*", 1)
    assert not is_escaped("\\\\*", 2)
    assert not is_escaped("*", 0)
