"""Constants used across the heading-tags package."""

from __future__ import annotations

import re

# Heading patterns
MARKDOWN_HEADING_PATTERN = re.compile(r"^(#{1,6})\s+(.*)$")
TYPST_HEADING_PATTERN = re.compile(r"^(=+)")

# Trailing comment patterns, anchored at the end of the heading line
MARKDOWN_COMMENT_PATTERN = re.compile(r"<!--\s*(.*?)\s*-->\s*$")
TYPST_COMMENT_PATTERN = re.compile(r"//\s*(.*)$")
MARKDOWN_COMMENT_STRIP_PATTERN = re.compile(r"\s*<!--\s*.*?-->\s*$")
TYPST_COMMENT_STRIP_PATTERN = re.compile(r"\s*//.*$")

# Remark span inside a comment body
REMARK_PATTERN = re.compile(r"::(.*?)::")
# Backslash escapes inside comment bodies; `\:\:` stands for `::`
COMMENT_ESCAPE_PATTERN = re.compile(r"\\([\\:])")
COLON_RUN_PATTERN = re.compile(r":{2,}")

FENCE_MARKERS = ("`", "~")
MIN_FENCE_LENGTH = 3
FENCE_MAX_INDENT = 3

MIN_HEADING_LEVEL = 1
MAX_HEADING_LEVEL = 6

TYPST_EXTENSIONS = (".typ",)
DEFAULT_EXTENSIONS = (".md", ".markdown", ".typ")
DEFAULT_EXCLUDE_DIRS = (".git", "node_modules", ".venv", "__pycache__")
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024

DEFAULT_REMARK_TAG = "remark"
DEFAULT_MAX_PINNED = 6
DEFAULT_TAG_ICON = "tag"
DEFAULT_TAG_COLOR = "charts.blue"

# Built-in tag definitions merged under user definitions
BUILTIN_TAG_DEFINITIONS = (
    {"name": "todo", "color": "charts.orange", "icon": "circle-large-outline"},
    {"name": "review", "color": "charts.yellow", "icon": "eye"},
    {"name": "highlight", "color": "charts.blue", "icon": "star"},
)

MAX_FILE_COMPONENT_LENGTH = 60

# Leading Typst lines carried into compiled documents
TYPST_HEADER_PREFIXES = ("#import", "#set", "#show")
