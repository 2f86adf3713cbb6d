"""
heading-tags: heading outlines and tag indexing for Markdown and Typst files.

This package can be used both as a CLI tool and as a library.

CLI Usage:
    heading-tags outline notes.md
    heading-tags blocks todo docs/
    heading-tags compile todo docs/ --title "Open tasks"

Library Usage:
    from pathlib import Path
    from heading_tags import TagIndexService, build_outline, parse_headings

    headings = parse_headings(Path("notes.md").read_text())
    outline = build_outline(headings)

    service = TagIndexService(Path("docs"))
    service.scan_workspace()
    todo_blocks = service.get_blocks_by_tag("todo")
"""

from .comments import decode_comment, encode_comment, normalize_tags_and_remark
from .config import ConfigError, HeadingTagsConfig
from .definitions import TagDefinitionStore, validate_tag_name
from .exceptions import BlockEditError, HeadingTagsError, ParseFileError, TagValidationError
from .index import TagIndexService
from .models import (
    CommentContent,
    Document,
    HeadingKind,
    HeadingMatch,
    HeadingNode,
    Position,
    Range,
    TagDefinition,
    TaggedHeading,
)
from .parser import parse_file, parse_headings
from .subtree import compute_range, filter_nested_selections
from .tree import HeadingOutline, build_outline, build_tree, flatten

__version__ = "0.1.0"

__all__ = [
    # Core functionality
    "parse_headings",
    "parse_file",
    "decode_comment",
    "encode_comment",
    "normalize_tags_and_remark",
    "build_tree",
    "build_outline",
    "flatten",
    "compute_range",
    "filter_nested_selections",
    "TagIndexService",
    "TagDefinitionStore",
    "validate_tag_name",
    # Data models
    "CommentContent",
    "Document",
    "HeadingKind",
    "HeadingMatch",
    "HeadingNode",
    "HeadingOutline",
    "Position",
    "Range",
    "TagDefinition",
    "TaggedHeading",
    "HeadingTagsConfig",
    # Exceptions
    "BlockEditError",
    "ConfigError",
    "HeadingTagsError",
    "ParseFileError",
    "TagValidationError",
    # Version
    "__version__",
]
