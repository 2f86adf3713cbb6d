"""Package-specific exception types."""

from __future__ import annotations


class HeadingTagsError(Exception):
    """Base class for heading-tags errors."""


class ParseFileError(HeadingTagsError):
    """Raised when a document file cannot be read or parsed."""


class TagValidationError(HeadingTagsError, ValueError):
    """Raised when a tag name is rejected.

    Args:
        name: The offending tag name.
        reason: Human readable explanation.
    """

    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"Invalid tag name {name!r}: {reason}")


class BlockEditError(HeadingTagsError):
    """Raised when a heading block edit cannot be applied to a document."""
