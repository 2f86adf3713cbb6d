"""Tag definitions: user-visible metadata for tag names."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from .constants import BUILTIN_TAG_DEFINITIONS
from .exceptions import TagValidationError
from .models import TagDefinition

if TYPE_CHECKING:
    from .config import HeadingTagsConfig

log = logging.getLogger(__name__)


def validate_tag_name(name: str) -> str:
    """Check that `name` can be written as ``#name`` in a heading comment.

    Any Unicode letter or punctuation is accepted; whitespace is not.

    Returns:
        str: The name with surrounding whitespace removed.

    Raises:
        TagValidationError: If the name is empty or contains whitespace.

    Examples:
        validate_tag_name(" todo ")  # "todo"
        validate_tag_name("待办")  # "待办"
    """
    trimmed = (name or "").strip()
    if not trimmed:
        raise TagValidationError(name, "tag name cannot be empty")
    if any(character.isspace() for character in trimmed):
        raise TagValidationError(name, "tag name cannot contain whitespace")
    return trimmed


class TagDefinitionStore:
    """Keyed collection of tag definitions.

    Definitions live independently of tag occurrences: a tag can be defined
    without being used and used without being defined.
    """

    def __init__(self, definitions: list[TagDefinition] | None = None):
        self._definitions: dict[str, TagDefinition] = {}
        for definition in definitions or []:
            self._definitions[definition.name] = definition

    @classmethod
    def from_config(cls, config: HeadingTagsConfig) -> TagDefinitionStore:
        """Build a store from configured tables, adding built-in defaults.

        Configured definitions override built-ins with the same name.
        """
        definitions = [TagDefinition(**entry) for entry in config.tags]
        configured = {definition.name for definition in definitions}
        for entry in BUILTIN_TAG_DEFINITIONS:
            if entry["name"] not in configured:
                definitions.append(TagDefinition(**entry))
        return cls(definitions)

    def __contains__(self, name: object) -> bool:
        return name in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)

    def get(self, name: str) -> TagDefinition | None:
        return self._definitions.get(name)

    def all(self) -> list[TagDefinition]:
        return list(self._definitions.values())

    def names(self) -> list[str]:
        return list(self._definitions)

    def pinned_count(self) -> int:
        return sum(1 for definition in self._definitions.values() if definition.pinned)

    def add(self, definition: TagDefinition) -> TagDefinition:
        """Store a new or replacement definition.

        Raises:
            TagValidationError: If the tag name is invalid.
        """
        name = validate_tag_name(definition.name)
        stored = replace(definition, name=name)
        self._definitions[name] = stored
        log.debug("Stored tag definition %s", name)
        return stored

    def rename(self, old_name: str, new_name: str) -> TagDefinition:
        """Rename a definition, keeping its metadata.

        Raises:
            KeyError: If `old_name` is not defined.
            TagValidationError: If `new_name` is invalid.
        """
        name = validate_tag_name(new_name)
        definition = self._definitions.pop(old_name)
        renamed = replace(definition, name=name)
        self._definitions[name] = renamed
        return renamed

    def remove(self, name: str) -> bool:
        return self._definitions.pop(name, None) is not None

    def to_tables(self) -> list[dict]:
        """Serialize definitions to the table shape used in configuration."""
        tables = []
        for definition in self._definitions.values():
            table: dict = {"name": definition.name}
            if definition.color is not None:
                table["color"] = definition.color
            if definition.icon is not None:
                table["icon"] = definition.icon
            if definition.pinned:
                table["pinned"] = True
            tables.append(table)
        return tables
