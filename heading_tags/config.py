"""Configuration loading and management."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
import tomllib

from .constants import (
    DEFAULT_EXCLUDE_DIRS,
    DEFAULT_EXTENSIONS,
    DEFAULT_MAX_FILE_SIZE,
    DEFAULT_MAX_PINNED,
    DEFAULT_REMARK_TAG,
    DEFAULT_TAG_COLOR,
    DEFAULT_TAG_ICON,
)
from .definitions import validate_tag_name
from .exceptions import TagValidationError

TAG_DEFINITION_KEYS = {"name", "color", "icon", "pinned"}


@dataclass
class HeadingTagsConfig:
    """Configuration for indexing heading tags in a workspace.

    Attributes:
        extensions: File suffixes treated as documents.
        exclude_dirs: Directory names skipped during workspace scans.
        remark_tag: Tag that keeps remark-only headings discoverable.
        max_pinned: Maximum number of pinned tag definitions.
        default_icon: Icon given to automatically registered tags.
        default_color: Color given to automatically registered tags.
        max_file_size: Maximum file size in bytes that will be indexed.
        tags: Tag definition tables (``name``, ``color``, ``icon``, ``pinned``).

    Examples:
        HeadingTagsConfig(extensions=[".md"], max_pinned=3)
    """

    # Workspace
    extensions: list[str] = field(default_factory=lambda: list(DEFAULT_EXTENSIONS))
    exclude_dirs: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_DIRS))

    # Tags
    remark_tag: str = DEFAULT_REMARK_TAG
    max_pinned: int = DEFAULT_MAX_PINNED
    default_icon: str = DEFAULT_TAG_ICON
    default_color: str = DEFAULT_TAG_COLOR
    tags: list[dict] = field(default_factory=list)

    # Limits
    max_file_size: int = DEFAULT_MAX_FILE_SIZE


class ConfigError(ValueError):
    """Exception raised when configuration values are invalid.

    Examples:
        raise ConfigError("`max_pinned` must be a non-negative integer")
    """


# Candidate files per directory, each with the tables that may hold settings
CONFIG_SOURCES: tuple[tuple[str, tuple[tuple[str, ...], ...]], ...] = (
    ("pyproject.toml", (("tool", "heading-tags"),)),
    (".heading-tags.toml", (("heading-tags",), ("tool", "heading-tags"))),
)


def load_config(search_path: Path) -> HeadingTagsConfig:
    """Load configuration from the nearest config file.

    Starting at `search_path` and moving up to the filesystem root, each
    directory is checked for a ``[tool.heading-tags]`` table in
    `pyproject.toml`, then a ``[heading-tags]`` or ``[tool.heading-tags]``
    table in `.heading-tags.toml`. The first table found wins. TOML files
    that cannot be read or decoded are ignored.

    Raises:
        ConfigError: If the table is not a mapping or has unsupported keys.

    Examples:
        load_config(Path("docs"))
    """
    start = search_path.resolve()

    for directory in (start, *start.parents):
        for filename, table_paths in CONFIG_SOURCES:
            config_file = directory / filename
            data = _read_toml(config_file)
            if data is None:
                continue
            for table_path in table_paths:
                found, table = _lookup(data, table_path)
                if found:
                    return normalize_config(_config_from_table(table, config_file, table_path))

    return HeadingTagsConfig()


def _read_toml(config_file: Path) -> dict | None:
    if not config_file.is_file():
        return None
    try:
        return tomllib.loads(config_file.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError):
        return None


def _lookup(data: dict, table_path: tuple[str, ...]) -> tuple[bool, object]:
    node: object = data
    for key in table_path:
        if not isinstance(node, dict) or key not in node:
            return False, None
        node = node[key]
    return True, node


def _config_from_table(
    table: object, config_file: Path, table_path: tuple[str, ...]
) -> HeadingTagsConfig:
    location = f"`[{'.'.join(table_path)}]` in {config_file}"
    if not isinstance(table, dict):
        raise ConfigError(f"{location} must be a table")

    unknown = set(table) - {item.name for item in fields(HeadingTagsConfig)}
    if unknown:
        raise ConfigError(f"Unsupported keys {', '.join(sorted(unknown))} in {location}")
    return HeadingTagsConfig(**table)


def normalize_config(config: HeadingTagsConfig) -> HeadingTagsConfig:
    """Lowercase file suffixes and give each a leading dot.

    Raises:
        ConfigError: If `extensions` is not a list of non-empty strings.
    """
    raw_extensions = [config.extensions] if isinstance(config.extensions, str) else config.extensions
    if not isinstance(raw_extensions, (list, tuple)) or not all(
        isinstance(extension, str) and extension.strip() for extension in raw_extensions
    ):
        raise ConfigError("`extensions` must be a list of file suffixes")

    extensions = [
        extension.lower() if extension.startswith(".") else f".{extension.lower()}"
        for extension in (item.strip() for item in raw_extensions)
    ]
    return replace(config, extensions=extensions)


def validate_config(config: HeadingTagsConfig) -> None:
    """Validate a `HeadingTagsConfig` instance.

    Raises:
        ConfigError: If lists or strings are malformed, tag definitions are
            invalid, or numeric limits are out of range.

    Examples:
        validate_config(HeadingTagsConfig(max_pinned=2))
    """
    config = normalize_config(config)

    _ensure_integers({"max_pinned": config.max_pinned, "max_file_size": config.max_file_size})
    if config.max_pinned < 0:
        raise ConfigError("`max_pinned` must be a non-negative integer")
    if config.max_file_size <= 0:
        raise ConfigError("`max_file_size` must be a positive integer")

    if not config.extensions:
        raise ConfigError("`extensions` must list at least one file suffix")
    if not isinstance(config.exclude_dirs, list) or not all(
        isinstance(name, str) for name in config.exclude_dirs
    ):
        raise ConfigError("`exclude_dirs` must be a list of directory names")

    for key in ("remark_tag", "default_icon", "default_color"):
        value = getattr(config, key)
        if not isinstance(value, str) or not value.strip():
            raise ConfigError(f"`{key}` must not be empty")
    if any(character.isspace() for character in config.remark_tag):
        raise ConfigError("`remark_tag` must not contain whitespace")

    if not isinstance(config.tags, list):
        raise ConfigError("`tags` must be a list of tag tables")
    for entry in config.tags:
        _validate_tag_entry(entry)


def _validate_tag_entry(entry: object) -> None:
    if not isinstance(entry, dict) or not isinstance(entry.get("name"), str):
        raise ConfigError("every entry in `tags` needs a `name`")
    unknown = set(entry) - TAG_DEFINITION_KEYS
    if unknown:
        raise ConfigError(f"unsupported tag keys: {', '.join(sorted(unknown))}")

    try:
        validate_tag_name(entry["name"])
    except TagValidationError as error:
        raise ConfigError(f"invalid tag definition: {error}") from error

    for key in ("color", "icon"):
        if key in entry and not isinstance(entry[key], str):
            raise ConfigError(f"`{key}` of tag `{entry['name']}` must be a string")
    if "pinned" in entry and not isinstance(entry["pinned"], bool):
        raise ConfigError(f"`pinned` of tag `{entry['name']}` must be true or false")


def apply_overrides(config: HeadingTagsConfig, **overrides: object) -> HeadingTagsConfig:
    """Apply override values to a `HeadingTagsConfig`.

    Values set to None are ignored; the original configuration is returned
    when no changes are supplied.

    Raises:
        TypeError: If an override name is not defined on `HeadingTagsConfig`.

    Examples:
        updated = apply_overrides(config, max_pinned=3)
    """
    changes = {key: value for key, value in overrides.items() if value is not None}
    if not changes:
        return config
    return replace(config, **changes)


def build_config(search_path: Path, **overrides: object) -> HeadingTagsConfig:
    """Load, override, and validate configuration.

    Raises:
        ConfigError: If configuration loading or validation fails.

    Examples:
        config = build_config(Path.cwd(), max_pinned=4)
    """
    config = load_config(search_path)
    config = apply_overrides(config, **overrides)
    config = normalize_config(config)
    validate_config(config)
    return config


def _ensure_integers(values: dict[str, object]) -> None:
    for key, value in values.items():
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"`{key}` must be an integer")
