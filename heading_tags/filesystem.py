"""Filesystem helpers for heading-tags."""

from __future__ import annotations

import os
import stat
import tempfile
from collections.abc import Iterable, Iterator
from pathlib import Path

from .constants import DEFAULT_EXCLUDE_DIRS, DEFAULT_EXTENSIONS, DEFAULT_MAX_FILE_SIZE, TYPST_EXTENSIONS
from .models import Document, HeadingKind

MAX_FILE_SIZE_ENV_VAR = "HEADING_TAGS_MAX_FILE_SIZE"


def get_max_file_size(default: int = DEFAULT_MAX_FILE_SIZE) -> int:
    """Return the file size limit, honouring `HEADING_TAGS_MAX_FILE_SIZE`.

    Raises:
        ValueError: If the variable is set to anything but a positive integer.
    """
    raw_limit = os.environ.get(MAX_FILE_SIZE_ENV_VAR)
    if raw_limit is None:
        return default

    try:
        limit = int(raw_limit)
    except ValueError:
        limit = 0
    if limit <= 0:
        raise ValueError(f"{MAX_FILE_SIZE_ENV_VAR} must be a positive number of bytes, got {raw_limit!r}")
    return limit


def heading_kind_for_path(path: Path | str) -> HeadingKind:
    """Classify a document by its file extension.

    Examples:
        heading_kind_for_path("paper.typ")  # HeadingKind.TYPST
        heading_kind_for_path("README.md")  # HeadingKind.MARKDOWN
    """
    if Path(path).suffix.lower() in TYPST_EXTENSIONS:
        return HeadingKind.TYPST
    return HeadingKind.MARKDOWN


def path_to_uri(path: Path | str) -> str:
    return str(Path(path).expanduser().resolve())


def iter_workspace_files(
    root: Path,
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
    exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
) -> Iterator[Path]:
    """Yield document files under `root` in a stable order.

    Directories named in `exclude_dirs` are not descended into and symlinked
    directories are not followed.

    Examples:
        list(iter_workspace_files(Path("docs"), [".md"]))
    """
    suffixes = {extension.lower() for extension in extensions}
    excluded = set(exclude_dirs)

    for directory, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(name for name in dirnames if name not in excluded)
        for filename in sorted(filenames):
            path = Path(directory) / filename
            if path.suffix.lower() in suffixes and not path.is_symlink():
                yield path


def stat_document(filepath: Path, max_file_size: int | None = None) -> os.stat_result:
    """Check that `filepath` is a regular file within the size limit.

    Symlinks are refused rather than followed.

    Raises:
        IOError: If the file is missing, a symlink, not a regular file, or
            larger than `max_file_size` bytes.
    """
    try:
        info = os.lstat(filepath)
    except OSError as error:
        raise IOError(f"Cannot access {filepath}: {error}") from error

    if stat.S_ISLNK(info.st_mode):
        raise IOError(f"Symlinks are not supported: {filepath}")
    if not stat.S_ISREG(info.st_mode):
        raise IOError(f"{filepath} is not a regular file")
    if max_file_size is not None and info.st_size > max_file_size:
        raise IOError(f"{filepath} exceeds the maximum allowed size of {max_file_size} bytes")
    return info


def read_text(filepath: Path) -> str:
    """Read a UTF-8 file without translating line endings.

    Raises:
        IOError: If the file cannot be opened.
        UnicodeDecodeError: If the file is not valid UTF-8.
    """
    try:
        handle = open(filepath, "r", encoding="UTF-8", newline="")
    except OSError as error:
        raise IOError(f"Cannot access {filepath}: {error}") from error
    with handle:
        return handle.read()


def load_document(filepath: Path, max_file_size: int | None = None) -> Document:
    """Read a Markdown or Typst file into a `Document`.

    Line endings are kept as written so that ranges map back to the file.

    Raises:
        IOError: If the file is missing, not a regular file, or too large.
        UnicodeDecodeError: If the file is not valid UTF-8.

    Examples:
        document = load_document(Path("notes.md"))
    """
    stat_document(filepath, max_file_size)
    return Document(
        uri=path_to_uri(filepath),
        text=read_text(filepath),
        kind=heading_kind_for_path(filepath),
    )


def write_document(filepath: Path, text: str) -> None:
    """Replace a file's content through a temporary sibling file.

    The file keeps its permission bits and is never left half-written.

    Raises:
        IOError: If the file cannot be inspected or replaced.
    """
    mode = stat.S_IMODE(stat_document(filepath).st_mode)

    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="UTF-8",
        newline="",
        delete=False,
        dir=filepath.parent,
        prefix=f".{filepath.name}.",
    ) as handle:
        staged = Path(handle.name)
        try:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        except OSError:
            staged.unlink(missing_ok=True)
            raise

    try:
        os.chmod(staged, mode)
        os.replace(staged, filepath)
    except OSError as error:
        staged.unlink(missing_ok=True)
        raise IOError(f"Cannot replace {filepath}: {error}") from error
