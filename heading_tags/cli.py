"""
Command line interface for inspecting heading outlines and workspace tags.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

import click

from .config import ConfigError, HeadingTagsConfig, apply_overrides, build_config
from .definitions import validate_tag_name
from .editing import compile_tagged_blocks, export_subtree, rename_tag
from .exceptions import HeadingTagsError, ParseFileError
from .filesystem import get_max_file_size, load_document, write_document
from .index import TagIndexService
from .models import HeadingNode
from .parser import parse_document, parse_file
from .subtree import make_safe_file_component
from .tree import HeadingOutline, build_outline
from .watcher import WorkspaceWatcher

__all__ = ["cli"]

ROOT_ARGUMENT = click.argument(
    "root",
    required=False,
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
)


def _load_config(search_path: Path, **overrides: object) -> HeadingTagsConfig:
    try:
        config = build_config(search_path, **overrides)
        max_file_size = get_max_file_size(default=config.max_file_size)
    except ConfigError as error:
        raise click.BadParameter(str(error)) from error
    except ValueError as error:
        raise click.ClickException(str(error)) from error
    return apply_overrides(config, max_file_size=max_file_size)


def _build_service(root: str, **overrides: object) -> TagIndexService:
    root_path = Path(root)
    service = TagIndexService(root_path, _load_config(root_path, **overrides))
    service.scan_workspace()
    return service


def _default_export_path(path: Path, node: HeadingNode) -> Path:
    return path.with_name(f"{path.stem}-{make_safe_file_component(node.label)}{path.suffix}")


def _write_or_echo(text: str, output: Path | None) -> None:
    if output is None:
        click.echo(text, nl=False)
        return
    try:
        output.write_text(text, encoding="utf-8")
    except OSError as error:
        raise click.ClickException(f"Cannot write {output}: {error}") from error


def _format_node(node: HeadingNode, depth: int, tags: list[str]) -> str:
    indent = "  " * depth
    suffix = f"  [{' '.join(f'#{tag}' for tag in tags)}]" if tags else ""
    return f"{node.line + 1:>5}  {indent}{node.label or '(Untitled)'}{suffix}"


def _render_outline(outline: HeadingOutline, tags_by_line: dict[int, list[str]]) -> list[str]:
    lines = []
    for node in outline.ordered:
        depth = len(outline.ancestors_of(node))
        lines.append(_format_node(node, depth, tags_by_line.get(node.line, [])))
    return lines


@click.group()
@click.version_option(package_name="heading-tags")
@click.option("-v", "--verbose", is_flag=True, help="Log progress to stderr")
def cli(verbose: bool = False):
    """
    Inspect Markdown and Typst heading outlines and the tags attached to them.

    Tags are written in a trailing comment on the heading line, for example
    ``## Intro <!-- #todo :: check numbers :: -->`` or ``= Intro // #todo``.
    """
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


@cli.command()
@click.argument("filepath", type=click.Path(exists=True, dir_okay=False))
def outline(filepath: str):
    """Print the heading tree of FILEPATH."""
    path = Path(filepath)
    config = _load_config(path.parent)
    try:
        matches = parse_file(path, config.max_file_size)
    except ParseFileError as error:
        raise click.ClickException(str(error)) from error

    tags_by_line = {match.line: match.tags for match in matches}
    for line in _render_outline(build_outline(matches), tags_by_line):
        click.echo(line)


@cli.command()
@ROOT_ARGUMENT
def tags(root: str):
    """List every tag used or defined under ROOT."""
    service = _build_service(root)
    for tag in service.get_all_tags():
        count = len(service.get_blocks_by_tag(tag))
        definition = service.definitions.get(tag)
        marker = "*" if definition is not None and definition.pinned else " "
        click.echo(f"{marker} {tag}\t{count}")


@cli.command()
@click.argument("tag")
@ROOT_ARGUMENT
def blocks(tag: str, root: str):
    """List the headings tagged with TAG under ROOT."""
    service = _build_service(root)
    root_path = Path(root)
    for block in service.get_blocks_by_tag(tag.lstrip("#")):
        location = Path(block.uri)
        try:
            location = location.relative_to(root_path)
        except ValueError:
            pass
        breadcrumb = " > ".join(block.breadcrumb)
        remark = f"  ({block.heading.remark})" if block.heading.remark else ""
        click.echo(f"{location}:{block.line + 1}\t{breadcrumb}{remark}")


@cli.command()
@click.argument("filepath", type=click.Path(exists=True, dir_okay=False))
@click.argument("line", type=click.IntRange(min=1))
@click.option(
    "--preamble",
    type=click.Path(exists=True, dir_okay=False),
    help="File whose content is placed before the exported block",
)
@click.option("-o", "--output", type=click.Path(dir_okay=False), help="Write to a file instead of stdout")
@click.option(
    "--save",
    is_flag=True,
    help="Write next to FILEPATH, named after the file and the heading",
)
def export(
    filepath: str,
    line: int,
    preamble: str | None = None,
    output: str | None = None,
    save: bool = False,
):
    """Export the heading block starting at LINE (1-based) of FILEPATH.

    With --save and no --output, the block of `## Results` in `paper.md` is
    written to `paper-results.md`.
    """
    path = Path(filepath)
    config = _load_config(path.parent)
    try:
        document = load_document(path, config.max_file_size)
    except (OSError, UnicodeDecodeError) as error:
        raise click.ClickException(str(error)) from error

    heading_outline = build_outline(parse_document(document))
    node = heading_outline.find_by_line(line - 1)
    if node is None:
        raise click.BadParameter(f"No heading at line {line} of {filepath}")

    preamble_text = Path(preamble).read_text(encoding="utf-8") if preamble else ""
    text = export_subtree(document, heading_outline.ordered, node, preamble_text)

    if output:
        _write_or_echo(text, Path(output))
    elif save:
        destination = _default_export_path(path, node)
        _write_or_echo(text, destination)
        click.echo(f"Wrote {destination}")
    else:
        _write_or_echo(text, None)


@cli.command("compile")
@click.argument("tag")
@ROOT_ARGUMENT
@click.option("--title", help="Title heading placed before the gathered blocks")
@click.option("-o", "--output", type=click.Path(dir_okay=False), help="Write to a file instead of stdout")
def compile_command(tag: str, root: str, title: str | None = None, output: str | None = None):
    """Gather every heading block tagged with TAG under ROOT into one document.

    Each block keeps its ancestor headings, and the `#import`, `#set` and
    `#show` lines of Typst sources are placed at the top.
    """
    tag = tag.lstrip("#")
    service = _build_service(root)
    tagged = service.get_blocks_by_tag(tag)
    if not tagged:
        raise click.ClickException(f"No headings tagged #{tag} under {root}")

    documents = {}
    for uri in dict.fromkeys(block.uri for block in tagged):
        try:
            documents[uri] = load_document(Path(uri), service.config.max_file_size)
        except (OSError, UnicodeDecodeError) as error:
            raise click.ClickException(str(error)) from error

    try:
        text = compile_tagged_blocks(documents, tagged, title)
    except HeadingTagsError as error:
        raise click.ClickException(str(error)) from error

    _write_or_echo(text, Path(output) if output else None)


@cli.command("rename-tag")
@click.argument("old_name")
@click.argument("new_name")
@ROOT_ARGUMENT
def rename_tag_command(old_name: str, new_name: str, root: str):
    """Rename OLD_NAME to NEW_NAME in every document under ROOT."""
    try:
        new_name = validate_tag_name(new_name)
    except HeadingTagsError as error:
        raise click.BadParameter(str(error)) from error

    service = _build_service(root)
    files = sorted({block.uri for block in service.get_blocks_by_tag(old_name)})

    for uri in files:
        path = Path(uri)
        try:
            document = load_document(path, service.config.max_file_size)
            updated = rename_tag(document, old_name, new_name)
            if updated != document.text:
                write_document(path, updated)
        except HeadingTagsError as error:
            raise click.BadParameter(str(error)) from error
        except (OSError, UnicodeDecodeError) as error:
            raise click.ClickException(str(error)) from error
        service.update_file(path)

    click.echo(f"Renamed #{old_name} to #{new_name} in {len(files)} file(s)")


@cli.command()
@ROOT_ARGUMENT
@click.option("--interval", type=float, default=1.0, show_default=True, help="Polling interval")
def watch(root: str, interval: float = 1.0):
    """Keep the tag index of ROOT current and report changes."""
    service = _build_service(root)

    def report() -> None:
        click.echo(f"{len(service.indexed_files())} files, {len(service.get_all_tags())} tags")

    report()
    service.subscribe(report)
    watcher = WorkspaceWatcher(service)
    watcher.start()
    try:
        while watcher.running:
            time.sleep(interval)
    except KeyboardInterrupt:
        pass
    finally:
        watcher.stop()


if __name__ == "__main__":
    cli()
