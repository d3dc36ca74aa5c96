"""Command-line interface for diffnote."""

import asyncio
import sys
from pathlib import Path

import click

from diffnote.config import ConfigError, load_config
from diffnote.core.diff_source import DiffSourceError, FileDiffSource, GitDiffSource
from diffnote.core.discovery import ScanFailed, scan_repositories
from diffnote.core.engine import DiffCorrelationEngine
from diffnote.core.protocol import encode_event
from diffnote.core.store import CommentStore, CommentStoreError
from diffnote.logging_config import setup_logging
from diffnote.models.comment import CommentStatus, Side

DEFAULT_SESSION = "default"


@click.group()
@click.version_option(package_name="diffnote")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--quiet", "-q", is_flag=True, help="Only log errors")
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Config file (default: ~/.config/diffnote/config.yaml)",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, quiet: bool, config_file: Path | None):
    """diffnote - review diffs with inline comments.

    Examples:

        diffnote scan --root ~/code --max-depth 2
        diffnote review changes.diff --session feature-x
        diffnote comment add --file src/app.py --line 12 "Needs a test"
    """
    setup_logging(verbose=verbose, quiet=quiet)
    try:
        ctx.obj = load_config(config_file)
    except ConfigError as e:
        raise click.ClickException(str(e))


@cli.command()
@click.option("--root", "roots", multiple=True, type=click.Path(path_type=Path), help="Directory to scan (repeatable)")
@click.option("--max-depth", type=int, default=None, help="Maximum depth below each root")
@click.pass_obj
def scan(config, roots: tuple[Path, ...], max_depth: int | None):
    """Stream discovered git repositories as NDJSON."""
    scan_roots = list(roots) or config.repo_scan_roots
    depth = max_depth if max_depth is not None else config.repo_scan_max_depth

    async def run() -> bool:
        ok = True
        async for event in scan_repositories(scan_roots, depth):
            sys.stdout.write(encode_event(event))
            sys.stdout.flush()
            if isinstance(event, ScanFailed):
                ok = False
        return ok

    if not asyncio.run(run()):
        sys.exit(1)


@cli.command()
@click.argument("diff_file", required=False, type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--repo",
    "repo_path",
    type=click.Path(file_okay=False, path_type=Path),
    help="Diff a repository working tree instead of a file",
)
@click.option("--base", default="HEAD", show_default=True, help="Base ref to diff the repository against")
@click.option("--session", "session_id", default=DEFAULT_SESSION, show_default=True, help="Review session id")
@click.option("--store", "store_path", type=click.Path(dir_okay=False, path_type=Path), help="Comment store file")
@click.option("--threshold", type=int, default=None, help="Collapse files with more changed lines than this")
@click.pass_obj
def review(
    config,
    diff_file: Path | None,
    repo_path: Path | None,
    base: str,
    session_id: str,
    store_path: Path | None,
    threshold: int | None,
):
    """Show which files of a diff start expanded, with comment markers.

    Reads DIFF_FILE, or diffs the working tree of --repo against --base.
    """
    if (diff_file is None) == (repo_path is None):
        raise click.UsageError("Give either DIFF_FILE or --repo")
    source = FileDiffSource(diff_file) if diff_file is not None else GitDiffSource(repo_path, base)

    try:
        diff = source.get_diff()
        comments = CommentStore(store_path or config.store_path).list(session_id)
    except (DiffSourceError, CommentStoreError) as e:
        raise click.ClickException(str(e))

    engine = DiffCorrelationEngine(
        diff.raw_diff,
        files=diff.files,
        comments=comments,
        large_file_threshold=threshold if threshold is not None else config.large_file_threshold,
        expand_quota=config.expand_quota,
    )

    if not engine.has_changes:
        click.echo("No changes to review.")
        return

    click.echo(f"{len(engine.files)} file{'s' if len(engine.files) != 1 else ''} changed")
    for parsed in engine.files:
        marker = "v" if engine.is_expanded(parsed.path) else ">"
        click.echo(f"{marker} {parsed.path} ({parsed.change_kind.value}, +{parsed.additions} -{parsed.deletions})")
        for comment in engine.file_comments(parsed.path):
            click.echo(f"    [file] {comment.content.splitlines()[0] if comment.content else ''}")
        for indicator in engine.indicators(parsed.path):
            count = len(indicator.comments)
            click.echo(f"    L{indicator.line}: {count} comment{'s' if count != 1 else ''}")


@cli.group()
def comment():
    """Manage review comments in the local store."""


@comment.command("add")
@click.argument("content")
@click.option("--session", "session_id", default=DEFAULT_SESSION, show_default=True)
@click.option("--file", "file_path", required=True, help="File the comment belongs to")
@click.option("--line", "line_start", type=int, help="Line number (omit for a file comment)")
@click.option("--end-line", "line_end", type=int, help="Last line of a range")
@click.option("--side", type=click.Choice([s.value for s in Side]), default=Side.NEW.value, show_default=True)
@click.pass_obj
def comment_add(config, content: str, session_id: str, file_path: str, line_start, line_end, side: str):
    """Add a comment."""
    store = CommentStore(config.store_path)
    try:
        created = store.create(
            session_id,
            file_path=file_path,
            content=content,
            line_start=line_start,
            line_end=line_end,
            side=Side(side),
        )
    except CommentStoreError as e:
        raise click.ClickException(str(e))
    click.echo(created.id)


@comment.command("list")
@click.option("--session", "session_id", default=DEFAULT_SESSION, show_default=True)
@click.pass_obj
def comment_list(config, session_id: str):
    """List a session's comments."""
    try:
        comments = CommentStore(config.store_path).list(session_id)
    except CommentStoreError as e:
        raise click.ClickException(str(e))
    if not comments:
        click.echo("No comments.")
        return
    for c in comments:
        first_line = c.content.splitlines()[0] if c.content else ""
        click.echo(f"{c.id}  [{c.status.value}] {c.file_path}:{c.location_short} - {first_line}")


@comment.command("edit")
@click.argument("comment_id")
@click.argument("content")
@click.pass_obj
def comment_edit(config, comment_id: str, content: str):
    """Replace a comment's content."""
    try:
        CommentStore(config.store_path).update(comment_id, content)
    except CommentStoreError as e:
        raise click.ClickException(str(e))


@comment.command("delete")
@click.argument("comment_id")
@click.pass_obj
def comment_delete(config, comment_id: str):
    """Delete a comment."""
    try:
        CommentStore(config.store_path).delete(comment_id)
    except CommentStoreError as e:
        raise click.ClickException(str(e))


@comment.command("status")
@click.argument("comment_id")
@click.argument("status", type=click.Choice([s.value for s in CommentStatus]))
@click.pass_obj
def comment_status(config, comment_id: str, status: str):
    """Move a comment to another status."""
    try:
        CommentStore(config.store_path).set_status(comment_id, CommentStatus(status))
    except CommentStoreError as e:
        raise click.ClickException(str(e))


if __name__ == "__main__":
    cli()
