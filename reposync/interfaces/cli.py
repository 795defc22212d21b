"""Command-line interface for RepoSync.

Commands:
- configure: Save the repository that receives writes
- status: Show the active repository and check push access
- disconnect: Remove the saved repository
- push: Commit one local file
- upload: Commit every text file of a local directory
- compare: Compare another repository against the active one
- transfer: Copy another repository (or only its changes) into the active one
- history: Show recent commits
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click

from .. import __version__
from ..infrastructure.error_handler import ComparisonError, SyncError, TransferAborted
from ..infrastructure.logger import logger
from ..models import FileStatus, SyncConfig, TransferOptions, TransferResult
from ..services.document_store import JsonFileDocumentStore
from .api import RepoSyncClient

DEFAULT_STORE = Path.home() / ".reposync" / "config.json"


def _run(coro: Any) -> Any:
    try:
        return asyncio.run(coro)
    except SyncError as e:
        raise click.ClickException(str(e)) from e


def _split_repository(value: str) -> Tuple[str, str]:
    owner, _, repo = value.partition("/")
    if not owner or not repo or "/" in repo:
        raise click.BadParameter(f"expected OWNER/REPO, got {value!r}")
    return owner, repo


def _progress_printer(enabled: bool):
    if not enabled:
        return None

    def show(percent: int, message: str, detail: Optional[Dict[str, Any]] = None) -> None:
        click.echo(f"[{percent:3d}%] {message}")

    return show


def _client(ctx: click.Context) -> RepoSyncClient:
    client: RepoSyncClient = ctx.obj
    if not client.is_configured():
        raise click.ClickException("No repository configured. Run 'reposync configure' first.")
    return client


def _print_transfer(result: TransferResult) -> None:
    click.echo(
        f"Transferred {len(result.transferred)} files in {len(result.commits)} commits"
    )
    if result.deleted:
        click.echo(f"Deleted {len(result.deleted)} files")
    for path, error in sorted(result.skipped.items()):
        click.echo(f"  skipped {path}: {error}", err=True)
    for path, error in sorted(result.failed.items()):
        click.echo(f"  failed  {path}: {error}", err=True)


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.option(
    "--store",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_STORE,
    show_default=True,
    help="JSON file holding saved configurations.",
)
@click.option("--user", default="default", show_default=True, help="Configuration owner.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, store: Path, user: str) -> None:
    """RepoSync - commit files and mirror repositories through the GitHub API."""
    if ctx.obj is None:
        ctx.obj = RepoSyncClient(
            JsonFileDocumentStore(store),
            user_id=user,
            config=SyncConfig.from_env(),
            verbose=verbose,
        )
    elif verbose:
        ctx.obj.set_verbose(True)
    ctx.obj.load_config()


@cli.command()
@click.argument("token")
@click.argument("owner")
@click.argument("repo")
@click.option("--branch", "-b", default="main", show_default=True)
@click.pass_obj
def configure(client: RepoSyncClient, token: str, owner: str, repo: str, branch: str) -> None:
    """Save OWNER/REPO as the repository that receives writes."""
    try:
        config = client.configure(token, owner, repo, branch)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e
    except SyncError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"Configured {config.full_name}@{config.branch}")


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the active repository and whether the token can push."""
    client: RepoSyncClient = ctx.obj
    config = client.get_config()
    if config is None:
        click.echo("Not configured")
        return
    click.echo(f"Repository: {config.full_name}")
    click.echo(f"Branch:     {config.branch}")
    can_push = _run(client.test_connection())
    click.echo(f"Push access: {'yes' if can_push else 'no'}")


@cli.command()
@click.pass_obj
def disconnect(client: RepoSyncClient) -> None:
    """Remove the saved repository configuration."""
    if client.disconnect():
        click.echo("Disconnected")
    else:
        click.echo("Nothing to disconnect")


@cli.command()
@click.argument("local_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("remote_path")
@click.option("--message", "-m", required=True, help="Commit message.")
@click.option("--no-progress", is_flag=True, help="Disable progress output.")
@click.pass_context
def push(
    ctx: click.Context, local_path: Path, remote_path: str, message: str, no_progress: bool
) -> None:
    """Commit LOCAL_PATH to REMOTE_PATH in the active repository."""
    client = _client(ctx)
    content = local_path.read_text(encoding="utf-8")
    _run(client.update_file(remote_path, content, message, _progress_printer(not no_progress)))
    click.echo(f"Committed {remote_path}")


def _collect_files(directory: Path) -> List[Tuple[str, str]]:
    files = []
    for path in sorted(directory.rglob("*")):
        if not path.is_file():
            continue
        relative = path.relative_to(directory).as_posix()
        try:
            files.append((relative, path.read_text(encoding="utf-8")))
        except UnicodeDecodeError:
            logger.warning(f"Skipping {relative}: not a UTF-8 text file")
    return files


@cli.command()
@click.argument("directory", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--message", "-m", required=True, help="Base commit message.")
@click.option("--no-progress", is_flag=True, help="Disable progress output.")
@click.pass_context
def upload(ctx: click.Context, directory: Path, message: str, no_progress: bool) -> None:
    """Commit every text file under DIRECTORY, keeping relative paths."""
    client = _client(ctx)
    files = _collect_files(directory)
    if not files:
        click.echo("No files to upload")
        return

    result = _run(
        client.upload_multiple_files(files, message, _progress_printer(not no_progress))
    )
    succeeded = len(result.results) - len(result.failed)
    click.echo(f"Uploaded {succeeded}/{len(result.results)} files ({result.strategy.value})")
    for item in result.failed:
        click.echo(f"  failed {item.path}: {item.error}", err=True)
    if not result.success:
        ctx.exit(1)


@cli.command()
@click.argument("source")
@click.option("--branch", "-b", default=None, help="Source branch (default branch when omitted).")
@click.option("--all", "show_all", is_flag=True, help="Also list unchanged files.")
@click.pass_context
def compare(ctx: click.Context, source: str, branch: Optional[str], show_all: bool) -> None:
    """Compare SOURCE (OWNER/REPO) against the active repository."""
    client = _client(ctx)
    owner, repo = _split_repository(source)
    comparisons = _run(client.compare_repositories(owner, repo, branch))

    counts = {status: 0 for status in FileStatus}
    for item in comparisons:
        counts[item.status] += 1
        if item.status is not FileStatus.UNCHANGED or show_all:
            click.echo(f"{item.status.value:<10} {item.path}")
    click.echo(", ".join(f"{count} {status.value}" for status, count in counts.items()))


@cli.command()
@click.argument("source")
@click.option("--message", "-m", required=True, help="Commit message.")
@click.option("--branch", "-b", default=None, help="Source branch (default branch when omitted).")
@click.option("--changed-only", is_flag=True, help="Transfer only new and modified files.")
@click.option("--include-deleted", is_flag=True, help="With --changed-only, also delete removed files.")
@click.option("--replace", is_flag=True, help="Clear the destination branch before copying.")
@click.option("--no-progress", is_flag=True, help="Disable progress output.")
@click.pass_context
def transfer(
    ctx: click.Context,
    source: str,
    message: str,
    branch: Optional[str],
    changed_only: bool,
    include_deleted: bool,
    replace: bool,
    no_progress: bool,
) -> None:
    """Copy SOURCE (OWNER/REPO) into the active repository."""
    client = _client(ctx)
    owner, repo = _split_repository(source)
    progress = _progress_printer(not no_progress)

    if changed_only:
        try:
            comparisons = asyncio.run(client.compare_repositories(owner, repo, branch))
        except ComparisonError as e:
            click.echo(f"Comparison failed ({e}); falling back to a full transfer", err=True)
        else:
            options = TransferOptions(include_deleted=include_deleted)
            success = _run(
                client.transfer_modified_files(
                    comparisons, owner, repo, branch, message, options, progress
                )
            )
            click.echo("Transfer completed" if success else "Transfer completed with errors")
            if not success:
                ctx.exit(1)
            return

    try:
        result = asyncio.run(
            client.transfer_repository(owner, repo, message, branch, replace, progress)
        )
    except TransferAborted as e:
        _print_transfer(e.result)
        raise click.ClickException(str(e)) from e
    except SyncError as e:
        raise click.ClickException(str(e)) from e

    _print_transfer(result)
    if not result.success:
        ctx.exit(1)


@cli.command()
@click.option("--limit", "-n", default=10, show_default=True, type=click.IntRange(1, 100))
@click.pass_context
def history(ctx: click.Context, limit: int) -> None:
    """Show the most recent commits of the active branch."""
    client = _client(ctx)
    for commit in _run(client.get_commit_history(limit)):
        summary = commit.message.splitlines()[0] if commit.message else ""
        click.echo(f"{commit.short_sha}  {commit.date}  {commit.author}: {summary}")


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = ["cli", "main"]
