"""Main CLI entry point for SnapVCS."""

import logging
import os
import socket
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

from snapvcs.constants import KIND_TREE, SNAPVCS_DIR
from snapvcs.core.tree_builder import parse_manifest
from snapvcs.exceptions import InvalidInputError, SnapVCSError
from snapvcs.repository import Repository

console = Console()
err_console = Console(stderr=True)
app = typer.Typer(
    name="snapvcs",
    help="Minimal content-addressed version control",
    add_completion=False,
)


def _print_error(message: str) -> None:
    console.print(f"[bold red]Error:[/bold red] {message}", style="red")


def _default_author() -> str:
    hostname = socket.gethostname()
    username = os.getenv("USER") or os.getenv("USERNAME") or "unknown"
    return f"{username}@{hostname}"


def _open_repo() -> Repository:
    """Open the repository in the current directory or exit with code 1."""
    workspace_root = Path.cwd()
    if not (workspace_root / SNAPVCS_DIR).is_dir():
        _print_error("Not a SnapVCS repository")
        console.print(
            f"  No {SNAPVCS_DIR}/ directory found in {workspace_root}",
            style="dim",
        )
        console.print(
            "\nRun [bold]snapvcs init[/bold] to initialize a repository",
            style="yellow",
        )
        raise typer.Exit(1)

    try:
        return Repository.open(workspace_root)
    except SnapVCSError as e:
        _print_error(str(e))
        raise typer.Exit(1)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show debug logging",
    ),
) -> None:
    """Minimal content-addressed version control."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@app.command()
def version() -> None:
    """Show SnapVCS version."""
    from snapvcs import __version__
    typer.echo(f"SnapVCS version {__version__}")


@app.command()
def init(
    force: bool = typer.Option(
        False,
        "--force",
        help=f"Overwrite existing {SNAPVCS_DIR}/ directory (dangerous!)",
    ),
    compress: Optional[bool] = typer.Option(
        None,
        "--compress/--no-compress",
        help="Gzip objects before hashing (fixed for the repository's lifetime)",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress output except errors",
    ),
) -> None:
    """Initialize a SnapVCS repository in the current directory."""
    workspace_root = Path.cwd()
    repo_dir = workspace_root / SNAPVCS_DIR

    if repo_dir.exists() and not force:
        _print_error(f"SnapVCS repository already exists in {workspace_root}")
        console.print(
            "\nUse [bold]--force[/bold] to reinitialize (will delete existing data!)",
            style="yellow",
        )
        raise typer.Exit(1)

    if repo_dir.exists() and not quiet:
        console.print(f"[yellow]Removing existing {SNAPVCS_DIR}/ directory...[/yellow]")

    try:
        repo = Repository.init(workspace_root, compression=compress, force=force)
    except SnapVCSError as e:
        _print_error(f"Failed to initialize repository: {e}")
        raise typer.Exit(1)

    if not quiet:
        success_message = f"""[bold green]✓[/bold green] Initialized SnapVCS repository

[dim]Repository root:[/dim]  {workspace_root}
[dim]Storage location:[/dim] {repo.repo_dir}
[dim]Compression:[/dim]      {'on' if repo.config.compression else 'off'}
[dim]Default author:[/dim]   {_default_author()}

[bold]Next steps:[/bold]
  1. Create or copy files into this directory
  2. Commit a snapshot: [cyan]snapvcs commit -m "Initial snapshot"[/cyan]
"""
        console.print(Panel(success_message, border_style="green", title="SnapVCS Initialized"))


@app.command()
def add(
    paths: List[str] = typer.Argument(..., help="Files to stage"),
) -> None:
    """Store files and record them in the index."""
    repo = _open_repo()

    stats = repo.staging.add([Path(p) for p in paths])

    for path_str in stats["added"]:
        console.print(f"  [green]+[/green] {path_str}")
    for path_str in stats["updated"]:
        console.print(f"  [yellow]*[/yellow] {path_str}")

    if stats["errors"]:
        console.print("\n[bold red]Errors:[/bold red]")
        for error in stats["errors"]:
            console.print(f"  [red]x[/red] {error}")

    total = len(stats["added"]) + len(stats["updated"])
    if total > 0:
        console.print(f"\n[bold green]>[/bold green] {total} file(s) staged")
    else:
        console.print("\n[yellow]No files staged[/yellow]")

    if stats["errors"]:
        raise typer.Exit(1)


@app.command()
def snapshot() -> None:
    """Snapshot the working tree into the store without committing."""
    repo = _open_repo()

    try:
        tree_id = repo.snapshot()
    except SnapVCSError as e:
        _print_error(str(e))
        raise typer.Exit(1)

    console.print(f"[bold green]>[/bold green] Tree [bold cyan]{tree_id}[/bold cyan]")


@app.command()
def commit(
    message: Optional[str] = typer.Option(
        None,
        "--message",
        "-m",
        help="Commit message (required)",
    ),
    author: Optional[str] = typer.Option(
        None,
        "--author",
        help="Override default author (format: name@host)",
    ),
) -> None:
    """Snapshot the working tree and commit it."""
    repo = _open_repo()

    if not message:
        _print_error("Commit message is required")
        console.print(
            "  Use [bold]-m \"your message\"[/bold] to provide a commit message",
            style="yellow",
        )
        raise typer.Exit(1)

    if not author:
        author = _default_author()

    try:
        commit_id = repo.commit(author, message)
        new_commit = repo.commit_chain.read_commit(commit_id)
    except SnapVCSError as e:
        _print_error(str(e))
        raise typer.Exit(1)

    parent_id = new_commit.parent_id
    console.print(f"[bold green]>[/bold green] Committed [bold cyan]{commit_id[:7]}[/bold cyan]")
    console.print(f"  [dim]Author:[/dim]  {author}")
    console.print(f"  [dim]Date:[/dim]    {_format_date(new_commit.timestamp)}")
    console.print(f"  [dim]Tree:[/dim]    {new_commit.tree_id[:7]}")
    console.print(f"  [dim]Parent:[/dim]  {parent_id[:7] if parent_id else '(root commit)'}")
    console.print(f"\n  {message}")


@app.command()
def log(
    max_count: Optional[int] = typer.Option(
        None,
        "--max-count",
        "-n",
        help="Limit number of commits to show",
    ),
    oneline: bool = typer.Option(
        False,
        "--oneline",
        help="Show each commit on a single line",
    ),
) -> None:
    """Show commit history."""
    repo = _open_repo()

    try:
        commits = list(repo.commit_chain.history(limit=max_count))
    except SnapVCSError as e:
        _print_error(str(e))
        raise typer.Exit(1)

    if not commits:
        console.print("[dim]No commits yet[/dim]")
        return

    for i, (commit_id, entry) in enumerate(commits):
        if oneline:
            first_line = entry.message.split("\n")[0]
            console.print(f"[yellow]{commit_id[:7]}[/yellow] {first_line}")
            continue

        console.print(f"[bold yellow]commit {commit_id}[/bold yellow]")
        if entry.parent_id:
            console.print(f"[dim]Parent: {entry.parent_id[:7]}[/dim]")
        else:
            console.print("[dim]Parent: (root commit)[/dim]")
        console.print(f"[bold]Author:[/bold] {entry.author}")
        console.print(f"[bold]Date:[/bold]   {_format_date(entry.timestamp)}")
        console.print()
        for line in entry.message.split("\n"):
            console.print(f"    {line}")

        # Separator between commits (except after last one)
        if i < len(commits) - 1:
            console.print()


@app.command()
def status(
    short: bool = typer.Option(
        False,
        "--short",
        help="Show short format output",
    ),
) -> None:
    """Show working tree changes relative to the index."""
    repo = _open_repo()

    try:
        head_id = repo.head.read()
        report = repo.status()
    except SnapVCSError as e:
        _print_error(str(e))
        raise typer.Exit(1)

    if short:
        for path_str in report.new:
            console.print(f"?? {path_str}", markup=False)
        for path_str in report.modified:
            console.print(f" M {path_str}", markup=False)
        for path_str in report.deleted:
            console.print(f" D {path_str}", markup=False)
        return

    if head_id:
        console.print(f"[bold]HEAD:[/bold] {head_id[:7]}  [dim]({head_id})[/dim]")
    else:
        console.print("[bold]HEAD:[/bold] [dim](no commits yet)[/dim]")
    console.print()

    if report.is_clean:
        console.print("[dim]Nothing to commit (working tree clean)[/dim]")
        return

    console.print("[bold]Changes since last snapshot:[/bold]")
    for path_str in report.new:
        console.print(f"  [green]new:[/green]      {path_str}")
    for path_str in report.modified:
        console.print(f"  [yellow]modified:[/yellow] {path_str}")
    for path_str in report.deleted:
        console.print(f"  [red]deleted:[/red]  {path_str}")


@app.command("cat-object")
def cat_object(
    object_id: str = typer.Argument(..., help="Object id (full hash)"),
    tree: bool = typer.Option(
        False,
        "--tree",
        "-t",
        help="Pretty-print the object as a tree manifest",
    ),
) -> None:
    """Print the content of a stored object."""
    repo = _open_repo()

    try:
        data = repo.store.get(object_id)
        if tree:
            for entry in parse_manifest(data):
                console.print(
                    f"{entry.kind} {entry.object_id} {entry.name}",
                    style="bold blue" if entry.kind == KIND_TREE else None,
                    markup=False,
                    highlight=False,
                )
            return
    except InvalidInputError as e:
        _print_error(f"Not a tree object: {e}" if tree else str(e))
        raise typer.Exit(1)
    except SnapVCSError as e:
        _print_error(str(e))
        raise typer.Exit(1)

    stdout = typer.get_binary_stream("stdout")
    stdout.write(data)
    stdout.flush()


@app.command()
def purge() -> None:
    """Drop deleted entries from the index."""
    repo = _open_repo()

    try:
        with repo.index as index:
            purged = index.purge()
    except SnapVCSError as e:
        _print_error(str(e))
        raise typer.Exit(1)

    for path_str in purged:
        console.print(f"  [red]-[/red] {path_str}")
    console.print(f"[bold green]>[/bold green] Purged {len(purged)} deleted entr{'y' if len(purged) == 1 else 'ies'}")


@app.command()
def reset(
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Do not ask for confirmation",
    ),
) -> None:
    """Delete the repository, including all objects and history."""
    repo = _open_repo()

    if not yes:
        typer.confirm(f"Delete {repo.repo_dir} and all history?", abort=True)

    try:
        repo.reset()
    except SnapVCSError as e:
        _print_error(str(e))
        raise typer.Exit(1)

    console.print(f"[bold green]>[/bold green] Removed {repo.repo_dir}")


def _format_date(timestamp: str) -> str:
    try:
        return datetime.fromisoformat(timestamp).strftime("%Y-%m-%d %H:%M:%S")
    except ValueError:
        return timestamp


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
