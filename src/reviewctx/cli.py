"""reviewctx CLI — Typer application with changes, tree, pack, branches, and init commands."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console

from reviewctx import __version__

app = typer.Typer(
    name="reviewctx",
    help="Pick the changed and context files of a branch and pack them for review.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console(stderr=True)

NO_CHANGES_MESSAGE = "No changes found between branches"
ALL_HIDDEN_MESSAGE = "Changes found, but all were hidden by your Ignore Patterns."


def _configure_logging(verbose: bool, debug: bool) -> None:
    from rich.logging import RichHandler

    level = logging.DEBUG if debug else logging.INFO if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=debug, markup=False)],
        force=True,
    )


def _resolve_repo_root() -> Path:
    """Find the git repo root, exit 2 on failure."""
    from reviewctx.git.adapter import GitError, get_repo_root

    try:
        return get_repo_root()
    except GitError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc


def _load_coordinator(repo_root: Path, config: Optional[str]):
    """Load config and build a SelectionCoordinator, exit 2 on config errors."""
    from reviewctx.config.loader import ConfigError, load_config
    from reviewctx.selection.coordinator import SelectionCoordinator

    try:
        cfg = load_config(repo_root, config)
        # refs are loaded by the caller so the change set is read once
        target, source = cfg.review.target, cfg.review.source
        cfg.review.target = cfg.review.source = ""
        coordinator = SelectionCoordinator.from_config(repo_root, cfg)
    except ConfigError as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc
    cfg.review.target, cfg.review.source = target, source
    return coordinator, cfg


def _load_changes(coordinator, target: Optional[str], source: Optional[str], cfg) -> None:
    """Load the change set for the ref pair, printing the empty-result messages."""
    from reviewctx.selection.changeset import RebuildKind

    target = target or cfg.review.target
    source = source or cfg.review.source
    if not (target and source):
        console.print(
            "[bold red]Error:[/bold red] both TARGET and SOURCE refs are required "
            "(pass them or set \\[review] target/source)"
        )
        raise typer.Exit(code=2)

    coordinator.set_refs(target, source)
    outcome = coordinator.changes.outcome
    if outcome is None:
        return
    if outcome.kind is RebuildKind.NO_CHANGES:
        console.print(f"[dim]{NO_CHANGES_MESSAGE}[/dim]")
    elif outcome.kind is RebuildKind.ALL_HIDDEN:
        console.print(f"[yellow]{ALL_HIDDEN_MESSAGE}[/yellow]")


# ── changes ───────────────────────────────────────────────────────────────────


@app.command()
def changes(
    target: Optional[str] = typer.Argument(None, help="Base ref (defaults to review.target)"),
    source: Optional[str] = typer.Argument(None, help="Compare ref (defaults to review.source)"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to .reviewctx.toml"),
) -> None:
    """Show the files that differ between TARGET and SOURCE."""
    from reviewctx.output import terminal

    repo_root = _resolve_repo_root()
    coordinator, cfg = _load_coordinator(repo_root, config)
    _load_changes(coordinator, target, source, cfg)

    if coordinator.changes.is_empty:
        raise typer.Exit(code=0)

    title = f"Changes {coordinator.target}..{coordinator.source}"
    terminal.render_tree(
        coordinator.changes, title, console,
        depth=1_000, show_tokens=cfg.output.show_tokens,
    )
    terminal.render_summary(coordinator.summary(), console)


# ── tree ──────────────────────────────────────────────────────────────────────


@app.command()
def tree(
    path: Optional[str] = typer.Argument(None, help="Folder to list, relative to the repo root"),
    depth: int = typer.Option(1, "--depth", "-d", min=1, help="Levels to expand"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to .reviewctx.toml"),
) -> None:
    """List the project tree with estimated token costs."""
    from reviewctx.output import terminal

    repo_root = _resolve_repo_root()
    coordinator, cfg = _load_coordinator(repo_root, config)

    folder = None
    if path:
        folder = coordinator.project.node(path)
        if folder is None or folder.kind != "folder":
            console.print(f"[bold red]Not a visible folder:[/bold red] {path}")
            raise typer.Exit(code=1)

    title = folder.path if folder is not None else repo_root.name
    terminal.render_tree(
        coordinator.project, title, console,
        folder=folder, depth=depth, show_tokens=cfg.output.show_tokens,
    )


# ── pack ──────────────────────────────────────────────────────────────────────


@app.command()
def pack(
    target: Optional[str] = typer.Argument(None, help="Base ref (defaults to review.target)"),
    source: Optional[str] = typer.Argument(None, help="Compare ref (defaults to review.source)"),
    include: List[str] = typer.Option([], "--include", "-i", help="Add a project file or folder as context"),
    exclude: List[str] = typer.Option([], "--exclude", "-x", help="Leave a changed file or folder out"),
    instruction: Optional[str] = typer.Option(None, "--instruction", help="Review instruction"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Write the document to a file"),
    format: Optional[str] = typer.Option(None, "--format", "-f", help="Output format: prompt | json | terminal"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to .reviewctx.toml"),
) -> None:
    """Assemble the selected changes and context files into one review document."""
    from reviewctx.config.schema import OUTPUT_FORMATS
    from reviewctx.output import json_report, terminal
    from reviewctx.selection.base import SelectionError

    if format and format not in OUTPUT_FORMATS:
        console.print(f"[bold red]Invalid format:[/bold red] {format}")
        raise typer.Exit(code=2)

    repo_root = _resolve_repo_root()
    coordinator, cfg = _load_coordinator(repo_root, config)
    # pack always produces a document unless terminal output is asked for explicitly
    fmt = format or ("prompt" if cfg.output.format == "terminal" else cfg.output.format)
    if instruction:
        coordinator.instruction = instruction
    _load_changes(coordinator, target, source, cfg)

    for path in exclude:
        node = coordinator.changes.get(path.strip("/"))
        if node is None:
            console.print(f"[yellow]⚠[/yellow]  Not in the change set: {path}")
            continue
        coordinator.apply_batch("changes", [(node, False)])

    for path in include:
        node = coordinator.project.node(path)
        if node is None:
            console.print(f"[yellow]⚠[/yellow]  Not a visible project path: {path}")
            continue
        coordinator.apply_batch("project", [(node, True)])

    summary = coordinator.summary()
    if summary.total_files == 0:
        console.print("[yellow]No files selected for review.[/yellow]")
        raise typer.Exit(code=1)

    report_text: Optional[str] = None
    if fmt == "prompt":
        try:
            report_text = coordinator.assemble()
        except SelectionError as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            raise typer.Exit(code=1) from exc
    elif fmt == "json":
        report_text = json_report.render(coordinator)
    else:
        terminal.render_tree(
            coordinator.changes, f"Changes {coordinator.target}..{coordinator.source}",
            console, depth=1_000, show_tokens=cfg.output.show_tokens,
        )

    terminal.render_summary(summary, console)

    if report_text is None:
        raise typer.Exit(code=0)
    if output:
        Path(output).write_text(report_text, encoding="utf-8")
        console.print(f"[green]✓[/green] Written to {output}")
    else:
        print(report_text)


# ── branches ──────────────────────────────────────────────────────────────────


@app.command()
def branches() -> None:
    """List local branches."""
    from reviewctx.git.adapter import GitClient

    repo_root = _resolve_repo_root()
    names = GitClient(repo_root).list_branches()
    if not names:
        console.print("[dim]No branches found.[/dim]")
        raise typer.Exit(code=0)
    for name in names:
        print(name)


# ── init ──────────────────────────────────────────────────────────────────────


@app.command()
def init() -> None:
    """Generate a starter .reviewctx.toml in the repo root."""
    from reviewctx.config.defaults import DEFAULT_TOML
    from reviewctx.config.loader import CONFIG_FILENAME

    repo_root = _resolve_repo_root()
    config_path = repo_root / CONFIG_FILENAME

    if config_path.exists():
        console.print(f"[yellow]⚠[/yellow]  {CONFIG_FILENAME} already exists at {config_path}")
        raise typer.Exit(code=1)

    config_path.write_text(DEFAULT_TOML, encoding="utf-8")
    console.print(f"[green]✓[/green] Created {config_path}")


# ── version ───────────────────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        print(f"reviewctx {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V", callback=_version_callback,
        is_eager=True, help="Show version and exit",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
    debug: bool = typer.Option(False, "--debug", help="Debug output"),
) -> None:
    """reviewctx — Pack branch changes and context files for code review."""
    _configure_logging(verbose, debug)
