"""Command line interface for reposearch."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from reposearch.backends.git import GitBackend
from reposearch.config import AppConfig
from reposearch.index.history import SQLiteRunHistory
from reposearch.index.indexer import ProjectIndexer
from reposearch.index.search import Searcher
from reposearch.index.storage import OpenMode, SQLiteDocumentStore, StoreError
from reposearch.models import Project, Repository, RunStatus


console = Console()
app = typer.Typer(help="reposearch - keep a full-text index in sync with source repositories")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _build_project(identifier: str, paths: List[Path], backend: GitBackend) -> Project:
    """One repository per path; a lone path is the project's main repository."""
    repositories = [
        Repository(
            identifier=None if len(paths) == 1 else path.name,
            root=path,
            supports_content=backend.supports_content(path),
        )
        for path in paths
    ]
    return Project(identifier=identifier, repositories=repositories)


def _build_indexer(
    config: AppConfig, project: Project, backend: GitBackend
) -> tuple[ProjectIndexer, SQLiteRunHistory]:
    base_dir = Path.cwd()
    store = SQLiteDocumentStore(
        config.index_path(project.identifier, base_dir), timeout=config.store_timeout
    )
    history = SQLiteRunHistory(config.history_path(base_dir), timeout=config.store_timeout)
    return ProjectIndexer(project, backend, store, history), history


def _status_label(status: RunStatus | None) -> str:
    if status is RunStatus.SUCCESS:
        return "[green]success[/green]"
    if status is RunStatus.FAIL:
        return "[red]fail[/red]"
    return "-"


@app.command()
def index(
    project: str = typer.Argument(..., help="Project identifier."),
    paths: List[Path] = typer.Argument(
        ..., help="Repository work trees belonging to the project.", resolve_path=True
    ),
    data_root: Path = typer.Option(None, "--data-root", help="Directory holding the indexes"),
    max_file_size: int = typer.Option(
        AppConfig().max_file_size_kb, "--max-file-size", help="Largest indexed file, in KB"
    ),
    optimize: bool = typer.Option(False, "--optimize", help="Optimize the index afterwards"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Index or incrementally update the repositories of a project."""
    _setup_logging(verbose)
    config = AppConfig(data_root=data_root, max_file_size_kb=max_file_size)
    backend = GitBackend(max_file_size=config.max_file_size)
    indexer, history = _build_indexer(config, _build_project(project, paths, backend), backend)

    if not indexer.repositories:
        console.print("[yellow]No indexable repositories found.[/yellow]")
        history.close()
        return

    console.print(f"Indexing into [bold]{escape(str(indexer.store.path))}[/bold]...")
    try:
        runs = indexer.index()
        if optimize:
            indexer.optimize()
    except StoreError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=1)
    finally:
        indexer.close()
        history.close()

    table = Table(show_header=True, header_style="bold magenta")
    for column in ("Repository", "Mode", "Status", "Added", "Updated", "Deleted", "Skipped", "Failed"):
        table.add_column(column)
    for run in runs:
        table.add_row(
            escape(run.repository.label),
            run.mode,
            _status_label(run.status),
            str(run.stats.added),
            str(run.stats.updated),
            str(run.stats.deleted),
            str(run.stats.skipped),
            str(run.stats.failed),
        )
    console.print(table)
    for run in runs:
        if run.message:
            console.print(f"[red]{escape(run.repository.label)}: {escape(run.message)}[/red]")


@app.command()
def search(
    project: str = typer.Argument(..., help="Project identifier."),
    tokens: List[str] = typer.Argument(..., help="Words to search for."),
    data_root: Path = typer.Option(None, "--data-root", help="Directory holding the indexes"),
    repository: Optional[str] = typer.Option(None, "--repository", help="Repository identifier"),
    rev: Optional[str] = typer.Option(None, "--rev", help="Branch, tag or revision"),
    content_type: Optional[str] = typer.Option(None, "--content-type", help="MIME type"),
    any_word: bool = typer.Option(False, "--any", help="Match any word instead of all"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Search the index of a project."""
    _setup_logging(verbose)
    config = AppConfig(data_root=data_root)
    store = SQLiteDocumentStore(config.index_path(project, Path.cwd()), timeout=config.store_timeout)

    try:
        store.open(OpenMode.READ)
        results = Searcher(store).search(tokens, repository, rev, content_type, all_words=not any_word)
    except StoreError as exc:
        raise typer.BadParameter(str(exc))
    finally:
        store.close()

    if not results:
        console.print("[yellow]No matches found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("#")
    table.add_column("Document")
    for position, uri in enumerate(results, start=1):
        table.add_row(str(position), escape(uri))
    console.print(table)


@app.command()
def purge(
    project: str = typer.Argument(..., help="Project identifier."),
    paths: List[Path] = typer.Argument(
        ..., help="Repository work trees belonging to the project.", resolve_path=True
    ),
    data_root: Path = typer.Option(None, "--data-root", help="Directory holding the indexes"),
) -> None:
    """Remove a project's index and its run history."""
    config = AppConfig(data_root=data_root)
    backend = GitBackend()
    indexer, history = _build_indexer(config, _build_project(project, paths, backend), backend)
    try:
        indexer.remove()
    finally:
        history.close()
    console.print(f"Removed index {escape(str(indexer.store.path))}.")


@app.command()
def optimize(
    project: str = typer.Argument(..., help="Project identifier."),
    data_root: Path = typer.Option(None, "--data-root", help="Directory holding the indexes"),
) -> None:
    """Optimize a project's index."""
    config = AppConfig(data_root=data_root)
    store = SQLiteDocumentStore(config.index_path(project, Path.cwd()), timeout=config.store_timeout)
    if not store.db_path.exists():
        console.print("[yellow]Index not found, nothing to optimize.[/yellow]")
        return
    try:
        store.open(OpenMode.WRITE)
        store.optimize()
    except StoreError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=1)
    finally:
        store.close()
    console.print("Index optimized.")
