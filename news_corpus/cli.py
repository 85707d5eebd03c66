"""
Command-line interface for the news corpus crawler.

Uses Typer to provide commands for crawling, listing and reading stored
articles, and inspecting or repairing the duplicate index.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from .config import AppConfig, load_config
from .core.corpus import CorpusStore
from .core.dedup import DuplicateIndex
from .errors import PipelineError, StorageError, ValidationError
from .runner import CrawlPipeline, build_request
from .utils.logging import setup_logging

app = typer.Typer(add_completion=False)
console = Console()


def _load(config: Path | None, storage_dir: Path | None) -> AppConfig:
    cfg = load_config(str(config) if config else None)
    if storage_dir is not None:
        cfg.storage.articles_dir = str(storage_dir / "articles")
        cfg.storage.index_path = str(storage_dir / "duplicate_index.json")
    return cfg


def _open_index(cfg: AppConfig) -> DuplicateIndex:
    corpus = CorpusStore(Path(cfg.storage.articles_dir))
    return DuplicateIndex(Path(cfg.storage.index_path), corpus)


def _print_mapping(title: str, data: dict[str, Any]) -> None:
    table = Table(title=title, show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    for key, value in data.items():
        if isinstance(value, dict):
            value = ", ".join(f"{k}: {v}" for k, v in value.items()) or "-"
        table.add_row(key.replace("_", " "), str(value))
    console.print(table)


@app.command()
def crawl(
    topic: str = typer.Option(..., "--topic", "-t", help="Topic to search for."),
    mode: str = typer.Option("general", "--mode", "-m", help="general or custom."),
    site: list[str] | None = typer.Option(None, "--site", "-s", help="Site URL (custom mode, repeatable)."),
    config: Path | None = typer.Option(None, "--config", "-c", exists=True),
    storage_dir: Path | None = typer.Option(None, "--storage-dir", help="Base directory for articles and index."),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level."),
    log_file: bool | None = typer.Option(None, "--log-file/--no-log-file", help="Enable or disable file logging."),
    insecure: bool | None = typer.Option(
        None,
        "--insecure/--verify-tls",
        help="Skip or enforce TLS certificate verification.",
    ),
):
    """Crawl news for a topic and store new, non-duplicate articles."""
    cfg = _load(config, storage_dir)
    if log_level:
        cfg.logging.level = log_level
    if log_file is not None:
        cfg.logging.file = log_file
    if insecure is not None:
        cfg.fetch.verify_tls = not insecure

    try:
        request = build_request(mode, topic, site)
    except ValidationError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=2)

    logger = setup_logging(cfg.logging)
    pipeline = CrawlPipeline(cfg, logger=logger)
    try:
        with console.status(f"Crawling for '{request.topic}'..."):
            report = pipeline.run(request)
    except PipelineError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)
    finally:
        pipeline.close()

    _print_mapping(f"Crawl results: {request.topic}", report.stats.to_dict())
    _print_mapping("Duplicate index", report.index_stats)


@app.command()
def articles(
    config: Path | None = typer.Option(None, "--config", "-c", exists=True),
    storage_dir: Path | None = typer.Option(None, "--storage-dir"),
):
    """List stored articles, newest first."""
    cfg = _load(config, storage_dir)
    stored = CorpusStore(Path(cfg.storage.articles_dir)).list_articles()
    if not stored:
        console.print("No articles found. Run [bold]crawl[/bold] to collect some.")
        return

    table = Table(title=f"{len(stored)} articles")
    table.add_column("Saved")
    table.add_column("Title", style="bold")
    table.add_column("Source")
    table.add_column("File", style="dim")
    for item in stored:
        table.add_row(item.saved_date, item.title, item.source_domain, item.filename)
    console.print(table)


@app.command()
def view(
    filename: str = typer.Argument(..., help="Article file name, as shown by `articles`."),
    config: Path | None = typer.Option(None, "--config", "-c", exists=True),
    storage_dir: Path | None = typer.Option(None, "--storage-dir"),
):
    """Render one stored article."""
    cfg = _load(config, storage_dir)
    content = CorpusStore(Path(cfg.storage.articles_dir)).read_article(filename)
    if content is None:
        console.print(f"[red]Article not found: {filename}[/red]")
        raise typer.Exit(code=1)
    console.print(Markdown(content))


@app.command()
def stats(
    config: Path | None = typer.Option(None, "--config", "-c", exists=True),
    storage_dir: Path | None = typer.Option(None, "--storage-dir"),
):
    """Show duplicate index statistics."""
    cfg = _load(config, storage_dir)
    _print_mapping("Duplicate index", _open_index(cfg).stats())


@app.command()
def reconcile(
    config: Path | None = typer.Option(None, "--config", "-c", exists=True),
    storage_dir: Path | None = typer.Option(None, "--storage-dir"),
):
    """Remove index entries whose article file no longer exists."""
    cfg = _load(config, storage_dir)
    try:
        removed = _open_index(cfg).reconcile()
    except StorageError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)
    console.print(f"Removed {removed} stale index entries.")


if __name__ == "__main__":
    app()
