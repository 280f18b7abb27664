"""Typer-based CLI for codectx code indexing."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__, config
from .config_manager import IndexSettings, load_settings
from .detector import detect_profile
from .errors import CodeContextError, InvalidFormatError, ProjectRootError
from .graph_export import GraphFormat, index_payload, render_graph
from .models import CodeIndex, DependencyGraph
from .pipeline import IndexPipeline
from .storage import ArtifactStore, build_snapshot

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="📇 codectx: concept, entry-point and dependency indexes for a source tree.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"codectx v{__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    )
):
    """codectx: heuristic static-analysis indexer for TypeScript, Python, Go and Rust."""
    pass


# ===================================================================
# Shared helpers
# ===================================================================

ROOT_ARGUMENT = typer.Argument(Path("."), help="Project root to index.")
OUTPUT_OPTION = typer.Option(
    None, "--output-dir", "-o", help="Artifact directory, relative to ROOT (default: .claude)."
)
WORKERS_OPTION = typer.Option(None, "--workers", min=1, help="Extractor threads.")
CONCEPT_LIMIT_OPTION = typer.Option(None, "--concept-limit", min=1, help="Max files per concept.")
VERBOSE_OPTION = typer.Option(False, "--verbose", "-V", help="Enable debug logging.")
FORMAT_OPTION = typer.Option("mermaid", "--format", "-f", help="Graph format: mermaid, dot or json.")


def _settings(
    root: Path,
    output_dir: Optional[str],
    workers: Optional[int],
    concept_limit: Optional[int],
) -> IndexSettings:
    if not root.is_dir():
        raise ProjectRootError(f"Project root is not a readable directory: {root}")
    return load_settings(root).with_overrides(
        output_dir=output_dir, concept_limit=concept_limit, workers=workers
    )


def _parse_format(value: str) -> GraphFormat:
    try:
        return GraphFormat(value.lower())
    except ValueError:
        choices = ", ".join(f.value for f in GraphFormat)
        raise InvalidFormatError(f"Unknown format '{value}'. Choose one of: {choices}.") from None


def _fail(exc: CodeContextError) -> NoReturn:
    err_console.print(f"[red]✗[/red] {exc}")
    raise typer.Exit(code=exc.exit_code)


def _write_index(store: ArtifactStore, index: CodeIndex) -> Path:
    return store.write_json(config.INDEX_FILE, index_payload(index))


def _write_graph(store: ArtifactStore, graph: DependencyGraph, fmt: GraphFormat) -> Path:
    return store.write_text(fmt.file_name, render_graph(graph, fmt))


def _write_snapshot(store: ArtifactStore, root: Path, output_dir: str, generated: int) -> Path:
    return store.write_json(config.SNAPSHOT_FILE, build_snapshot(root, output_dir, generated))


def _print_index_summary(index: CodeIndex, path: Path) -> None:
    table = Table(title=f"Code index ({index.profile.project_type})", show_header=True)
    table.add_column("Section", style="cyan")
    table.add_column("Entries", justify="right")
    table.add_row("Concepts", str(len(index.concepts)))
    table.add_row("Entry points", str(len(index.entry_points)))
    table.add_row("Exports", str(len(index.exports)))
    table.add_row("Types", str(len(index.types)))
    console.print(table)
    console.print(f"[green]✓[/green] Wrote {path}")


def _print_graph_summary(graph: DependencyGraph, path: Path) -> None:
    console.print(
        f"[bold]Edges:[/bold] {len(graph.edges)} | [bold]Files:[/bold] {len(graph.files())}"
    )
    console.print(f"[green]✓[/green] Wrote {path}")


# ===================================================================
# Commands
# ===================================================================

@app.command("index")
def index_command(
    root: Path = ROOT_ARGUMENT,
    output_dir: Optional[str] = OUTPUT_OPTION,
    workers: Optional[int] = WORKERS_OPTION,
    concept_limit: Optional[int] = CONCEPT_LIMIT_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Write code-index.json (concepts, entry points, exports, types)."""
    configure_logging(verbose)
    try:
        settings = _settings(root, output_dir, workers, concept_limit)
        result = IndexPipeline(root, settings).run(build_graph=False)
    except CodeContextError as exc:
        _fail(exc)

    assert result.index is not None
    store = ArtifactStore(root, settings.output_dir)
    path = _write_index(store, result.index)
    _write_snapshot(store, root, settings.output_dir, result.index.generated)
    _print_index_summary(result.index, path)


@app.command("deps")
def deps_command(
    root: Path = ROOT_ARGUMENT,
    fmt: str = FORMAT_OPTION,
    output_dir: Optional[str] = OUTPUT_OPTION,
    workers: Optional[int] = WORKERS_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Write the import dependency graph (deps.mermaid, deps.dot or deps.json)."""
    configure_logging(verbose)
    try:
        graph_format = _parse_format(fmt)
        settings = _settings(root, output_dir, workers, None)
        result = IndexPipeline(root, settings).run(build_index=False)
    except CodeContextError as exc:
        _fail(exc)

    assert result.graph is not None
    store = ArtifactStore(root, settings.output_dir)
    path = _write_graph(store, result.graph, graph_format)
    _write_snapshot(store, root, settings.output_dir, result.graph.generated)
    _print_graph_summary(result.graph, path)


@app.command("all")
def all_command(
    root: Path = ROOT_ARGUMENT,
    fmt: str = FORMAT_OPTION,
    output_dir: Optional[str] = OUTPUT_OPTION,
    workers: Optional[int] = WORKERS_OPTION,
    concept_limit: Optional[int] = CONCEPT_LIMIT_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Write the code index and the dependency graph in one pass."""
    configure_logging(verbose)
    try:
        graph_format = _parse_format(fmt)
        settings = _settings(root, output_dir, workers, concept_limit)
        result = IndexPipeline(root, settings).run()
    except CodeContextError as exc:
        _fail(exc)

    assert result.index is not None and result.graph is not None
    store = ArtifactStore(root, settings.output_dir)
    index_path = _write_index(store, result.index)
    graph_path = _write_graph(store, result.graph, graph_format)
    _write_snapshot(store, root, settings.output_dir, result.index.generated)
    _print_index_summary(result.index, index_path)
    _print_graph_summary(result.graph, graph_path)


@app.command("detect")
def detect_command(
    root: Path = ROOT_ARGUMENT,
    verbose: bool = VERBOSE_OPTION,
):
    """Print the detected project profile."""
    configure_logging(verbose)
    if not root.is_dir():
        _fail(ProjectRootError(f"Project root is not a readable directory: {root}"))
    profile = detect_profile(root.resolve())
    console.print(f"[bold]Project type:[/bold] {profile.project_type}")
    console.print(f"[bold]Profile:[/bold] {profile.profile.value}")
    console.print(f"[bold]Framework:[/bold] {profile.framework.value}")
    if profile.module_name:
        console.print(f"[bold]Module:[/bold] {profile.module_name}")


if __name__ == "__main__":
    app()
