"""
Resilient Locator - CLI Entry Point.

Resolve locators against saved DOM snapshots, e.g. to debug why a locator
is ambiguous or to check which attributes a fingerprint keeps.

Configuration Priority:
    1. CLI arguments (--min-confidence, --tie-band)
    2. Environment variables (RESILIENT_LOCATOR__RESOLVER__MIN_CONFIDENCE, etc.)
    3. Config file (resilient-locator.yaml or --config)

Usage:
    resilient-locator resolve page.json locator.yaml
    resilient-locator describe locator.yaml
    resilient-locator fingerprint page.json n12
"""

import json
from pathlib import Path
from typing import Any, Iterable, Optional

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from resilient_locator.config import Settings, load_config
from resilient_locator.dom.snapshot import Snapshot
from resilient_locator.engine.composite import MatchCandidate, ResolutionStatus
from resilient_locator.engine.fingerprint import fingerprint_signals
from resilient_locator.engine.tracker import HandleTracker
from resilient_locator.exceptions import ResilientLocatorError, ResolutionError
from resilient_locator.locator import describe, parse_locator
from resilient_locator.utils.logging import setup_logging_from_settings

# Create the CLI app
app = typer.Typer(
    name="resilient-locator",
    help="Resolve resilient DOM element locators against snapshots",
    add_completion=False,
)

console = Console()


def _load_settings(
    config: Optional[Path],
    min_confidence: Optional[float],
    tie_band: Optional[float],
) -> Settings:
    overrides: dict = {}
    if min_confidence is not None:
        overrides["min_confidence"] = min_confidence
    if tie_band is not None:
        overrides["tie_band"] = tie_band
    if overrides:
        return load_config(config_path=config, resolver=overrides)
    return load_config(config_path=config)


def _setup_logging(settings: Settings, verbose: bool = False) -> None:
    """Apply the configured logging; --verbose only raises the level."""
    logging_settings = settings.logging
    if verbose:
        logging_settings = logging_settings.model_copy(update={"level": "DEBUG"})
    setup_logging_from_settings(logging_settings)


def _read_data(path: Path) -> Any:
    """Read a JSON or YAML file (YAML is a superset of JSON)."""
    try:
        text = path.read_text()
    except OSError as e:
        console.print(f"[red]Error: cannot read {path}: {escape(str(e))}[/red]")
        raise typer.Exit(2)
    try:
        if path.suffix == ".json":
            return json.loads(text)
        return yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        console.print(f"[red]Error: {path} is not valid JSON/YAML: {escape(str(e))}[/red]")
        raise typer.Exit(2)


def _candidate_table(title: str, candidates: Iterable[MatchCandidate]) -> Table:
    table = Table(title=title)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Node")
    table.add_column("Tag", style="cyan")
    table.add_column("Confidence", justify="right")
    table.add_column("Attributes", style="dim")
    table.add_column("Text")

    for rank, candidate in enumerate(candidates, start=1):
        node = candidate.node
        attributes = " ".join(f'{k}="{v}"' for k, v in sorted(node.attributes.items()))
        text = node.text_content if len(node.text_content) <= 40 else node.text_content[:37] + "..."
        table.add_row(
            str(rank), escape(node.id), node.tag, f"{candidate.confidence:.3f}", escape(attributes), escape(text),
        )
    return table


@app.command()
def resolve(
    snapshot_file: Path = typer.Argument(..., help="Snapshot JSON (flat or nested form)"),
    locator_file: Path = typer.Argument(..., help="Locator YAML/JSON"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config YAML file"),
    min_confidence: Optional[float] = typer.Option(None, "--min-confidence", help="Confidence threshold"),
    tie_band: Optional[float] = typer.Option(None, "--tie-band", help="Ambiguity band below the top score"),
    show_all: bool = typer.Option(False, "--all", "-a", help="List every candidate"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """
    Resolve a locator against a snapshot and show the ranking.

    Exit codes: 0 unique or low-confidence match, 1 ambiguous, not found or
    unresolvable (e.g. a relative anchor that matches nothing), 2 invalid input.
    """
    try:
        settings = _load_settings(config, min_confidence, tie_band)
    except (ResilientLocatorError, ValidationError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(2)

    _setup_logging(settings, verbose)

    try:
        snapshot = Snapshot.from_dict(_read_data(snapshot_file))
        locator = parse_locator(_read_data(locator_file))
    except ResilientLocatorError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(2)

    try:
        result = HandleTracker(settings).rank(locator, snapshot)
    except ResolutionError as e:
        console.print(f"[red]✗ Unresolvable:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    console.print(Panel.fit(
        f"[bold blue]Locator[/bold blue] {escape(describe(locator))}\n"
        f"[dim]Snapshot:[/dim] {snapshot_file} ({len(snapshot)} nodes, v{snapshot.version})"
    ))

    if result.status is ResolutionStatus.UNIQUE:
        console.print(f"[green]✓ Unique match:[/green] {escape(result.winner.node.id)} "
                      f"({result.winner.confidence:.3f})")
    elif result.status is ResolutionStatus.LOW_CONFIDENCE:
        console.print(f"[yellow]⚠ Low-confidence match:[/yellow] {escape(result.winner.node.id)} "
                      f"({result.winner.confidence:.3f} < {settings.resolver.min_confidence:.3f})")
    elif result.status is ResolutionStatus.AMBIGUOUS:
        console.print(f"[red]✗ Ambiguous:[/red] {len(result.tied)} candidates within "
                      f"{settings.resolver.tie_band:.3f} of the top score")
        console.print(_candidate_table("Tied candidates", result.tied))
    else:
        console.print("[red]✗ Not found[/red]")

    if show_all and result.candidates:
        console.print(_candidate_table("All candidates", result.candidates))

    if not result.ok:
        raise typer.Exit(1)


@app.command("describe")
def describe_command(
    locator_file: Path = typer.Argument(..., help="Locator YAML/JSON"),
    show_key: bool = typer.Option(False, "--key", help="Also print the cache key"),
):
    """Explain a locator in plain words."""
    try:
        locator = parse_locator(_read_data(locator_file))
    except ResilientLocatorError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(2)

    console.print(escape(describe(locator)))
    if show_key:
        console.print(f"[dim]key:[/dim] {locator.key}")


@app.command()
def fingerprint(
    snapshot_file: Path = typer.Argument(..., help="Snapshot JSON (flat or nested form)"),
    node_id: str = typer.Argument(..., help="Node id inside the snapshot"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config YAML file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Show a node's fingerprint and the signals it is built from."""
    try:
        settings = load_config(config_path=config)
        _setup_logging(settings, verbose)
        snapshot = Snapshot.from_dict(_read_data(snapshot_file))
    except (ResilientLocatorError, ValidationError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(2)

    node = snapshot.get(node_id)
    if node is None:
        console.print(f"[red]Error: no node {escape(repr(node_id))} in {snapshot_file}[/red]")
        raise typer.Exit(2)

    tracker = HandleTracker(settings)
    console.print(f"[bold]{tracker.fingerprint(node)}[/bold]")
    for signal in fingerprint_signals(node, tracker.policy).split("|"):
        console.print(f"  [dim]{escape(signal)}[/dim]")


@app.command()
def version():
    """Show version information."""
    from resilient_locator import __version__
    console.print(f"[bold]Resilient Locator[/bold] v{__version__}")


if __name__ == "__main__":
    app()
