"""Command line interface."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Annotated, Sequence

import typer
from cssselect import SelectorError
from lxml import etree
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__
from .browser_manager import BrowserManager, is_url
from .document import Document, NodeRef
from .dom_extractor import CaptureError
from .locator_generator import compare_strategies, synthesize_locators
from .models import CandidateLocator
from .relations import synthesize_relation
from .settings import load_settings
from .shadow import pierce_select, validate_shadow_candidate
from .strategies import STRATEGY_SETS
from .validation import LocatorValidation, validate_candidate

app = typer.Typer(
    name="pathfinderx",
    help="Synthesize short, unique XPath and CSS locators for page elements",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()
err_console = Console(stderr=True)

_STATUS_STYLES = {"unique": "green", "multiple": "yellow", "none": "red", "other element": "red"}


def setup_logging(verbose: bool = False) -> None:
    logger = logging.getLogger("pathfinderx")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    if not any(isinstance(handler, RichHandler) for handler in logger.handlers):
        logger.addHandler(RichHandler(console=err_console, show_path=False))
    logger.propagate = False


def version_callback(value: bool) -> None:
    if value:
        console.print(f"[bold blue]pathfinderx[/bold blue] v{__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Annotated[
        bool | None,
        typer.Option("--version", help="Show version", callback=version_callback, is_eager=True),
    ] = None,
) -> None:
    """pathfinderx - locator synthesis for browser automation."""


def _load_html(path: Path, selectors: Sequence[str]) -> tuple[Document, list[NodeRef]]:
    if not path.is_file():
        raise CaptureError(f"No such file: {path}")
    try:
        document = Document.from_html(path.read_bytes())
    except (OSError, etree.ParserError, ValueError) as exc:
        raise CaptureError(f"Could not read {path}: {exc}") from exc

    nodes: list[NodeRef] = []
    for selector in selectors:
        try:
            node = pierce_select(document, selector)
        except (SelectorError, ValueError) as exc:
            raise CaptureError(f"Invalid selector {selector!r}: {exc}") from exc
        if node is None:
            raise CaptureError(f"No element matches {selector!r}.")
        nodes.append(node)
    return document, nodes


def load_source(source: str, selectors: Sequence[str], *, headed: bool = False) -> tuple[Document, list[NodeRef]]:
    """Snapshot ``source`` (a URL through Chromium, anything else as a local HTML file)."""
    if is_url(source):
        with BrowserManager(headless=not headed) as browser:
            browser.open(source)
            return browser.capture(*selectors)
    return _load_html(Path(source), selectors)


def _load_or_exit(source: str, selectors: Sequence[str], headed: bool) -> tuple[Document, list[NodeRef]]:
    try:
        return load_source(source, selectors, headed=headed)
    except CaptureError as exc:
        err_console.print(f"[red]Error: {exc}[/red]")
        raise typer.Exit(1) from exc


def candidate_status(target: NodeRef, candidate: CandidateLocator) -> LocatorValidation:
    if candidate.kind == "shadow":
        return validate_shadow_candidate(target, candidate.expression)
    return validate_candidate(target, candidate)


def _status_label(result: LocatorValidation) -> str:
    if result.unique:
        return "unique"
    if result.match_count == 0:
        return "none"
    if result.match_count == 1:
        return "other element"
    return "multiple"


def _status_cell(result: LocatorValidation) -> str:
    label = _status_label(result)
    style = _STATUS_STYLES[label]
    text = label if result.match_count <= 1 else f"{label} ({result.match_count})"
    return f"[{style}]{text}[/{style}]"


def _candidate_table(target: NodeRef, candidates: Sequence[CandidateLocator], title: str) -> Table:
    table = Table(title=title)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Kind", style="cyan")
    table.add_column("Label")
    table.add_column("Expression", overflow="fold")
    table.add_column("Matches")
    table.add_column("Note", style="dim")
    for index, candidate in enumerate(candidates, start=1):
        table.add_row(
            str(index),
            candidate.kind,
            candidate.label,
            candidate.expression,
            _status_cell(candidate_status(target, candidate)),
            candidate.note or "",
        )
    return table


@app.command()
def locate(
    source: Annotated[str, typer.Argument(help="Local HTML file or http(s) URL")],
    selector: Annotated[
        str,
        typer.Option("--selector", "-s", help="CSS selector of the element (separate shadow hosts with >>>)"),
    ],
    strategy: Annotated[
        str | None,
        typer.Option("--strategy", help=f"Strategy set: {', '.join(STRATEGY_SETS)}"),
    ] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print plain JSON records")] = False,
    config: Annotated[Path | None, typer.Option("--config", "-c", help="Settings file path")] = None,
    headed: Annotated[bool, typer.Option("--headed", help="Show the browser window")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", help="Enable debug logging")] = False,
) -> None:
    """Synthesize ranked locators for one element."""
    setup_logging(verbose)
    settings = load_settings(config)
    _document, nodes = _load_or_exit(source, [selector], headed)
    target = nodes[0]
    candidates = synthesize_locators(target, strategy=strategy, settings=settings)

    if as_json:
        typer.echo(json.dumps([candidate.to_dict() for candidate in candidates], indent=2))
        return
    console.print(_candidate_table(target, candidates, f"Locators for {target.tag}"))


@app.command()
def relate(
    source: Annotated[str, typer.Argument(help="Local HTML file or http(s) URL")],
    anchor: Annotated[str, typer.Option("--anchor", "-a", help="CSS selector of the anchor element")],
    target: Annotated[str, typer.Option("--target", "-t", help="CSS selector of the target element")],
    as_json: Annotated[bool, typer.Option("--json", help="Print plain JSON records")] = False,
    config: Annotated[Path | None, typer.Option("--config", "-c", help="Settings file path")] = None,
    headed: Annotated[bool, typer.Option("--headed", help="Show the browser window")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", help="Enable debug logging")] = False,
) -> None:
    """Express the target element relative to an anchor element."""
    setup_logging(verbose)
    settings = load_settings(config)
    _document, (anchor_node, target_node) = _load_or_exit(source, [anchor, target], headed)
    options = synthesize_relation(anchor_node, target_node, settings=settings)

    if as_json:
        typer.echo(json.dumps([option.to_dict() for option in options], indent=2))
        return

    table = Table(title=f"Relations from {anchor_node.tag} to {target_node.tag}")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Label")
    table.add_column("Expression", overflow="fold")
    table.add_column("Matches")
    table.add_column("Note", style="dim")
    for index, option in enumerate(options, start=1):
        result = validate_candidate(target_node, CandidateLocator("xpath", option.expression, option.label))
        table.add_row(str(index), option.label, option.expression, _status_cell(result), option.note or "")
    console.print(table)


@app.command()
def compare(
    source: Annotated[str, typer.Argument(help="Local HTML file or http(s) URL")],
    selector: Annotated[
        str,
        typer.Option("--selector", "-s", help="CSS selector of the element (separate shadow hosts with >>>)"),
    ],
    strategies: Annotated[
        list[str] | None,
        typer.Option("--strategy", help="Strategy set to include (repeatable; default: all)"),
    ] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print plain JSON records")] = False,
    config: Annotated[Path | None, typer.Option("--config", "-c", help="Settings file path")] = None,
    headed: Annotated[bool, typer.Option("--headed", help="Show the browser window")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", help="Enable debug logging")] = False,
) -> None:
    """Run several strategy sets side by side for one element."""
    setup_logging(verbose)
    settings = load_settings(config)
    _document, nodes = _load_or_exit(source, [selector], headed)
    target = nodes[0]
    results = compare_strategies(target, strategies or list(STRATEGY_SETS), settings=settings)

    if as_json:
        payload = {name: [candidate.to_dict() for candidate in candidates] for name, candidates in results.items()}
        typer.echo(json.dumps(payload, indent=2))
        return
    for name, candidates in results.items():
        console.print(_candidate_table(target, candidates, f"Strategy: {name}"))
