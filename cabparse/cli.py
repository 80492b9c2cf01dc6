"""Typer-based CLI for cabparse."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from . import __version__, config
from .detector import SUPPORTED_EXTENSIONS, detect_format
from .engine import ParseEngine
from .errors import DecodeError
from .models import FindingSeverity, ParseResult
from .samples import write_samples

app = typer.Typer(
    help="Parse CAD/cabinet design files and report broken logic.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()

_SEVERITY_STYLE = {
    FindingSeverity.CRITICAL: "bold red",
    FindingSeverity.HIGH: "red",
    FindingSeverity.MEDIUM: "yellow",
    FindingSeverity.LOW: "dim",
}
_FAILING = {FindingSeverity.CRITICAL, FindingSeverity.HIGH}


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"cabparse v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
):
    """cabparse: structured parsing and diagnostics for cabinet design files."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )


def _read_file(path: Path) -> bytes:
    if not path.is_file():
        console.print(f"[red]✗[/red] File not found: {path}")
        raise typer.Exit(1)
    return path.read_bytes()


def _parse_file(engine: ParseEngine, path: Path) -> ParseResult:
    data = _read_file(path)
    try:
        return engine.parse(data, path.name)
    except DecodeError as exc:
        console.print(f"[red]✗[/red] {path}: {exc}")
        raise typer.Exit(1)


def _print_summary(result: ParseResult) -> None:
    stats = result.statistics
    version = result.version_metadata
    console.print(
        Panel.fit(
            f"[bold]{result.filename}[/bold]\n"
            f"Dialect: [cyan]{result.dialect.value}[/cyan]   "
            f"Version: [cyan]{version}[/cyan]   "
            f"Complexity: [cyan]{stats.complexity_score}[/cyan]",
            title="cabparse",
        )
    )

    table = Table(title="Statistics", show_header=True)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Parts", str(stats.total_parts))
    table.add_row("Parameters", str(stats.total_parameters))
    table.add_row("Constraints", str(stats.total_constraints))
    table.add_row("Dependencies", str(len(result.dependencies)))
    table.add_row("Broken logic", str(stats.broken_logic_count))
    table.add_row("Errors", str(stats.error_count))
    table.add_row("Warnings", str(stats.warning_count))
    table.add_row("Time (ms)", f"{stats.processing_time:.1f}")
    console.print(table)

    if result.parts:
        parts = Table(title="Parts", show_header=True)
        parts.add_column("Name")
        parts.add_column("Type")
        parts.add_column("Params", justify="right")
        parts.add_column("Status")
        for part in result.parts:
            parts.add_row(part.name, part.type, str(len(part.parameters)), part.status.value)
        console.print(parts)

    for issue in result.errors:
        where = f" (line {issue.line_number})" if issue.line_number else ""
        console.print(f"[red]error[/red] {issue.type.value}{where}: {issue.message}")
    for issue in result.warnings:
        where = f" (line {issue.line_number})" if issue.line_number else ""
        console.print(f"[yellow]{issue.severity.value}[/yellow] {issue.type.value}{where}: {issue.message}")


@app.command("parse")
def parse_command(
    file: Path = typer.Argument(..., help="Design file to parse."),
    as_json: bool = typer.Option(False, "--json", help="Print the full result as JSON."),
    strict: bool = typer.Option(False, "--strict", help="Report structural warnings as errors."),
):
    """Parse a design file and summarize what was found.

    Example:
      cabparse parse cabinet.xml
      cabparse parse door.cab --json
    """
    settings = config.load_config().with_overrides(strict_mode=True if strict else None)
    result = _parse_file(ParseEngine(settings), file)

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
        return
    _print_summary(result)


@app.command("detect")
def detect_command(file: Path = typer.Argument(..., help="File to classify.")):
    """Print the dialect a file would be parsed as."""
    data = _read_file(file)
    text = data.decode("utf-8-sig", errors="replace")
    dialect = detect_format(file.name, text).value
    if file.suffix.lower() not in SUPPORTED_EXTENSIONS:
        dialect += " (detected from content)"
    typer.echo(dialect)


@app.command("check")
def check_command(files: List[Path] = typer.Argument(..., help="Files to check.")):
    """Report broken logic; exit code 1 when anything critical or high is found.

    Example:
      cabparse check *.cab *.xml
    """
    engine = ParseEngine(config.load_config())
    failing = 0

    for path in files:
        result = _parse_file(engine, path)
        if not result.broken_logic:
            console.print(f"[green]✓[/green] {path.name}: no broken logic")
            continue

        console.print(f"\n[bold]{path.name}[/bold]: {len(result.broken_logic)} finding(s)")
        for finding in result.broken_logic:
            style = _SEVERITY_STYLE.get(finding.severity, "")
            line = f":{finding.line_number}" if finding.line_number else ""
            console.print(
                f"  [{style}]{finding.severity.value}[/{style}] {finding.issue_type}{line} "
                f"{finding.description}"
            )
            if finding.suggested_fix:
                console.print(f"    fix: {finding.suggested_fix}")
            if finding.severity in _FAILING:
                failing += 1

    if failing:
        console.print(f"\n[red]✗[/red] {failing} critical/high finding(s)")
        raise typer.Exit(1)


@app.command("samples")
def samples_command(
    directory: Path = typer.Argument(..., help="Directory to write sample files into."),
    broken: bool = typer.Option(False, "--broken", help="Also write deliberately broken samples."),
):
    """Write sample files for every dialect."""
    written = write_samples(directory, include_broken=broken)
    for path in written:
        typer.echo(f"Wrote {path}")
    typer.echo(f"{len(written)} sample file(s) in {directory}")


@app.command("config")
def config_command():
    """Show the effective parser configuration."""
    settings = config.load_config()
    table = Table(title=f"Configuration ({config.CONFIG_FILE})", show_header=True)
    table.add_column("Key", style="bold")
    table.add_column("Value")
    for key, value in settings.to_dict().items():
        if key == "severities":
            for issue_type, severity in value.items():
                table.add_row(f"severity.{issue_type}", severity)
        else:
            table.add_row(key, str(value))
    console.print(table)


if __name__ == "__main__":
    app()
