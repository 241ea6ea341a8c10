"""CLI entry point for playwright-ai-autodebug."""

import asyncio
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import load_config
from .coverage.renderers import RENDERERS
from .coverage.report import CoverageReport
from .coverage.snapshot import format_tree, parse_snapshot
from .log import setup_logging
from .models import TriageSummary
from .tracing import init_tracing
from .triage.workflow import run_triage

console = Console()


@click.group()
@click.version_option(package_name="playwright-ai-autodebug")
@click.option("--config", "-c", "config_path", type=click.Path(exists=True, dir_okay=False), help="Config file path")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """playwright-ai-autodebug - UI coverage and AI triage for Playwright runs."""
    ctx.ensure_object(dict)

    config = load_config(Path(config_path) if config_path else None)
    ctx.obj["config"] = config

    setup_logging("DEBUG" if verbose else config.log_level, config.log_file)

    tracing = init_tracing(config)
    ctx.obj["tracing"] = tracing
    if config.langfuse.enabled:
        console.print("[dim]Langfuse tracing enabled[/]")


@main.command()
@click.option("--project-path", "-p", type=click.Path(exists=True, file_okay=False), default=".", help="Project root")
@click.option("--results-dir", "-r", help="Override the Playwright results directory")
@click.option("--no-html", is_flag=True, help="Do not inject analyses into HTML reports")
@click.pass_context
def analyze(ctx: click.Context, project_path: str, results_dir: str | None, no_html: bool) -> None:
    """Analyse failed tests with the configured AI backend."""
    config = ctx.obj["config"]
    if results_dir:
        config.results.results_dir = Path(results_dir)

    console.print(f"\n[bold blue]Analysing test failures in:[/] {Path(project_path) / config.results.results_dir}\n")

    summary = asyncio.run(run_triage(config, project_path=Path(project_path), update_html=not no_html))
    tracing = ctx.obj.get("tracing")
    if tracing:
        tracing.flush()

    if summary.total == 0:
        console.print("[bold green]No failed tests found.[/]\n")
        return

    _print_triage_summary(summary)
    if summary.failed:
        ctx.exit(1)


def _print_triage_summary(summary: TriageSummary) -> None:
    table = Table(title="AI Failure Analysis")
    table.add_column("Test", style="cyan", max_width=40)
    table.add_column("Type", style="yellow")
    table.add_column("Severity")
    table.add_column("Result", style="magenta")

    for result in summary.results:
        if result.success:
            outcome = "[green]analysed[/]"
            if result.response_file:
                outcome += f" -> {result.response_file.name}"
        else:
            outcome = f"[red]{result.failure}[/]"
        table.add_row(
            result.error.test_name[:40],
            result.error.error_type.value,
            result.error.severity.value,
            outcome,
        )

    console.print(table)
    console.print("\n[bold]Summary:[/]")
    console.print(f"  • Analysed: [green]{summary.processed}[/]/{summary.total}")
    console.print(f"  • Failed: [red]{summary.failed}[/]")
    console.print(f"  • Time: {summary.processing_time:.1f}s\n")


@main.group()
def coverage() -> None:
    """Inspect UI coverage reports."""


def _read_text(path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise click.ClickException(f"{path} is not UTF-8 text: {e.reason} at byte {e.start}")


def _load_report(path: str) -> CoverageReport:
    try:
        return CoverageReport.from_json(_read_text(path))
    except ValidationError as e:
        raise click.ClickException(f"{path} is not a coverage report: {e.error_count()} validation errors")


@coverage.command()
@click.argument("report_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--top", default=10, show_default=True, help="Number of uncovered elements to list")
def show(report_path: str, top: int) -> None:
    """Print a coverage report summary."""
    report = _load_report(report_path)
    summary = report.summary

    color = "green" if summary.coverage_percentage >= 60 else "yellow" if summary.coverage_percentage >= 30 else "red"
    console.print(Panel(
        f"[bold {color}]{summary.coverage_percentage}%[/] coverage "
        f"({summary.covered_elements}/{summary.total_elements} elements)\n"
        f"Tests: {summary.total_tests}  Pages: {summary.total_pages}  Selectors: {summary.total_selectors}\n"
        f"Critical: {report.critical.covered}/{report.critical.total} ({report.critical.percentage}%)",
        title=f"Session {report.metadata.session_id}",
    ))

    if report.by_type:
        table = Table(title="Coverage by element type")
        table.add_column("Type", style="cyan")
        table.add_column("Covered", justify="right")
        table.add_column("Total", justify="right")
        table.add_column("%", justify="right")
        for name, stats in sorted(report.by_type.items()):
            table.add_row(name, str(stats.covered), str(stats.total), f"{stats.percentage}%")
        console.print(table)

    if report.uncovered_elements:
        table = Table(title="Top uncovered elements")
        table.add_column("Priority", justify="right", style="magenta")
        table.add_column("Element", style="cyan", max_width=40)
        table.add_column("Page", style="dim", max_width=40)
        table.add_column("Suggested selector")
        for element in report.uncovered_elements[:top]:
            suggestion = element.suggested_selectors[0] if element.suggested_selectors else "-"
            table.add_row(str(element.priority), element.label, element.page_id, suggestion)
        console.print(table)

    for rec in report.recommendations:
        style = {"high": "red", "medium": "yellow"}.get(rec.priority, "green")
        console.print(f"[{style}]• {rec.message}[/]")


@coverage.command()
@click.argument("report_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--format", "-f", "output_format", type=click.Choice(sorted(RENDERERS)), default="html")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Output file (stdout if omitted)")
def render(report_path: str, output_format: str, output: str | None) -> None:
    """Render a JSON coverage report as HTML, Markdown or JSON."""
    report = _load_report(report_path)
    rendered = RENDERERS[output_format](report)

    if output is None:
        click.echo(rendered)
        return

    Path(output).write_text(rendered, encoding="utf-8")
    console.print(f"[green]✓ Wrote {output}[/]")


@coverage.command()
@click.argument("snapshot_path", type=click.Path(exists=True, dir_okay=False))
def snapshot(snapshot_path: str) -> None:
    """Parse an aria snapshot and print its element tree."""
    elements = parse_snapshot(_read_text(snapshot_path))
    if not elements:
        console.print("[yellow]No recognised elements.[/]")
        return

    click.echo(format_tree(elements))
    interactable = sum(1 for element in elements if element.interactable)
    critical = sum(1 for element in elements if element.critical)
    console.print(f"\n[dim]{len(elements)} elements, {interactable} interactable, {critical} critical[/]")


if __name__ == "__main__":
    main()
