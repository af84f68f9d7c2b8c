"""
CLI interface for AI Provider Router.

Read-only cost dashboard over the usage ledger.
"""

import json
import logging
import sys
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ai_provider_router.config.loader import load_settings
from ai_provider_router.core.pricing import Provider
from ai_provider_router.core.report import (
    PROVIDER_LABELS,
    check_limit_status,
    generate_report,
)
from ai_provider_router.storage.ledger import UsageLedger
from ai_provider_router.storage.models import UsageSummary

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

_state = {"config": None}


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(
        None, "--config", "-c", help="Path to YAML configuration file"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """AI Provider Router cost dashboard."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    _state["config"] = config
    if ctx.invoked_subcommand is None:
        console.print("AI Provider Router - Use --help to see available commands")


def _load() -> tuple:
    settings = load_settings(_state["config"])
    return settings, UsageLedger.open(settings.log_dir)


def _format_currency(amount: float) -> str:
    return f"${amount:,.4f}"


def _print_summary(title: str, summary: UsageSummary) -> None:
    table = Table(title=f"{title} ({summary.period})")
    table.add_column("Provider")
    table.add_column("Requests", justify="right")
    table.add_column("Cost", justify="right")
    for provider in Provider:
        table.add_row(
            PROVIDER_LABELS[provider],
            str(summary.requests[provider]),
            _format_currency(summary.cost_by_provider[provider]),
        )
    table.add_row("[bold]Total[/]", str(summary.total_requests), _format_currency(summary.total_cost))
    console.print(table)


@app.command()
def dashboard():
    """Show today's usage, free-tier status, this month, and the last 7 days."""
    try:
        settings, ledger = _load()

        console.print("\n[bold]AI Cost Monitoring Dashboard[/bold]")
        console.print("=" * 60)

        _print_summary("Today's Usage", ledger.daily_summary())

        status = check_limit_status(
            ledger,
            daily_limit=settings.quota.daily_limit,
            warning_threshold=settings.quota.warning_threshold,
        )
        color = "yellow" if status.warning else "green"
        console.print(f"\n[bold]Free Tier Status:[/bold] [{color}]{status.message}[/]")

        _print_summary("This Month's Usage", ledger.monthly_summary())

        console.print()
        console.print(generate_report(ledger, 7).render(), markup=False)
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def report(
    days: int = typer.Option(7, "--days", "-d", help="Trailing window in days"),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
):
    """Cost report over the trailing window."""
    try:
        _, ledger = _load()
        cost_report = generate_report(ledger, days)
        if as_json:
            console.print_json(json.dumps(cost_report.to_dict()))
        else:
            console.print(cost_report.render(), markup=False)
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def recent(
    limit: int = typer.Option(20, "--limit", "-n", help="Number of records to show"),
):
    """List the most recent usage records, newest first."""
    try:
        _, ledger = _load()
        records = ledger.recent_usage(limit)
        if not records:
            console.print("\n[bold yellow]No AI usage recorded yet[/]")
            sys.exit(EXIT_CODE_PASS)

        table = Table(title="Recent Usage")
        table.add_column("Timestamp")
        table.add_column("Provider")
        table.add_column("Operation")
        table.add_column("Issue", justify="right")
        table.add_column("Tokens (in/out)", justify="right")
        table.add_column("Cost", justify="right")
        for record in records:
            table.add_row(
                record.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
                record.provider.value,
                record.operation,
                str(record.issue_number) if record.issue_number is not None else "-",
                f"{record.tokens_input}/{record.tokens_output}",
                f"${record.cost:.6f}",
            )
        console.print(table)
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def snapshot():
    """Save today's summary to the daily summary file."""
    try:
        _, ledger = _load()
        summary = ledger.save_daily_summary()
        if summary is None:
            console.print("[red]Failed to save daily summary[/]")
            sys.exit(EXIT_CODE_FAIL)
        console.print(
            f"[green]✓[/] Saved summary for {summary.period} "
            f"({summary.total_requests} requests, {_format_currency(summary.total_cost)})"
        )
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


if __name__ == "__main__":
    app()
