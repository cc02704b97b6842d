"""Main CLI entry point for travelledger."""

import typer
from rich.console import Console

from travelledger import __version__
from travelledger.reconciliation.metrics import start_metrics_server
from travelledger.utils.config import get_settings
from travelledger.utils.logging import configure_from_settings

# Reconciliation CLI lives in the reconciliation package to keep the top-level commands lean.
from ..reconciliation.cli import app as reconcile_app

app = typer.Typer(
    name="travelledger",
    help="🧾 Bank reconciliation for travel-business ledgers",
    add_completion=True,
    rich_markup_mode="rich",
    no_args_is_help=True,
)
console = Console()


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"[bold blue]travelledger[/bold blue] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    """
    travelledger - match bank statements to invoices, income and expenses.
    """
    settings = get_settings()
    configure_from_settings(settings)

    if settings.metrics_enabled:
        start_metrics_server(settings.metrics_port)


app.add_typer(reconcile_app, name="reconcile", help="🔗 Reconcile bank transactions")


if __name__ == "__main__":
    app()
