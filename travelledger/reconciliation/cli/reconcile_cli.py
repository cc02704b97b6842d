"""Reconciliation CLI commands.

Runs the matcher over JSON exports of bank transactions and ledger records.
Without a database the run is one-shot: nothing is stored between commands.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ...exceptions import TravelLedgerError
from ...storage.database.base import init_db
from ...storage.session import db_session
from ...utils.config import get_settings
from ...utils.logging import get_logger
from ..application.services import MatchLifecycleManager, ReconciliationService
from ..domain.enums import ConfidenceLevel
from ..domain.models import Record, Transaction
from ..infrastructure.loaders import load_records, load_transactions, read_json_rows
from ..infrastructure.repository import (
    InMemoryMatchRepository,
    MatchRepository,
    SqlAlchemyMatchRepository,
)

app = typer.Typer(name="reconcile", help="🔗 Match bank transactions to ledger records")
console = Console()
logger = get_logger(__name__)

_LEVEL_STYLES = {
    ConfidenceLevel.HIGH: "green",
    ConfidenceLevel.MEDIUM: "yellow",
    ConfidenceLevel.LOW: "red",
}


@contextmanager
def _repository(database_url: Optional[str], store: bool) -> Iterator[MatchRepository]:
    """Yield a SQL repository when a database is configured, else an in-memory one."""
    settings = get_settings()
    if database_url is None and store:
        settings.data_dir.mkdir(parents=True, exist_ok=True)
        database_url = settings.resolved_database_url
    url = database_url or settings.database_url
    if not url:
        yield InMemoryMatchRepository()
        return

    init_db(url)
    with db_session() as session:
        yield SqlAlchemyMatchRepository(session)


def _load(transactions_file: Path, records_file: Path) -> tuple[list[Transaction], list[Record]]:
    try:
        transactions = load_transactions(read_json_rows(transactions_file))
        records = load_records(read_json_rows(records_file))
    except TravelLedgerError as e:
        console.print(f"[red]❌ {escape(str(e))}[/red]")
        raise typer.Exit(1)
    logger.debug("cli_input_loaded", transactions=len(transactions), records=len(records))
    return transactions, records


# ============================================================================
# COMMAND 1: suggest
# ============================================================================


@app.command()
def suggest(
    transactions_file: Path = typer.Argument(
        ..., help="JSON list of bank transactions", exists=True
    ),
    records_file: Path = typer.Argument(..., help="JSON list of ledger records", exists=True),
    transaction_id: Optional[str] = typer.Option(
        None, "--transaction", "-t", help="Only this transaction"
    ),
    limit: Optional[int] = typer.Option(None, "--limit", "-l", min=1, help="Suggestions each"),
    persist: bool = typer.Option(False, "--persist/--no-persist", help="Store suggestions"),
    database_url: Optional[str] = typer.Option(
        None, "--database-url", "-d", help="Persist matches in this database (SQLAlchemy URL)"
    ),
    store: bool = typer.Option(
        False, "--store", help="Use the default database in the data directory"
    ),
):
    """🔍 Show ranked match suggestions per transaction.

    Examples:
        # Suggestions for the whole statement
        travelledger reconcile suggest transactions.json invoices.json

        # Top 3 for one transaction
        travelledger reconcile suggest transactions.json invoices.json -t txn-42 -l 3
    """
    transactions, records = _load(transactions_file, records_file)
    if transaction_id is not None:
        transactions = [t for t in transactions if t.id == transaction_id]
        if not transactions:
            console.print(f"[red]❌ Transaction {transaction_id} not found[/red]")
            raise typer.Exit(1)

    with _repository(database_url, store) as repository:
        service = ReconciliationService(MatchLifecycleManager(repository))
        suggestion_map = service.suggest_all(transactions, records, persist=persist)

    if not any(suggestion_map.values()):
        console.print("[yellow]No suggestions found[/yellow]")
        return

    table = Table(title="🔍 Match Suggestions")
    table.add_column("Transaction", style="cyan")
    table.add_column("Record", style="bold")
    table.add_column("Type", style="dim")
    table.add_column("Confidence", justify="right")
    table.add_column("Reasons")

    for txn_id, suggestions in suggestion_map.items():
        for suggestion in suggestions[:limit] if limit else suggestions:
            style = _LEVEL_STYLES[suggestion.confidence_level]
            table.add_row(
                txn_id,
                suggestion.record_id,
                suggestion.record_type.value,
                f"[{style}]{suggestion.confidence_percent}%[/{style}]",
                ", ".join(suggestion.reasons),
            )

    console.print(table)


# ============================================================================
# COMMAND 2: auto-match
# ============================================================================


@app.command(name="auto-match")
def auto_match(
    transactions_file: Path = typer.Argument(
        ..., help="JSON list of bank transactions", exists=True
    ),
    records_file: Path = typer.Argument(..., help="JSON list of ledger records", exists=True),
    min_confidence: Optional[float] = typer.Option(
        None, "--min-confidence", "-c", min=0.0, max=1.0, help="Confirmation threshold"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Preview without storing anything"),
    database_url: Optional[str] = typer.Option(
        None, "--database-url", "-d", help="Persist matches in this database (SQLAlchemy URL)"
    ),
    store: bool = typer.Option(
        False, "--store", help="Use the default database in the data directory"
    ),
):
    """⚡ Confirm high-confidence matches automatically.

    Examples:
        # Preview
        travelledger reconcile auto-match transactions.json invoices.json --dry-run

        # Confirm at 90% and store the result
        travelledger reconcile auto-match tx.json inv.json -c 0.9 -d sqlite:///ledger.db
    """
    transactions, records = _load(transactions_file, records_file)

    with _repository(database_url, store) as repository:
        service = ReconciliationService(MatchLifecycleManager(repository))
        result = service.auto_match(
            transactions, records, min_confidence=min_confidence, dry_run=dry_run
        )

    if result.matches:
        table = Table(title="⚡ Auto-match" + (" (dry run)" if dry_run else ""))
        table.add_column("Transaction", style="cyan")
        table.add_column("Record", style="bold")
        table.add_column("Confidence", justify="right")
        table.add_column("Outcome")
        table.add_column("Reason", style="dim")
        for entry in result.matches:
            outcome = "[green]✅ matched[/green]" if entry.confirmed else "[yellow]⏳ review[/yellow]"
            table.add_row(
                entry.transaction_id,
                entry.record_id,
                f"{round(entry.confidence * 100)}%",
                outcome,
                entry.reason,
            )
        console.print(table)

    console.print("\n[bold]Results:[/]")
    console.print(f"  [green]✅ Matched: {result.matched}[/]")
    console.print(f"  [yellow]⏳ Review needed: {result.suggested}[/]")
    console.print(f"  [dim]🔍 Unmatched: {result.unmatched}[/]")
    if result.failed:
        console.print(f"  [red]❌ Failed: {result.failed}[/]")
        for error in result.errors:
            console.print(f"    [red]{escape(error)}[/]")


# ============================================================================
# COMMAND 3: stats
# ============================================================================


@app.command()
def stats(
    transactions_file: Path = typer.Argument(
        ..., help="JSON list of bank transactions", exists=True
    ),
    records_file: Path = typer.Argument(..., help="JSON list of ledger records", exists=True),
    database_url: Optional[str] = typer.Option(
        None, "--database-url", "-d", help="Persist matches in this database (SQLAlchemy URL)"
    ),
    store: bool = typer.Option(
        False, "--store", help="Use the default database in the data directory"
    ),
):
    """📊 Count transactions by the confidence of their best suggestion.

    Examples:
        travelledger reconcile stats transactions.json invoices.json
    """
    transactions, records = _load(transactions_file, records_file)

    with _repository(database_url, store) as repository:
        service = ReconciliationService(MatchLifecycleManager(repository))
        summary = service.stats(service.suggest_all(transactions, records))

    unmatched = len(transactions) - summary.total

    table = Table(title="📊 Reconciliation Statistics")
    table.add_column("Best suggestion", style="bold")
    table.add_column("Count", justify="right", style="cyan")

    table.add_row("[green]High[/green]", str(summary.high))
    table.add_row("[yellow]Medium[/yellow]", str(summary.medium))
    table.add_row("[red]Low[/red]", str(summary.low))
    table.add_row("No candidate / matched", str(unmatched))
    table.add_row("━" * 15, "━" * 8)
    table.add_row("[bold]Total", f"[bold]{len(transactions)}")

    console.print(table)


if __name__ == "__main__":
    app()
