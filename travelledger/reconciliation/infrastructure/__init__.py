"""Persistence and input adapters for reconciliation."""

from .loaders import (
    load_records,
    load_transactions,
    parse_record,
    parse_transaction,
    read_json_rows,
    record_from_invoice_row,
    transaction_from_invoice_list_item,
)
from .models import InvoiceTransactionMatch
from .repository import InMemoryMatchRepository, MatchRepository, SqlAlchemyMatchRepository

__all__ = [
    "InvoiceTransactionMatch",
    "MatchRepository",
    "InMemoryMatchRepository",
    "SqlAlchemyMatchRepository",
    "parse_transaction",
    "parse_record",
    "record_from_invoice_row",
    "transaction_from_invoice_list_item",
    "load_transactions",
    "load_records",
    "read_json_rows",
]
