"""Loaders turning external rows into validated domain objects.

Three row shapes are accepted:
- canonical dicts mirroring ``Transaction`` / ``Record`` fields
- ``bank_transactions`` rows (``transaction_date`` instead of ``date``)
- ``invoices`` rows (``merchant``, ``invoice_date``, ``extracted_data``,
  ``file_name``) and invoice-list items (``client_name``, ``invoice_number``,
  ``total_amount``)

Malformed required fields raise ``ValidationError``; missing optional fields
are left empty so the scorer drops the matching signal.
"""

import json
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import pydantic

from ...exceptions import ValidationError
from ...utils.logging import get_logger
from ..domain.enums import TransactionStatus
from ..domain.models import RECORD_ADAPTER, Record, Transaction

logger = get_logger(__name__)

# Keys that only appear in ``invoices`` table rows
_INVOICE_ROW_KEYS = frozenset({"merchant", "invoice_date", "extracted_data", "file_name"})


def _invalid(
    kind: str, data: Mapping[str, Any], error: pydantic.ValidationError
) -> ValidationError:
    first = error.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ()))
    return ValidationError(
        f"Invalid {kind}: {first.get('msg', 'validation failed')}",
        field=field or None,
        value=first.get("input"),
        constraint=first.get("type"),
        context={"id": str(data.get("id"))},
        original_error=error,
    )


def parse_transaction(data: Mapping[str, Any]) -> Transaction:
    """Validate a transaction dict (canonical or ``bank_transactions`` row)."""
    payload = {
        "id": data.get("id"),
        "date": data.get("date") or data.get("transaction_date"),
        "description": data.get("description") or "",
        "amount": data.get("amount"),
        "bank_name": data.get("bank_name"),
        "match_status": data.get("match_status") or TransactionStatus.UNMATCHED,
        "matched_record_id": data.get("matched_record_id"),
    }
    try:
        return Transaction.model_validate(payload)
    except pydantic.ValidationError as e:
        raise _invalid("transaction", data, e) from e


def parse_record(data: Mapping[str, Any]) -> Record:
    """Validate a canonical record dict (``type`` selects the record class)."""
    try:
        return RECORD_ADAPTER.validate_python(dict(data))
    except pydantic.ValidationError as e:
        raise _invalid("record", data, e) from e


def _extracted_fields(row: Mapping[str, Any]) -> Mapping[str, Any]:
    extracted = row.get("extracted_data")
    if not isinstance(extracted, Mapping):
        return {}
    nested = extracted.get("extracted")
    if isinstance(nested, Mapping):
        return nested
    return extracted


def record_from_invoice_row(row: Mapping[str, Any]) -> Record | None:
    """Convert an ``invoices`` row into an income or expense record.

    Returns:
        The record, or None when the row carries no amount yet (extraction
        still pending)
    """
    if row.get("amount") is None:
        logger.debug("invoice_row_skipped", record_id=row.get("id"), reason="missing_amount")
        return None

    extracted = _extracted_fields(row)
    return parse_record(
        {
            "id": row.get("id"),
            "type": "income" if row.get("type") == "income" else "expense",
            "amount": row.get("amount"),
            "date": row.get("invoice_date") or None,
            "counterparty": row.get("merchant") or extracted.get("merchant") or None,
            "document_number": extracted.get("invoice_number") or None,
            "description": row.get("file_name"),
        }
    )


def transaction_from_invoice_list_item(item: Mapping[str, Any]) -> Transaction:
    """Treat an invoice-list item as a credit to match against issued invoices.

    The description joins client name and invoice number so the text signal
    can pick up both.
    """
    description = " ".join(
        str(part) for part in (item.get("client_name"), item.get("invoice_number")) if part
    )
    return parse_transaction(
        {
            "id": item.get("id"),
            "date": item.get("invoice_date"),
            "description": description,
            "amount": item.get("total_amount"),
            "match_status": item.get("match_status"),
        }
    )


def load_transactions(rows: Iterable[Mapping[str, Any]]) -> list[Transaction]:
    """Validate a batch of transaction rows."""
    return [parse_transaction(row) for row in rows]


def load_records(rows: Iterable[Mapping[str, Any]]) -> list[Record]:
    """Validate a batch of record rows, detecting ``invoices`` rows by their keys.

    Invoice rows without an amount are skipped.
    """
    records: list[Record] = []
    for row in rows:
        if _INVOICE_ROW_KEYS & row.keys():
            record = record_from_invoice_row(row)
            if record is not None:
                records.append(record)
        else:
            records.append(parse_record(row))
    return records


def read_json_rows(path: Path) -> list[dict[str, Any]]:
    """Read a JSON file holding a list of objects."""
    try:
        with path.open(encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValidationError(
            f"Invalid JSON in {path.name}: {e.msg}",
            field="file",
            value=str(path),
            original_error=e,
        ) from e

    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise ValidationError(
            f"{path.name} must contain a JSON list of objects",
            field="file",
            value=str(path),
            constraint="list[object]",
        )
    return data
