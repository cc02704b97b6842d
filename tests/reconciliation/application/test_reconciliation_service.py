"""Tests for ReconciliationService: batch suggestions, auto-match and bulk approval."""

from datetime import date
from decimal import Decimal

import pytest

from travelledger.exceptions import ConflictError
from travelledger.reconciliation.domain.enums import MatchStatus, MatchType, TransactionStatus
from travelledger.reconciliation.domain.models import (
    ExpenseRecord,
    IncomeRecord,
    InvoiceRecord,
    Transaction,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def statement() -> list[Transaction]:
    return [
        Transaction(
            id="t-olympic",
            date=date(2024, 6, 3),
            description="TRANSFER OLYMPIC HOLIDAYS INV-88",
            amount=Decimal("980.00"),
        ),
        Transaction(
            id="t-fuel",
            date=date(2024, 6, 5),
            description="CARD EKO 5521",
            amount=Decimal("-61.20"),
        ),
        Transaction(
            id="t-unknown",
            date=date(2024, 6, 6),
            description="ATM WITHDRAWAL",
            amount=Decimal("-7777.00"),
        ),
    ]


@pytest.fixture
def ledger() -> list:
    return [
        InvoiceRecord(
            id="inv-88",
            counterparty="Olympic Holidays",
            date=date(2024, 6, 1),
            amount=Decimal("980.00"),
            document_number="INV-88",
        ),
        ExpenseRecord(
            id="exp-fuel",
            counterparty="Shell Hellas",
            date=date(2024, 6, 20),
            amount=Decimal("61.20"),
        ),
        IncomeRecord(id="inc-misc", amount=Decimal("15.00")),
    ]


class TestSuggest:
    def test_suggest_all_in_input_order(self, service, statement, ledger):
        suggestion_map = service.suggest_all(statement, ledger)

        assert list(suggestion_map) == ["t-olympic", "t-fuel", "t-unknown"]
        assert suggestion_map["t-olympic"][0].record_id == "inv-88"
        assert suggestion_map["t-unknown"] == []

    def test_confirmed_record_not_offered_elsewhere(self, service, lifecycle, ledger):
        """A record confirmed to one transaction disappears from every other list."""
        lifecycle.approve("t-elsewhere", "inv-88")
        twin = Transaction(
            id="t-twin",
            date=date(2024, 6, 1),
            description="OLYMPIC HOLIDAYS",
            amount=Decimal("980.00"),
        )

        assert service.suggest(twin, ledger) == []

    def test_matched_transaction_gets_nothing(self, service, lifecycle, statement, ledger):
        lifecycle.approve("t-olympic", "inv-88")

        assert service.suggest(statement[0], ledger) == []
        assert "t-olympic" not in service.suggest_all(statement, ledger)

    def test_persist_records_suggestions(self, service, repository, statement, ledger):
        service.suggest_all(statement, ledger, persist=True)

        assert [m.record_id for m in repository.suggestions_for_transaction("t-fuel")] == [
            "exp-fuel"
        ]
        assert repository.suggestions_for_transaction("t-unknown") == []


class TestStats:
    def test_counts_best_suggestion_levels(self, service, statement, ledger):
        suggestion_map = service.suggest_all(statement, ledger)

        summary = service.stats(suggestion_map)

        # olympic: exact amount, 2 days, name + number → high
        # fuel: exact amount, 15 days, wrong name → 0.55 → low
        assert summary.to_dict() == {"total": 2, "high": 1, "medium": 0, "low": 1}

    def test_best_suggestion(self, service, statement, ledger):
        suggestion_map = service.suggest_all(statement, ledger)

        assert service.best_suggestion(suggestion_map, "t-olympic").record_id == "inv-88"
        assert service.best_suggestion(suggestion_map, "t-unknown") is None
        assert service.best_suggestion(suggestion_map, "missing") is None


class TestAutoMatch:
    def test_high_confidence_confirmed_low_suggested(
        self, service, repository, statement, ledger
    ):
        result = service.auto_match(statement, ledger)

        assert result.total_processed == 3
        assert result.matched == 1
        assert result.suggested == 1
        assert result.unmatched == 1
        confirmed = repository.confirmed_for_transaction("t-olympic")
        assert confirmed.record_id == "inv-88"
        assert confirmed.match_type == MatchType.AUTO
        assert [m.record_id for m in repository.suggestions_for_transaction("t-fuel")] == [
            "exp-fuel"
        ]
        assert result.matches[1].reason.endswith("(low confidence)")

    def test_dry_run_persists_nothing(self, service, repository, statement, ledger):
        result = service.auto_match(statement, ledger, dry_run=True)

        assert result.dry_run
        assert result.matched == 1
        assert repository.list_matches() == []

    def test_custom_threshold(self, service, repository, statement, ledger):
        result = service.auto_match(statement, ledger, min_confidence=0.5)

        assert result.matched == 2
        assert repository.confirmed_for_transaction("t-fuel").record_id == "exp-fuel"

    def test_confirmed_record_leaves_pool(self, service, repository):
        """Two identical payments cannot both claim the same invoice."""
        transactions = [
            Transaction(id=f"t{n}", date=date(2024, 6, 1), amount=Decimal("300.00"))
            for n in (1, 2)
        ]
        records = [InvoiceRecord(id="inv-1", amount=Decimal("300.00"), date=date(2024, 6, 1))]

        result = service.auto_match(transactions, records)

        assert result.matched == 1
        assert result.unmatched == 1
        assert repository.confirmed_transaction_ids() == {"t1"}

    def test_dry_run_also_consumes_pool(self, service):
        transactions = [
            Transaction(id=f"t{n}", date=date(2024, 6, 1), amount=Decimal("300.00"))
            for n in (1, 2)
        ]
        records = [InvoiceRecord(id="inv-1", amount=Decimal("300.00"), date=date(2024, 6, 1))]

        result = service.auto_match(transactions, records, dry_run=True)

        assert result.matched == 1

    def test_already_matched_transactions_skipped(self, service, lifecycle, statement, ledger):
        lifecycle.approve("t-olympic", "inv-88")

        result = service.auto_match(statement, ledger)

        assert result.total_processed == 2
        assert "t-olympic" not in [entry.transaction_id for entry in result.matches]

    def test_conflict_counted_as_failure(self, service, lifecycle, mocker, statement, ledger):
        mocker.patch.object(
            lifecycle,
            "approve",
            side_effect=ConflictError("Record already has a confirmed match", record_id="inv-88"),
        )

        result = service.auto_match(statement, ledger)

        assert result.failed == 1
        assert result.matched == 0
        assert "inv-88" in result.errors[0]


class TestBulkApprove:
    def test_collects_failures(self, service, lifecycle):
        lifecycle.approve("t0", "r2")

        result = service.bulk_approve([("t1", "r1"), ("t2", "r2"), ("t3", "r3")])

        assert result.approved_count == 2
        assert result.failed_count == 1
        assert result.errors[0].startswith("t2 → r2")

    def test_approve_high_confidence(self, service, repository, statement, ledger):
        suggestion_map = service.suggest_all(statement, ledger, persist=True)

        result = service.approve_high_confidence(suggestion_map)

        assert [m.transaction_id for m in result.approved] == ["t-olympic"]
        assert repository.confirmed_for_transaction("t-fuel") is None
        assert all(m.status == MatchStatus.CONFIRMED for m in result.approved)


class TestSyncTransaction:
    def test_writes_derived_status(self, service, lifecycle, statement, ledger):
        olympic, fuel, unknown = statement
        service.suggest_all(statement, ledger, persist=True)
        lifecycle.approve("t-olympic", "inv-88")

        assert service.sync_transaction(olympic).match_status == TransactionStatus.MATCHED
        assert olympic.matched_record_id == "inv-88"
        assert service.sync_transaction(fuel).match_status == TransactionStatus.SUGGESTED
        assert service.sync_transaction(unknown).match_status == TransactionStatus.UNMATCHED
        assert unknown.matched_record_id is None
