"""Tests for InMemoryMatchRepository."""

import threading

import pytest

from travelledger.exceptions import ConflictError
from travelledger.reconciliation.domain.enums import MatchStatus
from travelledger.reconciliation.domain.models import Match

pytestmark = pytest.mark.unit


class TestInMemoryMatchRepository:
    def test_returns_copies(self, repository):
        stored = repository.save_suggestion(Match(transaction_id="t1", record_id="r1"))

        stored.confirm()

        assert repository.get(stored.id).is_suggested

    def test_save_suggestion_refreshes_score(self, repository):
        first = repository.save_suggestion(
            Match(transaction_id="t1", record_id="r1", confidence=0.4)
        )
        second = repository.save_suggestion(
            Match(transaction_id="t1", record_id="r1", confidence=0.8, reasons=["exact amount"])
        )

        assert second.id == first.id
        assert second.confidence == 0.8
        assert len(repository.list_matches()) == 1

    def test_confirmed_pair_not_downgraded(self, repository):
        confirmed = repository.confirm(Match(transaction_id="t1", record_id="r1"))

        again = repository.save_suggestion(Match(transaction_id="t1", record_id="r1"))

        assert again.id == confirmed.id
        assert again.is_confirmed

    def test_confirm_conflicts(self, repository):
        existing = repository.confirm(Match(transaction_id="t1", record_id="r1"))

        with pytest.raises(ConflictError) as exc_info:
            repository.confirm(Match(transaction_id="t2", record_id="r1"))

        assert exc_info.value.context["existing_match_id"] == existing.id

    def test_delete_suggestions_keeps_requested_record(self, repository):
        for record_id in ("r1", "r2", "r3"):
            repository.save_suggestion(Match(transaction_id="t1", record_id=record_id))

        removed = repository.delete_suggestions_for_transaction("t1", keep_record_id="r2")

        assert removed == 2
        assert [m.record_id for m in repository.suggestions_for_transaction("t1")] == ["r2"]

    def test_list_by_status(self, repository):
        repository.save_suggestion(Match(transaction_id="t1", record_id="r1"))
        repository.confirm(Match(transaction_id="t2", record_id="r2"))

        assert [m.record_id for m in repository.list_matches(MatchStatus.CONFIRMED)] == ["r2"]
        assert repository.confirmed_record_ids() == {"r2"}
        assert repository.confirmed_transaction_ids() == {"t2"}

    def test_concurrent_confirmations_of_one_record(self, repository):
        """Only one of many racing confirmations of a record succeeds."""
        barrier = threading.Barrier(8)
        outcomes: list[str] = []

        def worker(n: int) -> None:
            barrier.wait()
            try:
                repository.confirm(Match(transaction_id=f"t{n}", record_id="r1"))
                outcomes.append("ok")
            except ConflictError:
                outcomes.append("conflict")

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert outcomes.count("ok") == 1
        assert outcomes.count("conflict") == 7
        assert len(repository.list_matches(MatchStatus.CONFIRMED)) == 1


class TestInMemoryDeletes:
    def test_delete_returns_copy(self, repository):
        stored = repository.save_suggestion(Match(transaction_id="t1", record_id="r1"))

        internal = repository._matches[stored.id]

        removed = repository.delete(stored.id)

        assert removed == internal
        assert removed is not internal
        assert repository.get(stored.id) is None

    def test_delete_suggestions_for_record(self, repository):
        repository.save_suggestion(Match(transaction_id="t2", record_id="r1"))
        repository.save_suggestion(Match(transaction_id="t3", record_id="r1"))
        repository.save_suggestion(Match(transaction_id="t3", record_id="r2"))
        confirmed = repository.confirm(Match(transaction_id="t1", record_id="r1"))

        removed = repository.delete_suggestions_for_record("r1")

        assert removed == 2
        assert repository.suggestions_for_transaction("t2") == []
        assert [m.record_id for m in repository.suggestions_for_transaction("t3")] == ["r2"]
        assert repository.get(confirmed.id).is_confirmed
