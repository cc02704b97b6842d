"""Match repositories.

``MatchRepository`` is the storage port used by the lifecycle manager. Two
adapters ship:

- InMemoryMatchRepository: lock-guarded dict, for tests and one-shot CLI runs
- SqlAlchemyMatchRepository: ``invoice_transaction_matches`` table, with
  partial unique indexes guarding the one-confirmed-match rule

``confirm`` is the only write that can violate an invariant, so both adapters
implement it as a single check-and-set.
"""

import copy
import threading
from abc import ABC, abstractmethod

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...exceptions import ConflictError, DatabaseIntegrityError, wrap_exception
from ...storage.database.base import get_session
from ...utils.logging import get_logger
from ..domain.enums import MatchStatus
from ..domain.models import Match
from .models import InvoiceTransactionMatch

logger = get_logger(__name__)


def _conflict(match: Match, existing: Match, side: str) -> ConflictError:
    return ConflictError(
        f"{side.capitalize()} already has a confirmed match",
        transaction_id=match.transaction_id,
        record_id=match.record_id,
        existing_match_id=existing.id,
    )


class MatchRepository(ABC):
    """Storage port for matches.

    Rejected matches are never stored: rejecting a suggestion deletes it.
    """

    @abstractmethod
    def get(self, match_id: str) -> Match | None:
        """Find a match by id."""

    @abstractmethod
    def find_pair(self, transaction_id: str, record_id: str) -> Match | None:
        """Find the match (suggested or confirmed) for a pair."""

    @abstractmethod
    def confirmed_for_transaction(self, transaction_id: str) -> Match | None:
        """The confirmed match of a transaction, if any."""

    @abstractmethod
    def confirmed_for_record(self, record_id: str) -> Match | None:
        """The confirmed match of a record, if any."""

    @abstractmethod
    def suggestions_for_transaction(self, transaction_id: str) -> list[Match]:
        """Stored suggestions of a transaction, highest confidence first."""

    @abstractmethod
    def confirmed_record_ids(self) -> set[str]:
        """Ids of all records that have a confirmed match."""

    @abstractmethod
    def confirmed_transaction_ids(self) -> set[str]:
        """Ids of all transactions that have a confirmed match."""

    @abstractmethod
    def list_matches(self, status: MatchStatus | None = None) -> list[Match]:
        """All stored matches, optionally filtered by status."""

    @abstractmethod
    def save_suggestion(self, match: Match) -> Match:
        """Store a suggestion, refreshing the score if the pair is already suggested.

        A pair that is already confirmed is returned unchanged.
        """

    @abstractmethod
    def confirm(self, match: Match) -> Match:
        """Persist ``match`` as CONFIRMED.

        Raises:
            ConflictError: If the transaction or the record already has a
                different confirmed match
        """

    @abstractmethod
    def delete(self, match_id: str) -> Match | None:
        """Delete a match, returning what was removed."""

    @abstractmethod
    def delete_suggestions_for_transaction(
        self, transaction_id: str, *, keep_record_id: str | None = None
    ) -> int:
        """Delete the suggestions of a transaction, returning how many were removed."""

    @abstractmethod
    def delete_suggestions_for_record(self, record_id: str) -> int:
        """Delete every suggestion that offers this record, returning how many were removed."""


class InMemoryMatchRepository(MatchRepository):
    """Dict-backed repository.

    Stores and returns copies, so callers never mutate stored state.
    """

    def __init__(self) -> None:
        self._matches: dict[str, Match] = {}
        self._lock = threading.RLock()

    def get(self, match_id: str) -> Match | None:
        with self._lock:
            match = self._matches.get(match_id)
            return copy.deepcopy(match) if match else None

    def find_pair(self, transaction_id: str, record_id: str) -> Match | None:
        with self._lock:
            match = self._find_pair(transaction_id, record_id)
            return copy.deepcopy(match) if match else None

    def confirmed_for_transaction(self, transaction_id: str) -> Match | None:
        with self._lock:
            match = self._confirmed_where(lambda m: m.transaction_id == transaction_id)
            return copy.deepcopy(match) if match else None

    def confirmed_for_record(self, record_id: str) -> Match | None:
        with self._lock:
            match = self._confirmed_where(lambda m: m.record_id == record_id)
            return copy.deepcopy(match) if match else None

    def suggestions_for_transaction(self, transaction_id: str) -> list[Match]:
        with self._lock:
            found = [
                copy.deepcopy(m)
                for m in self._matches.values()
                if m.transaction_id == transaction_id and m.is_suggested
            ]
        return sorted(found, key=lambda m: (-(m.confidence or 0.0), m.record_id))

    def confirmed_record_ids(self) -> set[str]:
        with self._lock:
            return {m.record_id for m in self._matches.values() if m.is_confirmed}

    def confirmed_transaction_ids(self) -> set[str]:
        with self._lock:
            return {m.transaction_id for m in self._matches.values() if m.is_confirmed}

    def list_matches(self, status: MatchStatus | None = None) -> list[Match]:
        with self._lock:
            return [
                copy.deepcopy(m)
                for m in self._matches.values()
                if status is None or m.status == status
            ]

    def save_suggestion(self, match: Match) -> Match:
        with self._lock:
            existing = self._find_pair(match.transaction_id, match.record_id)
            if existing is not None:
                if existing.is_suggested:
                    existing.confidence = match.confidence
                    existing.reasons = list(match.reasons)
                    existing.record_type = match.record_type or existing.record_type
                return copy.deepcopy(existing)

            stored = copy.deepcopy(match)
            stored.status = MatchStatus.SUGGESTED
            self._matches[stored.id] = stored
            return copy.deepcopy(stored)

    def confirm(self, match: Match) -> Match:
        with self._lock:
            by_transaction = self._confirmed_where(
                lambda m: m.transaction_id == match.transaction_id
            )
            if by_transaction is not None and by_transaction.id != match.id:
                raise _conflict(match, by_transaction, "transaction")

            by_record = self._confirmed_where(lambda m: m.record_id == match.record_id)
            if by_record is not None and by_record.id != match.id:
                raise _conflict(match, by_record, "record")

            # One row per pair: a new id for a stored pair replaces the old row
            pair = self._find_pair(match.transaction_id, match.record_id)
            if pair is not None and pair.id != match.id:
                del self._matches[pair.id]

            stored = copy.deepcopy(match)
            stored.confirm()
            self._matches[stored.id] = stored
            return copy.deepcopy(stored)

    def delete(self, match_id: str) -> Match | None:
        with self._lock:
            match = self._matches.pop(match_id, None)
            return copy.deepcopy(match) if match else None

    def delete_suggestions_for_transaction(
        self, transaction_id: str, *, keep_record_id: str | None = None
    ) -> int:
        with self._lock:
            doomed = [
                m.id
                for m in self._matches.values()
                if m.transaction_id == transaction_id
                and m.is_suggested
                and m.record_id != keep_record_id
            ]
            for match_id in doomed:
                del self._matches[match_id]
            return len(doomed)

    def delete_suggestions_for_record(self, record_id: str) -> int:
        with self._lock:
            doomed = [
                m.id
                for m in self._matches.values()
                if m.record_id == record_id and m.is_suggested
            ]
            for match_id in doomed:
                del self._matches[match_id]
            return len(doomed)

    def _find_pair(self, transaction_id: str, record_id: str) -> Match | None:
        for m in self._matches.values():
            if m.transaction_id == transaction_id and m.record_id == record_id:
                return m
        return None

    def _confirmed_where(self, predicate) -> Match | None:
        for m in self._matches.values():
            if m.is_confirmed and predicate(m):
                return m
        return None


class SqlAlchemyMatchRepository(MatchRepository):
    """Repository backed by the ``invoice_transaction_matches`` table."""

    def __init__(self, session: Session | None = None):
        self.session = session or get_session()

    def get(self, match_id: str) -> Match | None:
        row = self.session.get(InvoiceTransactionMatch, match_id)
        return self._to_domain(row) if row else None

    def find_pair(self, transaction_id: str, record_id: str) -> Match | None:
        row = self._find_pair_row(transaction_id, record_id)
        return self._to_domain(row) if row else None

    def confirmed_for_transaction(self, transaction_id: str) -> Match | None:
        stmt = select(InvoiceTransactionMatch).where(
            InvoiceTransactionMatch.transaction_id == transaction_id,
            InvoiceTransactionMatch.status == MatchStatus.CONFIRMED,
        )
        row = self.session.execute(stmt).scalar_one_or_none()
        return self._to_domain(row) if row else None

    def confirmed_for_record(self, record_id: str) -> Match | None:
        stmt = select(InvoiceTransactionMatch).where(
            InvoiceTransactionMatch.record_id == record_id,
            InvoiceTransactionMatch.status == MatchStatus.CONFIRMED,
        )
        row = self.session.execute(stmt).scalar_one_or_none()
        return self._to_domain(row) if row else None

    def suggestions_for_transaction(self, transaction_id: str) -> list[Match]:
        stmt = (
            select(InvoiceTransactionMatch)
            .where(
                InvoiceTransactionMatch.transaction_id == transaction_id,
                InvoiceTransactionMatch.status == MatchStatus.SUGGESTED,
            )
            .order_by(
                InvoiceTransactionMatch.confidence.desc(),
                InvoiceTransactionMatch.record_id,
            )
        )
        return [self._to_domain(row) for row in self.session.execute(stmt).scalars()]

    def confirmed_record_ids(self) -> set[str]:
        stmt = select(InvoiceTransactionMatch.record_id).where(
            InvoiceTransactionMatch.status == MatchStatus.CONFIRMED
        )
        return set(self.session.execute(stmt).scalars())

    def confirmed_transaction_ids(self) -> set[str]:
        stmt = select(InvoiceTransactionMatch.transaction_id).where(
            InvoiceTransactionMatch.status == MatchStatus.CONFIRMED
        )
        return set(self.session.execute(stmt).scalars())

    def list_matches(self, status: MatchStatus | None = None) -> list[Match]:
        stmt = select(InvoiceTransactionMatch).order_by(InvoiceTransactionMatch.created_at)
        if status is not None:
            stmt = stmt.where(InvoiceTransactionMatch.status == status)
        return [self._to_domain(row) for row in self.session.execute(stmt).scalars()]

    def save_suggestion(self, match: Match) -> Match:
        row = self._find_pair_row(match.transaction_id, match.record_id)
        if row is not None:
            if row.status == MatchStatus.SUGGESTED:
                row.confidence = match.confidence
                row.reasons = list(match.reasons)
                row.record_type = match.record_type or row.record_type
                self._commit(match)
            return self._to_domain(row)

        row = self._to_row(match)
        row.status = MatchStatus.SUGGESTED
        self.session.add(row)
        self._commit(match)
        return self._to_domain(row)

    def confirm(self, match: Match) -> Match:
        existing = self.confirmed_for_transaction(match.transaction_id)
        if existing is not None and existing.id != match.id:
            raise _conflict(match, existing, "transaction")
        existing = self.confirmed_for_record(match.record_id)
        if existing is not None and existing.id != match.id:
            raise _conflict(match, existing, "record")

        row = self.session.get(InvoiceTransactionMatch, match.id)
        if row is None:
            row = self._find_pair_row(match.transaction_id, match.record_id)
        if row is None:
            row = self._to_row(match)
            self.session.add(row)

        confirmed = copy.deepcopy(match)
        confirmed.confirm()
        row.status = MatchStatus.CONFIRMED
        row.match_type = confirmed.match_type
        row.record_type = confirmed.record_type or row.record_type
        row.confidence = confirmed.confidence
        row.reasons = list(confirmed.reasons)
        row.matched_at = confirmed.matched_at

        # The partial unique indexes catch writers that raced past the checks
        self._commit(match)
        return self._to_domain(row)

    def delete(self, match_id: str) -> Match | None:
        row = self.session.get(InvoiceTransactionMatch, match_id)
        if row is None:
            return None
        removed = self._to_domain(row)
        self.session.delete(row)
        self.session.commit()
        return removed

    def delete_suggestions_for_transaction(
        self, transaction_id: str, *, keep_record_id: str | None = None
    ) -> int:
        stmt = delete(InvoiceTransactionMatch).where(
            InvoiceTransactionMatch.transaction_id == transaction_id,
            InvoiceTransactionMatch.status == MatchStatus.SUGGESTED,
        )
        if keep_record_id is not None:
            stmt = stmt.where(InvoiceTransactionMatch.record_id != keep_record_id)
        result = self.session.execute(stmt)
        self.session.commit()
        return result.rowcount or 0

    def delete_suggestions_for_record(self, record_id: str) -> int:
        stmt = delete(InvoiceTransactionMatch).where(
            InvoiceTransactionMatch.record_id == record_id,
            InvoiceTransactionMatch.status == MatchStatus.SUGGESTED,
        )
        result = self.session.execute(stmt)
        self.session.commit()
        return result.rowcount or 0

    def _find_pair_row(self, transaction_id: str, record_id: str) -> InvoiceTransactionMatch | None:
        stmt = select(InvoiceTransactionMatch).where(
            InvoiceTransactionMatch.transaction_id == transaction_id,
            InvoiceTransactionMatch.record_id == record_id,
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def _commit(self, match: Match) -> None:
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            logger.warning(
                "match_write_conflict",
                transaction_id=match.transaction_id,
                record_id=match.record_id,
                error=str(e.orig),
            )
            message = str(e.orig).lower()
            if "unique" in message or "duplicate" in message:
                raise wrap_exception(
                    e,
                    "Transaction or record already has a confirmed match",
                    exception_class=ConflictError,
                    transaction_id=match.transaction_id,
                    record_id=match.record_id,
                ) from e
            raise wrap_exception(
                e,
                "Match violates a database constraint",
                exception_class=DatabaseIntegrityError,
                transaction_id=match.transaction_id,
                record_id=match.record_id,
            ) from e

    @staticmethod
    def _to_row(match: Match) -> InvoiceTransactionMatch:
        return InvoiceTransactionMatch(
            id=match.id,
            transaction_id=match.transaction_id,
            record_id=match.record_id,
            record_type=match.record_type,
            status=match.status,
            match_type=match.match_type,
            confidence=match.confidence,
            reasons=list(match.reasons),
            created_at=match.created_at,
            matched_at=match.matched_at,
        )

    @staticmethod
    def _to_domain(row: InvoiceTransactionMatch) -> Match:
        return Match(
            id=row.id,
            transaction_id=row.transaction_id,
            record_id=row.record_id,
            record_type=row.record_type,
            status=row.status,
            match_type=row.match_type,
            confidence=row.confidence,
            reasons=list(row.reasons or []),
            created_at=row.created_at,
            matched_at=row.matched_at,
        )
