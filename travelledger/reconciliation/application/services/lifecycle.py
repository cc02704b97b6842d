"""Match lifecycle: suggestion, approval, rejection, manual linking, unlinking.

State per (transaction, record) pair::

    none ──record──► suggested ──approve──► confirmed ──unlink──► none
                         │
                         └──reject──► none

A transaction and a record each have at most one confirmed match. The check
that enforces it runs inside the repository's ``confirm``, so two concurrent
approvals cannot both succeed. Confirming a pair discards the other
suggestions of the transaction and every suggestion of the record elsewhere.
"""

from collections.abc import Iterable

from ....exceptions import ConflictError, NotFoundError, ValidationError
from ....utils.logging import get_logger, log_match_confirmed, log_match_unlinked
from ...domain.enums import MatchType, RecordType, TransactionStatus
from ...domain.models import Match, Record, Transaction
from ...domain.value_objects import MatchSuggestion
from ...infrastructure.repository import MatchRepository
from ...matchers.proposer import MatchProposer
from ...metrics import record_match_decision, record_suggestion

logger = get_logger(__name__)


class MatchLifecycleManager:
    """Apply user and system decisions to matches.

    Args:
        repository: Where matches are stored
        proposer: Ranks candidate records (default settings if omitted)

    Example:
        >>> lifecycle = MatchLifecycleManager(InMemoryMatchRepository())
        >>> suggestions = lifecycle.propose_matches(transaction, records)
        >>> lifecycle.record_suggestions(transaction.id, suggestions)
        >>> match = lifecycle.approve(transaction.id, suggestions[0].record_id)
    """

    def __init__(self, repository: MatchRepository, proposer: MatchProposer | None = None):
        self.repository = repository
        self.proposer = proposer or MatchProposer()

    def propose_matches(
        self, transaction: Transaction, candidate_pool: Iterable[Record]
    ) -> list[MatchSuggestion]:
        """Rank candidates for a transaction. Stores nothing.

        Records already confirmed to any transaction are left out.
        """
        return self.proposer.propose(
            transaction,
            candidate_pool,
            excluded_record_ids=self.repository.confirmed_record_ids(),
        )

    def record_suggestions(
        self, transaction_id: str, suggestions: Iterable[MatchSuggestion]
    ) -> list[Match]:
        """Persist suggestions as SUGGESTED matches.

        Suggestions for a transaction that is already matched, or for records
        confirmed elsewhere, are dropped.

        Raises:
            ValidationError: If a suggestion belongs to another transaction
        """
        if self.repository.confirmed_for_transaction(transaction_id) is not None:
            logger.debug("suggestions_ignored_transaction_matched", transaction_id=transaction_id)
            return []

        taken = self.repository.confirmed_record_ids()
        stored: list[Match] = []
        for suggestion in suggestions:
            if suggestion.transaction_id != transaction_id:
                raise ValidationError(
                    "Suggestion belongs to another transaction",
                    field="transaction_id",
                    value=suggestion.transaction_id,
                    constraint=f"== {transaction_id}",
                )
            if suggestion.record_id in taken:
                continue
            stored.append(self.repository.save_suggestion(Match.from_suggestion(suggestion)))
            record_suggestion(suggestion.confidence_level.value, suggestion.confidence)

        logger.info(
            "suggestions_recorded",
            transaction_id=transaction_id,
            count=len(stored),
        )
        return stored

    def approve(
        self,
        transaction_id: str,
        record_id: str,
        *,
        record_type: RecordType | None = None,
        match_type: MatchType | None = None,
    ) -> Match:
        """Confirm a pair, promoting its suggestion when one exists.

        Approving a pair that is already confirmed returns the existing match.
        The transaction's other suggestions and the record's suggestions for
        other transactions are discarded.

        Args:
            transaction_id: Transaction to match
            record_id: Record to match it with
            record_type: Record type, used when no suggestion carries it
            match_type: Override for the stored match type (AUTO for batch runs)

        Raises:
            ConflictError: If either side already has a different confirmed match
        """
        existing = self.repository.confirmed_for_transaction(transaction_id)
        if existing is not None and existing.record_id == record_id:
            record_match_decision("approve", "noop")
            return existing

        candidate = self.repository.find_pair(transaction_id, record_id)
        if candidate is None:
            candidate = Match(
                transaction_id=transaction_id,
                record_id=record_id,
                record_type=record_type,
                match_type=MatchType.MANUAL,
            )
        if match_type is not None:
            candidate.match_type = match_type

        return self._confirm(candidate, action="approve")

    def reject(self, transaction_id: str, record_id: str) -> Match | None:
        """Discard one suggestion.

        Returns:
            The discarded suggestion marked REJECTED, or None when there was
            no suggestion for the pair
        """
        suggestion = self.repository.find_pair(transaction_id, record_id)
        if suggestion is None or not suggestion.is_suggested:
            record_match_decision("reject", "noop")
            return None

        self.repository.delete(suggestion.id)
        suggestion.reject()
        record_match_decision("reject")
        logger.info(
            "suggestion_rejected",
            match_id=suggestion.id,
            transaction_id=transaction_id,
            record_id=record_id,
        )
        return suggestion

    def link_manually(
        self,
        transaction_id: str,
        record_id: str,
        *,
        record_type: RecordType | None = None,
    ) -> Match:
        """Create a MANUAL confirmed match chosen by the user.

        Raises:
            ConflictError: If the transaction or the record already has any
                confirmed match, the same pair included
        """
        candidate = self.repository.find_pair(transaction_id, record_id)
        if candidate is None:
            candidate = Match(
                transaction_id=transaction_id,
                record_id=record_id,
                record_type=record_type,
            )
        elif candidate.is_confirmed:
            record_match_decision("link", "conflict")
            raise ConflictError(
                "Pair is already linked",
                transaction_id=transaction_id,
                record_id=record_id,
                existing_match_id=candidate.id,
            )
        candidate.match_type = MatchType.MANUAL
        candidate.record_type = candidate.record_type or record_type

        return self._confirm(candidate, action="link")

    def unlink(self, match_id: str) -> Match:
        """Remove a confirmed match; both sides become free again.

        Returns:
            The removed match

        Raises:
            NotFoundError: If no confirmed match has this id
        """
        match = self.repository.get(match_id)
        if match is None or not match.is_confirmed:
            record_match_decision("unlink", "not_found")
            raise NotFoundError(
                "Confirmed match not found",
                entity_type="match",
                entity_id=match_id,
            )

        self.repository.delete(match_id)
        record_match_decision("unlink")
        log_match_unlinked(logger, match.id, match.transaction_id, match.record_id)
        return match

    def status_of(self, transaction_id: str) -> TransactionStatus:
        """Matching status of a transaction, derived from stored matches."""
        if self.repository.confirmed_for_transaction(transaction_id) is not None:
            return TransactionStatus.MATCHED
        if self.repository.suggestions_for_transaction(transaction_id):
            return TransactionStatus.SUGGESTED
        return TransactionStatus.UNMATCHED

    def _confirm(self, candidate: Match, *, action: str) -> Match:
        try:
            confirmed = self.repository.confirm(candidate)
        except ConflictError as e:
            record_match_decision(action, "conflict")
            logger.warning(
                "match_confirmation_conflict",
                action=action,
                transaction_id=candidate.transaction_id,
                record_id=candidate.record_id,
                context=e.context,
            )
            raise

        discarded = self.repository.delete_suggestions_for_transaction(
            confirmed.transaction_id, keep_record_id=confirmed.record_id
        )
        discarded += self.repository.delete_suggestions_for_record(confirmed.record_id)
        record_match_decision(action)
        log_match_confirmed(
            logger,
            confirmed.id,
            confirmed.transaction_id,
            confirmed.record_id,
            confirmed.match_type.value,
            confirmed.confidence,
        )
        if discarded:
            logger.debug(
                "suggestions_discarded",
                transaction_id=confirmed.transaction_id,
                count=discarded,
            )
        return confirmed
