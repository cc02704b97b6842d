"""Match proposer: ranked candidate records for one transaction.

Algorithm:
1. Drop records confirmed elsewhere and records whose type contradicts the
   transaction direction (debit vs income, credit vs expense)
2. Score every remaining record; pairs the scorer filters out are dropped
3. Sort by confidence desc, day distance asc, amount difference asc, record id
4. Keep the top N
"""

from collections.abc import Collection, Iterable

from ...exceptions import TravelLedgerError
from ...utils.config import MatchingSettings, get_settings
from ...utils.logging import get_logger
from ..domain.enums import RecordType
from ..domain.models import Record, Transaction
from ..domain.value_objects import MatchSuggestion
from ..metrics import observe_proposal
from .base import ICandidateScorer
from .scorer import CandidateScorer

logger = get_logger(__name__)

# Days used in the sort key when a record has no date
_UNKNOWN_DAY_DISTANCE = 10**6


def is_direction_compatible(transaction: Transaction, record: Record) -> bool:
    """Whether the record type agrees with the sign of the transaction.

    Debits never settle income entries and credits never settle expense
    entries. Invoices and zero-amount transactions carry no direction.
    """
    if transaction.is_outgoing and record.record_type == RecordType.INCOME:
        return False
    if transaction.is_incoming and record.record_type == RecordType.EXPENSE:
        return False
    return True


def _sort_key(suggestion: MatchSuggestion) -> tuple:
    score = suggestion.score
    day_diff = score.day_diff if score.day_diff is not None else _UNKNOWN_DAY_DISTANCE
    return (-score.confidence, day_diff, score.amount_diff, suggestion.record_id)


class MatchProposer:
    """Produce ranked suggestions for a transaction from a pool of records.

    Pure: the same transaction and pool always yield the same ordered list.

    Attributes:
        scorer: Candidate scorer applied to every record
        max_suggestions: Default cap on the number of suggestions

    Example:
        >>> proposer = MatchProposer()
        >>> for suggestion in proposer.propose(transaction, records):
        ...     print(suggestion.record_id, suggestion.confidence_percent)
    """

    def __init__(
        self,
        scorer: ICandidateScorer | None = None,
        settings: MatchingSettings | None = None,
    ) -> None:
        settings = settings or get_settings().matching
        self.scorer = scorer or CandidateScorer(settings)
        self.max_suggestions = settings.max_suggestions

    def propose(
        self,
        transaction: Transaction,
        pool: Iterable[Record],
        *,
        excluded_record_ids: Collection[str] | None = None,
        limit: int | None = None,
    ) -> list[MatchSuggestion]:
        """Rank candidate records for a transaction.

        Args:
            transaction: Bank transaction to match
            pool: Candidate records
            excluded_record_ids: Records already confirmed to another transaction
            limit: Maximum number of suggestions (defaults to ``max_suggestions``)

        Returns:
            Suggestions, best first. Empty list if nothing qualifies.
        """
        limit = self.max_suggestions if limit is None else limit
        excluded = excluded_record_ids or ()

        with observe_proposal():
            suggestions: list[MatchSuggestion] = []
            for record in pool:
                if record.id in excluded:
                    continue
                if not is_direction_compatible(transaction, record):
                    continue

                try:
                    score = self.scorer.score(transaction, record)
                except (TravelLedgerError, ArithmeticError, TypeError, ValueError) as e:
                    logger.warning(
                        "candidate_scoring_skipped",
                        transaction_id=transaction.id,
                        record_id=record.id,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    continue

                if score is None:
                    continue
                suggestions.append(
                    MatchSuggestion(transaction_id=transaction.id, record=record, score=score)
                )

            suggestions.sort(key=_sort_key)
            ranked = suggestions[: max(limit, 0)]

        logger.debug(
            "matches_proposed",
            transaction_id=transaction.id,
            candidates=len(suggestions),
            returned=len(ranked),
        )
        return ranked

    def __repr__(self) -> str:
        return f"<MatchProposer(scorer={self.scorer!r}, max_suggestions={self.max_suggestions})>"
