"""Batch reconciliation on top of the lifecycle manager.

Covers the bulk flows: suggestions for a whole statement, summary statistics,
auto-matching with a confidence threshold, and approving many pairs at once.
Records confirmed to one transaction are never offered to another.
"""

from collections.abc import Iterable, Mapping, Sequence

from ....exceptions import ConflictError, NotFoundError
from ....utils.config import MatchingSettings, get_settings
from ....utils.logging import LogPerformance, get_logger
from ...domain.enums import ConfidenceLevel, MatchType, TransactionStatus
from ...domain.models import Record, Transaction
from ...domain.value_objects import (
    AutoMatchEntry,
    AutoMatchResult,
    BulkApprovalResult,
    MatchSuggestion,
    SuggestionStats,
)
from ...metrics import record_match_decision
from .lifecycle import MatchLifecycleManager

logger = get_logger(__name__)

SuggestionMap = Mapping[str, Sequence[MatchSuggestion]]


class ReconciliationService:
    """Reconcile statements against the ledger.

    Example:
        >>> service = ReconciliationService(MatchLifecycleManager(repository))
        >>> result = service.auto_match(transactions, records, dry_run=True)
        >>> print(result)
        AutoMatchResult(matched=12/20, suggested=5, failed=0)
    """

    def __init__(
        self,
        lifecycle: MatchLifecycleManager,
        settings: MatchingSettings | None = None,
    ):
        self.lifecycle = lifecycle
        self.repository = lifecycle.repository
        self.proposer = lifecycle.proposer
        self.settings = settings or get_settings().matching

    def suggest(
        self,
        transaction: Transaction,
        records: Iterable[Record],
        *,
        limit: int | None = None,
    ) -> list[MatchSuggestion]:
        """Suggestions for one transaction; empty when it is already matched."""
        if self.repository.confirmed_for_transaction(transaction.id) is not None:
            return []
        return self.proposer.propose(
            transaction,
            records,
            excluded_record_ids=self.repository.confirmed_record_ids(),
            limit=limit,
        )

    def suggest_all(
        self,
        transactions: Iterable[Transaction],
        records: Iterable[Record],
        *,
        persist: bool = False,
    ) -> dict[str, list[MatchSuggestion]]:
        """Suggestions for every unmatched transaction, in input order.

        Args:
            transactions: Statement transactions
            records: Candidate pool
            persist: Also store the suggestions as SUGGESTED matches
        """
        pool = list(records)
        excluded = self.repository.confirmed_record_ids()
        matched = self.repository.confirmed_transaction_ids()

        suggestion_map: dict[str, list[MatchSuggestion]] = {}
        for transaction in transactions:
            if transaction.id in matched:
                continue
            suggestions = self.proposer.propose(
                transaction, pool, excluded_record_ids=excluded
            )
            suggestion_map[transaction.id] = suggestions
            if persist and suggestions:
                self.lifecycle.record_suggestions(transaction.id, suggestions)

        logger.info(
            "suggestions_computed",
            transactions=len(suggestion_map),
            with_candidates=sum(1 for s in suggestion_map.values() if s),
            persisted=persist,
        )
        return suggestion_map

    @staticmethod
    def best_suggestion(
        suggestion_map: SuggestionMap, transaction_id: str
    ) -> MatchSuggestion | None:
        """Top suggestion for a transaction, if any."""
        suggestions = suggestion_map.get(transaction_id) or ()
        return suggestions[0] if suggestions else None

    def stats(self, suggestion_map: SuggestionMap) -> SuggestionStats:
        """Count transactions by the level of their best suggestion."""
        counts = {level: 0 for level in ConfidenceLevel}
        total = 0
        for transaction_id in suggestion_map:
            best = self.best_suggestion(suggestion_map, transaction_id)
            if best is None:
                continue
            total += 1
            counts[best.confidence_level] += 1

        return SuggestionStats(
            total=total,
            high=counts[ConfidenceLevel.HIGH],
            medium=counts[ConfidenceLevel.MEDIUM],
            low=counts[ConfidenceLevel.LOW],
        )

    def auto_match(
        self,
        transactions: Iterable[Transaction],
        records: Iterable[Record],
        *,
        min_confidence: float | None = None,
        dry_run: bool = False,
    ) -> AutoMatchResult:
        """Confirm the best candidate of every unmatched transaction above a threshold.

        Transactions are processed in input order. A record confirmed during
        the run leaves the pool for the following transactions. Best
        candidates below the threshold are stored as suggestions instead.

        Args:
            transactions: Statement transactions
            records: Candidate pool
            min_confidence: Confirmation threshold (default ``auto_confirm_threshold``)
            dry_run: Report what would happen without storing anything

        Returns:
            AutoMatchResult with counts, decided pairs and conflict messages
        """
        threshold = (
            self.settings.auto_confirm_threshold if min_confidence is None else min_confidence
        )
        result = AutoMatchResult(dry_run=dry_run)

        with LogPerformance("auto_match", logger):
            pool = list(records)
            matched = self.repository.confirmed_transaction_ids()
            consumed = set(self.repository.confirmed_record_ids())

            for transaction in transactions:
                if (
                    transaction.id in matched
                    or transaction.match_status == TransactionStatus.MATCHED
                ):
                    continue
                result.total_processed += 1

                candidates = self.proposer.propose(
                    transaction, pool, excluded_record_ids=consumed, limit=1
                )
                if not candidates:
                    continue
                best = candidates[0]
                reason = ", ".join(best.reasons)

                if best.confidence >= threshold:
                    if not dry_run:
                        try:
                            self.lifecycle.approve(
                                transaction.id,
                                best.record_id,
                                record_type=best.record_type,
                                match_type=MatchType.AUTO,
                            )
                        except ConflictError as e:
                            result.failed += 1
                            result.errors.append(f"{transaction.id}: {e}")
                            record_match_decision("auto", "conflict")
                            continue
                        record_match_decision("auto")
                    consumed.add(best.record_id)
                    result.matched += 1
                    result.matches.append(
                        AutoMatchEntry(
                            transaction_id=transaction.id,
                            record_id=best.record_id,
                            confidence=best.confidence,
                            reason=reason,
                            confirmed=True,
                        )
                    )
                else:
                    if not dry_run:
                        self.lifecycle.record_suggestions(transaction.id, [best])
                    result.suggested += 1
                    result.matches.append(
                        AutoMatchEntry(
                            transaction_id=transaction.id,
                            record_id=best.record_id,
                            confidence=best.confidence,
                            reason=f"{reason} (low confidence)" if reason else "low confidence",
                            confirmed=False,
                        )
                    )

        logger.info(
            "auto_match_summary",
            threshold=threshold,
            dry_run=dry_run,
            processed=result.total_processed,
            matched=result.matched,
            suggested=result.suggested,
            failed=result.failed,
        )
        return result

    def bulk_approve(self, pairs: Iterable[tuple[str, str]]) -> BulkApprovalResult:
        """Approve several (transaction_id, record_id) pairs, collecting failures.

        One failed pair never aborts the rest.
        """
        result = BulkApprovalResult()
        for transaction_id, record_id in pairs:
            try:
                result.approved.append(self.lifecycle.approve(transaction_id, record_id))
            except (ConflictError, NotFoundError) as e:
                logger.warning(
                    "bulk_approve_item_failed",
                    transaction_id=transaction_id,
                    record_id=record_id,
                    error=str(e),
                )
                result.errors.append(f"{transaction_id} → {record_id}: {e.message}")

        logger.info(
            "bulk_approve_completed",
            approved=result.approved_count,
            failed=result.failed_count,
        )
        return result

    def approve_high_confidence(self, suggestion_map: SuggestionMap) -> BulkApprovalResult:
        """Approve the best suggestion of every transaction whose level is HIGH."""
        pairs = []
        for transaction_id in suggestion_map:
            best = self.best_suggestion(suggestion_map, transaction_id)
            if best is not None and best.confidence_level == ConfidenceLevel.HIGH:
                pairs.append((transaction_id, best.record_id))
        return self.bulk_approve(pairs)

    def sync_transaction(self, transaction: Transaction) -> Transaction:
        """Write the derived match status and matched record onto a transaction."""
        confirmed = self.repository.confirmed_for_transaction(transaction.id)
        transaction.match_status = self.lifecycle.status_of(transaction.id)
        transaction.matched_record_id = confirmed.record_id if confirmed else None
        return transaction
