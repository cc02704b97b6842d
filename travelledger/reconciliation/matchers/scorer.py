"""Candidate scorer combining amount, date and text signals.

Weighted average over the signals that are available:
- Amount closeness (50% weight) - always available, doubles as a hard filter
- Date proximity (25% weight) - left out when the record has no date
- Text similarity (25% weight) - against the counterparty, or the record
  description when there is none; left out when both are missing

When a signal is left out the remaining weights are renormalized so they still
sum to 1.
"""

from decimal import Decimal

from ...utils.config import MatchingSettings, get_settings
from ..domain.enums import ConfidenceLevel
from ..domain.models import Record, Transaction
from ..domain.value_objects import CandidateScore
from .base import ICandidateScorer
from .similarity import (
    amount_closeness,
    amount_difference,
    date_proximity,
    day_distance,
    document_number_found,
    text_similarity,
)

REASON_THRESHOLD = 0.5


def classify_confidence(
    confidence: float, high: float = 0.85, medium: float = 0.6
) -> ConfidenceLevel:
    """Map a confidence score to its display band.

    - ≥ 0.85 → HIGH
    - ≥ 0.60 → MEDIUM
    - otherwise → LOW
    """
    if confidence >= high:
        return ConfidenceLevel.HIGH
    if confidence >= medium:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def _format_money(amount: Decimal) -> str:
    return format(amount.normalize(), "f")


class CandidateScorer(ICandidateScorer):
    """Score a transaction against a record with a renormalized weighted average.

    Attributes:
        settings: Weights, tolerances and thresholds

    Example:
        >>> scorer = CandidateScorer()
        >>> score = scorer.score(transaction, record)
        >>> if score:
        ...     print(f"{score.confidence:.0%} {score.confidence_level} {score.reasons}")
    """

    def __init__(self, settings: MatchingSettings | None = None) -> None:
        self.settings = settings or get_settings().matching

    def score(self, transaction: Transaction, record: Record) -> CandidateScore | None:
        """Score one pair.

        Returns:
            CandidateScore, or None when the amounts are too far apart or the
            confidence is below ``min_confidence``
        """
        cfg = self.settings

        amount_score = amount_closeness(
            transaction.amount,
            record.amount,
            exact_tolerance=cfg.exact_amount_tolerance,
            unit_tolerance=cfg.unit_amount_tolerance,
            relative_tolerance=cfg.relative_amount_tolerance,
        )
        if amount_score <= 0.0:
            return None

        date_score = date_proximity(transaction.date, record.date)
        name_score = text_similarity(
            transaction.description, record.counterparty or record.description
        )
        number_found = document_number_found(transaction.description, record.document_number)

        text_score = name_score
        if number_found:
            text_score = 1.0

        weighted = [(amount_score, cfg.amount_weight)]
        if date_score is not None:
            weighted.append((date_score, cfg.date_weight))
        if text_score is not None:
            weighted.append((text_score, cfg.text_weight))

        total_weight = sum(weight for _, weight in weighted)
        raw = sum(score * weight for score, weight in weighted) / total_weight
        confidence = round(self._validate_confidence(raw), 4)

        if confidence < cfg.min_confidence:
            return None

        return CandidateScore(
            confidence=confidence,
            confidence_level=classify_confidence(
                confidence, cfg.high_confidence, cfg.medium_confidence
            ),
            reasons=tuple(self._build_reasons(amount_score, date_score, name_score, number_found)),
            amount_score=amount_score,
            date_score=date_score,
            text_score=text_score,
            amount_diff=amount_difference(transaction.amount, record.amount),
            day_diff=day_distance(transaction.date, record.date),
        )

    def _build_reasons(
        self,
        amount_score: float,
        date_score: float | None,
        name_score: float | None,
        number_found: bool,
    ) -> list[str]:
        """Short tags for every signal that scored at least 0.5."""
        reasons: list[str] = []

        if amount_score >= 1.0:
            reasons.append("exact amount")
        elif amount_score >= 0.75:
            reasons.append(
                f"amount within €{_format_money(self.settings.unit_amount_tolerance)}"
            )
        elif amount_score >= REASON_THRESHOLD:
            reasons.append("amount close")

        if date_score is not None:
            if date_score >= 1.0:
                reasons.append("same date")
            elif date_score >= 0.8:
                reasons.append("date within 3 days")
            elif date_score >= REASON_THRESHOLD:
                reasons.append("date within 7 days")

        if name_score is not None:
            if name_score >= 1.0:
                reasons.append("name match")
            elif name_score >= REASON_THRESHOLD:
                reasons.append("partial name match")

        if number_found:
            reasons.append("document number match")

        return reasons

    def __repr__(self) -> str:
        cfg = self.settings
        return (
            f"<CandidateScorer("
            f"weights=[amt:{cfg.amount_weight:.0%}, "
            f"date:{cfg.date_weight:.0%}, "
            f"text:{cfg.text_weight:.0%}], "
            f"min_confidence={cfg.min_confidence:.0%})>"
        )
