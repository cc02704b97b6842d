"""Value objects produced by the matcher and the reconciliation service.

Immutable where they describe a computation (scores, suggestions); plain
dataclasses where they accumulate batch statistics.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from .enums import ConfidenceLevel, RecordType
from .models import Match, Record


@dataclass(frozen=True)
class CandidateScore:
    """Outcome of scoring one transaction against one record.

    ``date_score`` and ``text_score`` are None when the signal was unavailable
    and therefore left out of the weighted average.
    """

    confidence: float
    confidence_level: ConfidenceLevel
    reasons: tuple[str, ...]
    amount_score: float
    date_score: float | None
    text_score: float | None
    amount_diff: Decimal
    day_diff: int | None

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be between 0.0 and 1.0, got {self.confidence}")


@dataclass(frozen=True)
class MatchSuggestion:
    """A ranked, not-yet-confirmed candidate record for a transaction."""

    transaction_id: str
    record: Record
    score: CandidateScore

    @property
    def record_id(self) -> str:
        return self.record.id

    @property
    def record_type(self) -> RecordType:
        return self.record.record_type

    @property
    def confidence(self) -> float:
        return self.score.confidence

    @property
    def confidence_level(self) -> ConfidenceLevel:
        return self.score.confidence_level

    @property
    def confidence_percent(self) -> int:
        """Confidence rounded to a whole percentage for display."""
        return round(self.score.confidence * 100)

    @property
    def reasons(self) -> tuple[str, ...]:
        return self.score.reasons

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "transaction_id": self.transaction_id,
            "record_id": self.record_id,
            "record_type": self.record_type.value,
            "confidence": self.confidence,
            "confidence_percent": self.confidence_percent,
            "confidence_level": self.confidence_level.value,
            "reasons": list(self.reasons),
            "amount_diff": str(self.score.amount_diff),
            "day_diff": self.score.day_diff,
        }


@dataclass(frozen=True)
class SuggestionStats:
    """Counts of transactions by the level of their best suggestion."""

    total: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"total": self.total, "high": self.high, "medium": self.medium, "low": self.low}


@dataclass(frozen=True)
class AutoMatchEntry:
    """One pairing decided during an auto-match run."""

    transaction_id: str
    record_id: str
    confidence: float
    reason: str
    confirmed: bool


@dataclass
class AutoMatchResult:
    """Result of a batch auto-match run."""

    total_processed: int = 0
    matched: int = 0
    suggested: int = 0
    failed: int = 0
    dry_run: bool = False
    matches: list[AutoMatchEntry] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def unmatched(self) -> int:
        """Transactions that ended the run without any candidate."""
        return self.total_processed - self.matched - self.suggested - self.failed

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_processed": self.total_processed,
            "matched": self.matched,
            "suggested": self.suggested,
            "failed": self.failed,
            "unmatched": self.unmatched,
            "dry_run": self.dry_run,
            "matches": [
                {
                    "transaction_id": m.transaction_id,
                    "record_id": m.record_id,
                    "confidence": m.confidence,
                    "reason": m.reason,
                    "confirmed": m.confirmed,
                }
                for m in self.matches
            ],
            "errors": self.errors,
        }

    def __str__(self) -> str:
        return (
            f"AutoMatchResult(matched={self.matched}/{self.total_processed}, "
            f"suggested={self.suggested}, failed={self.failed})"
        )


@dataclass
class BulkApprovalResult:
    """Result of approving several suggestions at once."""

    approved: list[Match] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def approved_count(self) -> int:
        return len(self.approved)

    @property
    def failed_count(self) -> int:
        return len(self.errors)
