"""Base interface for candidate scorers.

Implements the Strategy pattern so the proposer can run with any scoring
algorithm.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..domain.models import Record, Transaction
    from ..domain.value_objects import CandidateScore


class ICandidateScorer(ABC):
    """Abstract base class for transaction ↔ record scorers.

    Implementing a new scorer:
        1. Inherit from ICandidateScorer
        2. Implement score()
        3. Return None for pairs that must never be proposed
        4. Keep confidence between 0.0 and 1.0

    Example:
        >>> class AmountOnlyScorer(ICandidateScorer):
        ...     def score(self, transaction, record):
        ...         if abs(transaction.amount) != record.amount:
        ...             return None
        ...         return CandidateScore(confidence=1.0, ...)
    """

    @abstractmethod
    def score(self, transaction: "Transaction", record: "Record") -> "CandidateScore | None":
        """Score one transaction against one record.

        Args:
            transaction: Bank transaction
            record: Candidate record

        Returns:
            CandidateScore, or None when the pair is filtered out

        Note:
            Missing optional fields (dates, names) must not raise; they lower
            the confidence instead.
        """

    def _validate_confidence(self, confidence: float) -> float:
        """Clamp floating point noise and reject anything else outside [0, 1].

        Raises:
            ValueError: If confidence is clearly outside [0.0, 1.0]
        """
        if not -1e-9 <= confidence <= 1.0 + 1e-9:
            raise ValueError(f"Confidence must be between 0.0 and 1.0, got {confidence}")
        return max(0.0, min(1.0, confidence))

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"
