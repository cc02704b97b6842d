"""Domain enums for bank reconciliation."""

from enum import Enum


class TransactionStatus(str, Enum):
    """Matching status of a bank transaction.

    Lifecycle:
        UNMATCHED → SUGGESTED (proposer attached candidates)
        SUGGESTED → MATCHED (a suggestion was approved)
        UNMATCHED → MATCHED (manual link)
        MATCHED → UNMATCHED (unlink)
    """

    UNMATCHED = "unmatched"
    SUGGESTED = "suggested"
    MATCHED = "matched"

    def __str__(self) -> str:
        return self.value


class RecordType(str, Enum):
    """Kind of ledger record a transaction can be matched against."""

    INVOICE = "invoice"
    INCOME = "income"
    EXPENSE = "expense"

    def __str__(self) -> str:
        return self.value


class MatchStatus(str, Enum):
    """Status of a transaction ↔ record association."""

    SUGGESTED = "suggested"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"

    def __str__(self) -> str:
        return self.value


class MatchType(str, Enum):
    """How a match came to exist."""

    SUGGESTED = "suggested"  # Proposed by the matcher, approved by a user
    MANUAL = "manual"  # Linked by a user without a suggestion
    AUTO = "auto"  # Confirmed by a batch auto-match run

    def __str__(self) -> str:
        return self.value


class ConfidenceLevel(str, Enum):
    """Display band of a confidence score."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    def __str__(self) -> str:
        return self.value
