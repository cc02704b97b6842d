"""Reconciliation domain: entities, enums and value objects."""

from .enums import ConfidenceLevel, MatchStatus, MatchType, RecordType, TransactionStatus
from .models import (
    RECORD_ADAPTER,
    ExpenseRecord,
    IncomeRecord,
    InvoiceRecord,
    Match,
    Record,
    Transaction,
)
from .value_objects import (
    AutoMatchEntry,
    AutoMatchResult,
    BulkApprovalResult,
    CandidateScore,
    MatchSuggestion,
    SuggestionStats,
)

__all__ = [
    "ConfidenceLevel",
    "MatchStatus",
    "MatchType",
    "RecordType",
    "TransactionStatus",
    "RECORD_ADAPTER",
    "ExpenseRecord",
    "IncomeRecord",
    "InvoiceRecord",
    "Match",
    "Record",
    "Transaction",
    "AutoMatchEntry",
    "AutoMatchResult",
    "BulkApprovalResult",
    "CandidateScore",
    "MatchSuggestion",
    "SuggestionStats",
]
