"""Bank reconciliation: matching statement transactions to ledger records.

This module implements:
- Similarity primitives for amounts, dates and counterparty names
- A weighted candidate scorer and a ranked match proposer
- The match lifecycle (suggest, approve, reject, link, unlink)
- Batch auto-matching and bulk approval
- Prometheus metrics monitoring

Architecture: Domain-Driven Design (DDD) + Hexagonal Architecture
"""

__all__ = [
    "Transaction",
    "Record",
    "InvoiceRecord",
    "IncomeRecord",
    "ExpenseRecord",
    "Match",
    "MatchSuggestion",
    "CandidateScore",
    "AutoMatchResult",
    "TransactionStatus",
    "MatchStatus",
    "MatchType",
    "RecordType",
    "ConfidenceLevel",
    "MatchProposer",
    "CandidateScorer",
    "MatchLifecycleManager",
    "ReconciliationService",
    # Metrics
    "start_metrics_server",
]

from .application.services import MatchLifecycleManager, ReconciliationService
from .domain.enums import ConfidenceLevel, MatchStatus, MatchType, RecordType, TransactionStatus
from .domain.models import ExpenseRecord, IncomeRecord, InvoiceRecord, Match, Record, Transaction
from .domain.value_objects import AutoMatchResult, CandidateScore, MatchSuggestion
from .matchers import CandidateScorer, MatchProposer
from .metrics import start_metrics_server
