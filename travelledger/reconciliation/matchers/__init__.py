"""Matching primitives, scorer and proposer.

Usage:
    >>> from travelledger.reconciliation.matchers import MatchProposer
    >>> proposer = MatchProposer()
    >>> suggestions = proposer.propose(transaction, records)
    >>> best = suggestions[0] if suggestions else None
"""

__all__ = [
    "ICandidateScorer",
    "CandidateScorer",
    "MatchProposer",
    "classify_confidence",
    "is_direction_compatible",
    "amount_closeness",
    "date_proximity",
    "text_similarity",
    "normalize_text",
]

from .base import ICandidateScorer
from .proposer import MatchProposer, is_direction_compatible
from .scorer import CandidateScorer, classify_confidence
from .similarity import amount_closeness, date_proximity, normalize_text, text_similarity
