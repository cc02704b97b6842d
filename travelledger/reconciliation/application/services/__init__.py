"""Reconciliation services.

Service Layer Pattern implementation following DDD and Hexagonal Architecture.
"""

__all__ = [
    "MatchLifecycleManager",
    "ReconciliationService",
]

from .lifecycle import MatchLifecycleManager
from .reconciliation_service import ReconciliationService
