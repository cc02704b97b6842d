"""Prometheus metrics instrumentation for reconciliation.

Tracks proposal volume and latency, confidence distribution, and the outcome of
approve / reject / link / unlink decisions.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from prometheus_client import Counter, Histogram, start_http_server

from ..utils.logging import get_logger

logger = get_logger(__name__)

# ============================================================================
# Metric Definitions
# ============================================================================

suggestions_proposed_total = Counter(
    "travelledger_reconciliation_suggestions_proposed_total",
    "Total number of match suggestions produced",
    ["confidence_level"],  # high/medium/low
)

match_decisions_total = Counter(
    "travelledger_reconciliation_match_decisions_total",
    "Total number of lifecycle decisions",
    ["action", "status"],  # approve/reject/link/unlink/auto, success/conflict/not_found/noop
)

matching_confidence_scores = Histogram(
    "travelledger_reconciliation_confidence_scores",
    "Distribution of suggestion confidence scores",
    buckets=(0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.85, 0.9, 0.95, 1.0),
)

proposal_duration_seconds = Histogram(
    "travelledger_reconciliation_proposal_duration_seconds",
    "Time taken to rank candidates for one transaction",
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0),
)


# ============================================================================
# Metrics Server
# ============================================================================


def start_metrics_server(port: int = 8000) -> bool:
    """Start the Prometheus HTTP exporter.

    Returns:
        True if the server started, False if the port was unavailable
    """
    try:
        start_http_server(port)
    except OSError as e:
        logger.warning("metrics_server_unavailable", port=port, error=str(e))
        return False
    logger.info("metrics_server_started", port=port)
    return True


# ============================================================================
# Convenience Functions
# ============================================================================


@contextmanager
def observe_proposal() -> Iterator[None]:
    """Time one proposer run."""
    with proposal_duration_seconds.time():
        yield


def record_suggestion(confidence_level: str, confidence: float) -> None:
    """Record a suggestion surfaced to a user or stored."""
    suggestions_proposed_total.labels(confidence_level=confidence_level).inc()
    matching_confidence_scores.observe(confidence)


def record_match_decision(action: str, status: str = "success") -> None:
    """Record a lifecycle decision.

    Args:
        action: approve, reject, link, unlink or auto
        status: success, conflict, not_found or noop
    """
    match_decisions_total.labels(action=action, status=status).inc()
