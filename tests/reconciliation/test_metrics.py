"""Tests for reconciliation Prometheus metrics."""

import pytest
from prometheus_client import REGISTRY

from travelledger.reconciliation import metrics

pytestmark = pytest.mark.unit


def _decisions(action: str, status: str) -> float:
    value = REGISTRY.get_sample_value(
        "travelledger_reconciliation_match_decisions_total",
        {"action": action, "status": status},
    )
    return value or 0.0


def test_record_match_decision_increments():
    before = _decisions("unlink", "success")

    metrics.record_match_decision("unlink")

    assert _decisions("unlink", "success") == before + 1


def test_record_suggestion_observes_confidence():
    labels = {"confidence_level": "medium"}
    before = (
        REGISTRY.get_sample_value(
            "travelledger_reconciliation_suggestions_proposed_total", labels
        )
        or 0.0
    )

    metrics.record_suggestion("medium", 0.7)

    after = REGISTRY.get_sample_value(
        "travelledger_reconciliation_suggestions_proposed_total", labels
    )
    assert after == before + 1


def test_metrics_server_port_in_use(mocker):
    mocker.patch.object(metrics, "start_http_server", side_effect=OSError("in use"))

    assert metrics.start_metrics_server(9999) is False


def test_metrics_server_started(mocker):
    start = mocker.patch.object(metrics, "start_http_server")

    assert metrics.start_metrics_server(9100) is True
    start.assert_called_once_with(9100)
