"""
Unit tests for the per-endpoint outcome tables.

Key SDET Concepts Demonstrated:
- Table-driven tests mirroring a table-driven implementation
- Boundary cases (4xx outside the table, 5xx, no response)
"""

import pytest

from pr_loadtest.classifier import EXPECTED_STATUS, classify, is_expected
from pr_loadtest.models import CallType, OutcomeKind


pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    "call_type, status, expected_kind",
    [
        (CallType.TEAM_ADD, 201, OutcomeKind.SUCCESS),
        (CallType.TEAM_ADD, 400, OutcomeKind.EXPECTED_CONFLICT),
        (CallType.PR_CREATE, 201, OutcomeKind.SUCCESS),
        (CallType.PR_CREATE, 409, OutcomeKind.EXPECTED_CONFLICT),
        (CallType.PR_CREATE, 404, OutcomeKind.EXPECTED_CONFLICT),
        (CallType.PR_REASSIGN, 200, OutcomeKind.SUCCESS),
        (CallType.PR_REASSIGN, 409, OutcomeKind.EXPECTED_CONFLICT),
        (CallType.STATS_ASSIGNMENTS, 200, OutcomeKind.SUCCESS),
    ],
)
def test_documented_statuses_are_not_business_failures(call_type, status, expected_kind):
    outcome = classify(call_type, status, latency_ms=12.5)

    assert outcome.kind is expected_kind
    assert outcome.is_business_failure is False
    assert outcome.status_code == status
    assert outcome.latency_ms == 12.5


@pytest.mark.parametrize(
    "call_type, status",
    [
        (CallType.TEAM_ADD, 409),
        (CallType.PR_CREATE, 200),
        (CallType.PR_CREATE, 400),
        (CallType.PR_REASSIGN, 404),
        (CallType.STATS_ASSIGNMENTS, 404),
        (CallType.STATS_ASSIGNMENTS, 204),
    ],
)
def test_undocumented_statuses_are_hard_failures(call_type, status):
    assert classify(call_type, status).kind is OutcomeKind.HARD_FAILURE


@pytest.mark.parametrize("call_type", list(CallType))
@pytest.mark.parametrize("status", [500, 502, 503, 504])
def test_server_errors_are_hard_failures_for_every_call(call_type, status):
    assert classify(call_type, status).is_business_failure is True


@pytest.mark.parametrize("call_type", list(CallType))
def test_missing_response_is_hard_failure(call_type):
    """Test that a transport error (no status) is always a hard failure."""
    # Act
    outcome = classify(call_type, None, latency_ms=1000.0, error="timed out")

    # Assert
    assert outcome.kind is OutcomeKind.HARD_FAILURE
    assert outcome.status_code is None
    assert outcome.error == "timed out"


def test_every_call_type_has_a_table():
    assert set(EXPECTED_STATUS) == set(CallType)


def test_is_expected_helper():
    assert is_expected(CallType.PR_CREATE, 404) is True
    assert is_expected(CallType.PR_CREATE, None) is False
    assert is_expected(CallType.STATS_ASSIGNMENTS, 409) is False
