"""
Outcome classification for target-service responses.

Every call type has its own table of acceptable status codes.  Anything
listed there is a normal business outcome (a success or an expected
conflict such as "already exists"); everything else, a 5xx, or a call
that never got a response is a hard failure and counts against the
business-failure rate.

Key Concepts Demonstrated:
- Table-driven classification instead of inline status literals
- Pure functions that can be tested without a scheduler or network
"""

from __future__ import annotations

from pr_loadtest.models import CallOutcome, CallType, OutcomeKind

# Status codes the target service documents for each endpoint.  Codes not
# listed here are hard failures.
EXPECTED_STATUS: dict[CallType, dict[int, OutcomeKind]] = {
    CallType.TEAM_ADD: {
        201: OutcomeKind.SUCCESS,
        400: OutcomeKind.EXPECTED_CONFLICT,  # TEAM_EXISTS
    },
    CallType.PR_CREATE: {
        201: OutcomeKind.SUCCESS,
        409: OutcomeKind.EXPECTED_CONFLICT,  # PR_EXISTS
        404: OutcomeKind.EXPECTED_CONFLICT,  # author not found
    },
    CallType.PR_REASSIGN: {
        200: OutcomeKind.SUCCESS,
        409: OutcomeKind.EXPECTED_CONFLICT,  # NOT_ASSIGNED / NO_CANDIDATE / PR_MERGED
    },
    CallType.STATS_ASSIGNMENTS: {
        200: OutcomeKind.SUCCESS,
    },
}


def is_expected(call_type: CallType, status_code: int | None) -> bool:
    """Return True when *status_code* is a documented outcome for *call_type*."""
    if status_code is None or status_code >= 500:
        return False
    return status_code in EXPECTED_STATUS[call_type]


def classify(
    call_type: CallType,
    status_code: int | None,
    latency_ms: float = 0.0,
    error: str | None = None,
) -> CallOutcome:
    """
    Map a raw exchange to a :class:`CallOutcome`.

    Args:
        call_type: Endpoint that was called; selects the status table.
        status_code: HTTP status, or ``None`` when the transport failed
            before a response arrived.
        latency_ms: Elapsed time of the exchange.
        error: Transport error description, kept for diagnostics.

    Returns:
        The classified outcome.  This function never raises for unknown
        status codes; they are hard failures.
    """
    if is_expected(call_type, status_code):
        kind = EXPECTED_STATUS[call_type][status_code]
    else:
        kind = OutcomeKind.HARD_FAILURE

    return CallOutcome(
        call_type=call_type,
        kind=kind,
        status_code=status_code,
        latency_ms=latency_ms,
        error=error,
    )
