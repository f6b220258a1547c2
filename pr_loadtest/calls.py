"""Run one HTTP call, classify it and record the outcome."""

from __future__ import annotations

import logging
from typing import Callable

from pr_loadtest.classifier import classify
from pr_loadtest.client import HttpExchange, TransportError
from pr_loadtest.metrics import MetricsCollector
from pr_loadtest.models import CallOutcome, CallType

logger = logging.getLogger(__name__)


def perform_call(
    call_type: CallType,
    send: Callable[[], HttpExchange],
    collector: MetricsCollector,
) -> tuple[CallOutcome, HttpExchange | None]:
    """
    Execute *send*, classify the result and record it in *collector*.

    Transport errors stop here: they become a hard-failure outcome and the
    returned exchange is ``None``.  The outcome is recorded before this
    function returns, whatever the caller does next.
    """
    try:
        exchange = send()
    except TransportError as exc:
        outcome = classify(call_type, None, exc.latency_ms, error=str(exc))
        collector.record(outcome)
        return outcome, None

    outcome = classify(call_type, exchange.status_code, exchange.latency_ms)
    collector.record(outcome)
    if outcome.is_business_failure:
        logger.debug("%s returned unexpected status %s", call_type.value, exchange.status_code)
    return outcome, exchange
