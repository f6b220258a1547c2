"""
Thread-safe accumulation of service-level indicators.

:class:`MetricsCollector` is the one mutable object shared by every
in-flight iteration.  It keeps the full latency sample set per call type
(so percentiles are exact rather than bucket estimates), a single
business-failure counter across all call types, and a count of arrival
ticks the scheduler had to drop.

Once the run window closes the runner calls :meth:`MetricsCollector.seal`
and takes one :class:`SLIAggregate` snapshot.  Anything recorded after
that point is counted as a late record and logged, never folded silently
into a snapshot that has already been evaluated.

Key Concepts Demonstrated:
- Internal locking so callers never manage synchronisation themselves
- Immutable snapshots handed to the threshold evaluator
- Linear-interpolated percentiles over the raw sample set
"""

from __future__ import annotations

import logging
import math
import threading
from collections import Counter
from dataclasses import dataclass, field
from typing import Mapping, Sequence

from pr_loadtest.models import CallOutcome, CallType

logger = logging.getLogger(__name__)


def percentile(samples: Sequence[float], p: float) -> float | None:
    """
    Return the *p*-th percentile of *samples* (0 <= p <= 100).

    Uses linear interpolation between the two closest ranks, which is the
    same convention load tools such as k6 use for ``p(95)``.  Returns
    ``None`` for an empty sample set.
    """
    if not 0 <= p <= 100:
        raise ValueError(f"percentile must be between 0 and 100, got {p}")
    if not samples:
        return None

    ordered = sorted(samples)
    rank = (p / 100.0) * (len(ordered) - 1)
    lower = math.floor(rank)
    upper = math.ceil(rank)
    if lower == upper:
        return float(ordered[lower])
    weight = rank - lower
    return ordered[lower] + (ordered[upper] - ordered[lower]) * weight


@dataclass(frozen=True)
class SLIAggregate:
    """
    Point-in-time copy of everything the collector has accumulated.

    Attributes:
        total_calls: Number of classified calls.
        failed_calls: Calls classified as hard failures.
        samples: Latency samples in milliseconds, keyed by call type.
        outcome_counts: ``"<call_type>|<kind>"`` to count.
        dropped_iterations: Arrival ticks skipped because every virtual
            user was busy.
        interrupted_iterations: Iterations still running when the grace
            period after the run window ended.
        late_records: Outcomes that arrived after the collector was sealed.
    """

    total_calls: int = 0
    failed_calls: int = 0
    samples: Mapping[CallType, tuple[float, ...]] = field(default_factory=dict)
    outcome_counts: Mapping[str, int] = field(default_factory=dict)
    dropped_iterations: int = 0
    interrupted_iterations: int = 0
    late_records: int = 0

    @property
    def failure_rate(self) -> float:
        if self.total_calls == 0:
            return 0.0
        return self.failed_calls / self.total_calls

    def latencies(self, call_type: CallType | None = None) -> tuple[float, ...]:
        """Latency samples for one call type, or for every call when ``None``."""
        if call_type is not None:
            return self.samples.get(call_type, ())
        combined: list[float] = []
        for values in self.samples.values():
            combined.extend(values)
        return tuple(combined)

    def latency_percentile(self, p: float, call_type: CallType | None = None) -> float | None:
        return percentile(self.latencies(call_type), p)


class MetricsCollector:
    """
    Collects call outcomes from all virtual users.

    Safe for concurrent use: every mutation and every snapshot happens
    under a single internal lock, so no sample is lost or half-written
    even at full concurrency.

    Example:
        collector = MetricsCollector()
        collector.record(outcome)
        collector.seal()
        aggregate = collector.snapshot()
        print(aggregate.failure_rate)
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._samples: dict[CallType, list[float]] = {}
        self._outcomes: Counter[str] = Counter()
        self._total = 0
        self._failed = 0
        self._dropped = 0
        self._interrupted = 0
        self._late = 0
        self._sealed = False

    def record(self, outcome: CallOutcome) -> None:
        """Append one classified call to the aggregate."""
        with self._lock:
            if self._sealed:
                self._late += 1
                late = self._late
            else:
                late = 0
                self._total += 1
                if outcome.is_business_failure:
                    self._failed += 1
                self._samples.setdefault(outcome.call_type, []).append(outcome.latency_ms)
                self._outcomes[f"{outcome.call_type.value}|{outcome.kind.value}"] += 1

        if late:
            logger.warning(
                "Outcome for %s recorded after metrics were sealed (%d late so far)",
                outcome.call_type.value,
                late,
            )

    def record_dropped_iteration(self) -> None:
        with self._lock:
            self._dropped += 1

    def record_interrupted_iterations(self, count: int) -> None:
        """Note iterations the scheduler gave up waiting for."""
        with self._lock:
            self._interrupted += count

    def seal(self) -> None:
        """Stop accepting outcomes into the aggregate."""
        with self._lock:
            self._sealed = True

    @property
    def sealed(self) -> bool:
        with self._lock:
            return self._sealed

    def snapshot(self) -> SLIAggregate:
        """Return an immutable copy of the current aggregate."""
        with self._lock:
            return SLIAggregate(
                total_calls=self._total,
                failed_calls=self._failed,
                samples={call: tuple(values) for call, values in self._samples.items()},
                outcome_counts=dict(self._outcomes),
                dropped_iterations=self._dropped,
                interrupted_iterations=self._interrupted,
                late_records=self._late,
            )
