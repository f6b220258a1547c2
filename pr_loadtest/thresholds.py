"""
Threshold definitions and the end-of-run verdict.

Thresholds use the same compact syntax as k6 so existing CI gates can be
ported verbatim::

    thresholds:
      http_req_duration: ["p(95)<300"]
      "http_req_duration{call:pr_create}": ["p(99)<500", "avg<150"]
      biz_fail_rate: ["rate<0.001"]
      dropped_iterations: ["count<1"]
      interrupted_iterations: ["count<1"]

Supported metrics and aggregations:

- ``http_req_duration`` / ``http_req_duration{call:<call_type>}``:
  ``p(N)``, ``avg``, ``min``, ``max``, ``med`` (milliseconds)
- ``biz_fail_rate``: ``rate`` (0.0 .. 1.0)
- ``dropped_iterations``: ``count``
- ``interrupted_iterations``: ``count``

Each threshold is evaluated independently and the run passes only if
every one of them passes.  A latency threshold with no samples fails: an
empty run is not evidence of a healthy service.

Key Concepts Demonstrated:
- Parsing a tiny expression language with a single anchored regex
- YAML-backed configuration with fail-fast validation
- All-or-nothing verdicts suitable for a CI gate
"""

from __future__ import annotations

import operator
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping

import yaml

from pr_loadtest.metrics import SLIAggregate, percentile
from pr_loadtest.models import CallType

LATENCY_METRIC = "http_req_duration"
FAILURE_RATE_METRIC = "biz_fail_rate"
DROPPED_METRIC = "dropped_iterations"
INTERRUPTED_METRIC = "interrupted_iterations"

DEFAULT_THRESHOLDS: dict[str, list[str]] = {
    LATENCY_METRIC: ["p(95)<300"],
    FAILURE_RATE_METRIC: ["rate<0.001"],
}

_OPERATORS: dict[str, Callable[[float, float], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "==": operator.eq,
    "!=": operator.ne,
}

_METRIC_RE = re.compile(r"^(?P<name>[a-z_]+)(?:\{call:(?P<call>[a-z_]+)\})?$")
_EXPRESSION_RE = re.compile(
    r"^\s*(?P<agg>p\(\s*(?P<pct>\d+(?:\.\d+)?)\s*\)|avg|min|max|med|rate|count)"
    r"\s*(?P<op><=|>=|==|!=|<|>)\s*(?P<limit>-?\d+(?:\.\d+)?(?:[eE]-?\d+)?)\s*$"
)

_AGGREGATIONS_BY_METRIC = {
    LATENCY_METRIC: {"p", "avg", "min", "max", "med"},
    FAILURE_RATE_METRIC: {"rate"},
    DROPPED_METRIC: {"count"},
    INTERRUPTED_METRIC: {"count"},
}


@dataclass(frozen=True)
class Threshold:
    """
    One parsed pass/fail condition.

    Attributes:
        metric: Metric name (``http_req_duration``, ``biz_fail_rate``,
            ``dropped_iterations``, ``interrupted_iterations``).
        call_type: Restricts a latency threshold to one call type.
        aggregation: ``p``, ``avg``, ``min``, ``max``, ``med``, ``rate`` or
            ``count``.
        percentile: Percentile for ``p`` aggregations.
        op: Comparison operator symbol.
        limit: Right-hand side of the comparison.
        expression: The expression text as written.
    """

    metric: str
    aggregation: str
    op: str
    limit: float
    expression: str
    call_type: CallType | None = None
    percentile: float | None = None

    @property
    def name(self) -> str:
        metric = self.metric
        if self.call_type is not None:
            metric = f"{metric}{{call:{self.call_type.value}}}"
        return f"{metric}: {self.expression}"

    def observe(self, aggregate: SLIAggregate) -> float | None:
        """Compute this threshold's observed value from *aggregate*."""
        if self.metric == FAILURE_RATE_METRIC:
            return aggregate.failure_rate
        if self.metric == DROPPED_METRIC:
            return float(aggregate.dropped_iterations)
        if self.metric == INTERRUPTED_METRIC:
            return float(aggregate.interrupted_iterations)

        samples = aggregate.latencies(self.call_type)
        if not samples:
            return None
        if self.aggregation == "p":
            return percentile(samples, self.percentile or 0.0)
        if self.aggregation == "med":
            return percentile(samples, 50)
        if self.aggregation == "avg":
            return sum(samples) / len(samples)
        if self.aggregation == "min":
            return min(samples)
        return max(samples)

    def check(self, observed: float | None) -> bool:
        if observed is None:
            return False
        return _OPERATORS[self.op](observed, self.limit)


@dataclass(frozen=True)
class ThresholdResult:
    name: str
    passed: bool
    observed: float | None
    limit: float


@dataclass(frozen=True)
class Verdict:
    """Overall outcome: passes only when every threshold passes."""

    results: tuple[ThresholdResult, ...]

    @property
    def passed(self) -> bool:
        return all(result.passed for result in self.results)

    @property
    def failed(self) -> tuple[ThresholdResult, ...]:
        return tuple(result for result in self.results if not result.passed)


def parse_threshold(metric_key: str, expression: str) -> Threshold:
    """
    Parse one ``metric`` / ``expression`` pair.

    Raises:
        ValueError: If the metric, call tag, aggregation or expression is
            not recognised.
    """
    metric_match = _METRIC_RE.match(metric_key.strip())
    if metric_match is None:
        raise ValueError(f"Invalid threshold metric: {metric_key!r}")
    metric = metric_match.group("name")
    if metric not in _AGGREGATIONS_BY_METRIC:
        raise ValueError(f"Unknown threshold metric: {metric!r}")

    call_type = None
    call_tag = metric_match.group("call")
    if call_tag is not None:
        if metric != LATENCY_METRIC:
            raise ValueError(f"Only {LATENCY_METRIC} accepts a call tag, got {metric_key!r}")
        try:
            call_type = CallType(call_tag)
        except ValueError as exc:
            raise ValueError(f"Unknown call type in threshold: {call_tag!r}") from exc

    expr_match = _EXPRESSION_RE.match(str(expression))
    if expr_match is None:
        raise ValueError(f"Invalid threshold expression for {metric_key}: {expression!r}")

    aggregation = expr_match.group("agg")
    pct = None
    if aggregation.startswith("p("):
        aggregation = "p"
        pct = float(expr_match.group("pct"))
        if pct > 100:
            raise ValueError(f"Percentile out of range in {expression!r}")
    if aggregation not in _AGGREGATIONS_BY_METRIC[metric]:
        raise ValueError(f"Aggregation {aggregation!r} is not valid for {metric}")

    return Threshold(
        metric=metric,
        aggregation=aggregation,
        op=expr_match.group("op"),
        limit=float(expr_match.group("limit")),
        expression=str(expression).strip(),
        call_type=call_type,
        percentile=pct,
    )


def parse_thresholds(definitions: Mapping[str, Any]) -> list[Threshold]:
    """Parse a ``{metric: expression | [expressions]}`` mapping."""
    thresholds: list[Threshold] = []
    for metric_key, expressions in definitions.items():
        if isinstance(expressions, str):
            expressions = [expressions]
        if not isinstance(expressions, list) or not expressions:
            raise ValueError(f"Threshold {metric_key!r} must list at least one expression")
        for expression in expressions:
            thresholds.append(parse_threshold(str(metric_key), expression))
    return thresholds


def load_thresholds(path: Path) -> list[Threshold]:
    """
    Read threshold definitions from a YAML file.

    The file holds a top-level ``thresholds`` mapping.

    Raises:
        ValueError: If the file has no usable ``thresholds`` mapping or an
            expression fails to parse.
    """
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    definitions = data.get("thresholds") if isinstance(data, dict) else None
    if not isinstance(definitions, dict) or not definitions:
        raise ValueError(f"{path} must define a non-empty 'thresholds' mapping")
    return parse_thresholds(definitions)


class ThresholdEvaluator:
    """Evaluates a fixed set of thresholds against a final aggregate."""

    def __init__(self, thresholds: Iterable[Threshold]) -> None:
        self.thresholds = tuple(thresholds)
        if not self.thresholds:
            raise ValueError("At least one threshold is required")

    def evaluate(self, aggregate: SLIAggregate) -> Verdict:
        results = []
        for threshold in self.thresholds:
            observed = threshold.observe(aggregate)
            results.append(
                ThresholdResult(
                    name=threshold.name,
                    passed=threshold.check(observed),
                    observed=observed,
                    limit=threshold.limit,
                )
            )
        return Verdict(results=tuple(results))


def format_verdict(verdict: Verdict) -> str:
    """Render the verdict as a plain-text table for CI logs."""
    lines = [
        "Performance Threshold Check",
        "-" * 72,
        f"{'Threshold':<44}{'Actual':>14}{'Status':>14}",
        "-" * 72,
    ]
    for result in verdict.results:
        actual = "n/a" if result.observed is None else f"{result.observed:.4f}"
        status = "PASS" if result.passed else "FAIL"
        lines.append(f"{result.name:<44}{actual:>14}{status:>14}")
    lines.append("-" * 72)
    lines.append(f"Overall: {'PASS' if verdict.passed else 'FAIL'}")
    return "\n".join(lines)
