"""
End-to-end orchestration of one load run.

:func:`run_load_test` wires the pieces together in a fixed order:

1. provision fixture teams (failures are recorded, never fatal),
2. drive the arrival-rate scenario,
3. seal the metrics and take the final snapshot,
4. evaluate thresholds into a verdict.

:func:`main` is the CI entry point.  Exit codes follow a three-state
convention so a pipeline can tell "thresholds breached" from "harness
crashed":

- ``0``: all thresholds passed
- ``1``: at least one threshold was breached
- ``2``: the harness itself failed (bad config, bad thresholds file, ...)
"""

from __future__ import annotations

import argparse
import logging
import random
import sys
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Callable, Sequence

import yaml

from pr_loadtest.client import ReviewerServiceClient
from pr_loadtest.config import DEFAULT_THRESHOLDS_FILE, LoadSettings, get_config
from pr_loadtest.fixtures import FixtureProvisioner
from pr_loadtest.metrics import MetricsCollector, SLIAggregate
from pr_loadtest.models import ScenarioContext
from pr_loadtest.scheduler import ArrivalScheduler, SchedulerReport
from pr_loadtest.thresholds import (
    DEFAULT_THRESHOLDS,
    Threshold,
    ThresholdEvaluator,
    Verdict,
    format_verdict,
    load_thresholds,
    parse_thresholds,
)
from pr_loadtest.workflow import ScenarioWorkflow

logger = logging.getLogger(__name__)

EXIT_PASS = 0
EXIT_THRESHOLD_BREACH = 1
EXIT_SCRIPT_ERROR = 2


@dataclass(frozen=True)
class RunResult:
    context: ScenarioContext
    schedule: SchedulerReport
    aggregate: SLIAggregate
    verdict: Verdict


def run_load_test(
    settings: LoadSettings,
    thresholds: Sequence[Threshold],
    client_factory: Callable[[], ReviewerServiceClient] | None = None,
) -> RunResult:
    """
    Execute setup plus the timed scenario and evaluate the thresholds.

    Args:
        settings: Validated run settings.
        thresholds: Conditions the final aggregate must satisfy.
        client_factory: Builds one client per virtual user (and one for
            setup).  Defaults to a :class:`ReviewerServiceClient` per call
            with its own ``requests.Session``.

    Returns:
        The setup context, scheduler report, final aggregate and verdict.
    """
    evaluator = ThresholdEvaluator(thresholds)
    if client_factory is None:
        client_factory = partial(
            ReviewerServiceClient, settings.base_url, timeout=settings.request_timeout
        )

    collector = MetricsCollector()
    rng = random.Random(settings.random_seed)

    setup_client = client_factory()
    try:
        context = FixtureProvisioner(setup_client, collector).provision(
            settings.team_count, settings.users_per_team
        )
    finally:
        setup_client.close()

    workflow = ScenarioWorkflow(
        context,
        collector,
        rng=rng,
        pause=settings.iteration_pause,
    )
    scheduler = ArrivalScheduler(
        rate=settings.arrival_rate,
        duration=settings.duration_seconds,
        pre_allocated_vus=settings.pre_allocated_vus,
        max_vus=settings.max_vus,
        graceful_stop=settings.graceful_stop,
    )
    schedule = scheduler.run(
        workflow.run_iteration,
        client_factory,
        on_drop=collector.record_dropped_iteration,
    )
    collector.record_interrupted_iterations(schedule.interrupted)

    collector.seal()
    aggregate = collector.snapshot()
    verdict = evaluator.evaluate(aggregate)
    logger.info(
        "Collected %d calls, business failure rate %.4f, verdict %s",
        aggregate.total_calls,
        aggregate.failure_rate,
        "PASS" if verdict.passed else "FAIL",
    )
    return RunResult(context=context, schedule=schedule, aggregate=aggregate, verdict=verdict)


def resolve_thresholds(path: Path | None) -> list[Threshold]:
    """
    Load the thresholds the run is gated on.

    The built-in defaults apply only when no file was configured, or when
    the project's own default file is absent.  Any other path must exist.

    Raises:
        FileNotFoundError: If an explicitly configured file is missing.
        ValueError: If the file does not hold valid thresholds.
    """
    if path is None or (path == DEFAULT_THRESHOLDS_FILE and not path.exists()):
        logger.info("No thresholds file configured; using built-in defaults")
        return parse_thresholds(DEFAULT_THRESHOLDS)
    if not path.exists():
        raise FileNotFoundError(f"Thresholds file not found: {path}")
    return load_thresholds(path)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run the PR reviewer-service load scenario and gate on thresholds."
    )
    parser.add_argument(
        "--profile",
        default=None,
        help="Config profile (default, smoke, testing); defaults to $LOADTEST_ENV",
    )
    parser.add_argument(
        "--thresholds",
        type=Path,
        default=None,
        help="Path to thresholds YAML file; defaults to $THRESHOLDS_FILE",
    )
    return parser.parse_args(argv)


def _print_summary(result: RunResult) -> None:
    schedule = result.schedule
    aggregate = result.aggregate
    print(
        f"Iterations: {schedule.started}/{schedule.planned} started, "
        f"{schedule.dropped} dropped, {schedule.interrupted} interrupted"
    )
    print(
        f"Calls: {aggregate.total_calls} total, {aggregate.failed_calls} business failures"
    )
    print(format_verdict(result.verdict))


def main(argv: Sequence[str] | None = None) -> int:
    """
    Entry point: load settings and thresholds, run, print the verdict.

    Returns:
        ``EXIT_PASS`` (0), ``EXIT_THRESHOLD_BREACH`` (1) or
        ``EXIT_SCRIPT_ERROR`` (2).
    """
    args = parse_args(argv)

    try:
        settings = LoadSettings.from_config(get_config(args.profile))
        thresholds = resolve_thresholds(args.thresholds or settings.thresholds_file)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        print(f"Load test configuration failed: {exc}", file=sys.stderr)
        return EXIT_SCRIPT_ERROR

    result = run_load_test(settings, thresholds)
    _print_summary(result)
    return EXIT_PASS if result.verdict.passed else EXIT_THRESHOLD_BREACH
