"""
The per-iteration business workflow.

One iteration performs up to three calls:

1. **Create** a pull request ``pr-<vu>-<iter>`` authored by a uniformly
   drawn user.
2. **Reassign** the first assigned reviewer, but only when the create
   response actually carried reviewers.
3. **Query stats** on every fifth iteration of the virtual user
   (``iteration % 5 == 0``), whatever happened in steps 1 and 2.

Each step is classified and recorded on its own; a hard failure in one
step never stops the others from running when their own preconditions
hold.

Key Concepts Demonstrated:
- Injectable random source for deterministic author selection in tests
- Branching on a decoded, typed response instead of raw dict lookups
- Step isolation so one failed call cannot abort the iteration
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Callable

from pr_loadtest.calls import perform_call
from pr_loadtest.client import ReviewerServiceClient
from pr_loadtest.metrics import MetricsCollector
from pr_loadtest.models import (
    CallOutcome,
    CallType,
    CreateResponse,
    IterationTicket,
    PullRequestAttempt,
    ScenarioContext,
    pull_request_id_for,
    user_id_for,
)

logger = logging.getLogger(__name__)

DEFAULT_STATS_EVERY = 5


@dataclass(frozen=True)
class IterationResult:
    """What one iteration did, step by step."""

    ticket: IterationTicket
    attempt: PullRequestAttempt
    reassign: CallOutcome | None = None
    stats: CallOutcome | None = None

    @property
    def reassigned(self) -> bool:
        return self.reassign is not None

    @property
    def queried_stats(self) -> bool:
        return self.stats is not None


class ScenarioWorkflow:
    """
    Runs the create → reassign → stats sequence for one iteration.

    The workflow itself holds no per-iteration state, so a single instance
    is shared by every virtual user.  The random source is the only
    mutable member; ``random.Random`` methods are safe to call from
    multiple threads.

    Args:
        context: Read-only setup result.
        collector: Destination for every classified outcome.
        rng: Uniform random source used to pick authors.
        stats_every: Stats cadence in per-user iterations.
        pause: Think time in seconds after each iteration.
        sleep: Sleep function, replaceable in tests.
    """

    def __init__(
        self,
        context: ScenarioContext,
        collector: MetricsCollector,
        rng: random.Random | None = None,
        stats_every: int = DEFAULT_STATS_EVERY,
        pause: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if stats_every < 1:
            raise ValueError("stats_every must be >= 1")
        self.context = context
        self.collector = collector
        self.rng = rng if rng is not None else random.Random()
        self.stats_every = stats_every
        self.pause = pause
        self._sleep = sleep

    def pick_author(self) -> str:
        return user_id_for(self.rng.randint(1, self.context.total_users))

    def run_iteration(self, client: ReviewerServiceClient, ticket: IterationTicket) -> IterationResult:
        attempt = self._create(client, ticket)

        reassign = None
        reviewer = attempt.response.first_reviewer
        if reviewer is not None:
            reassign, _ = perform_call(
                CallType.PR_REASSIGN,
                lambda: client.reassign_reviewer(attempt.pull_request_id, reviewer),
                self.collector,
            )

        stats = None
        if ticket.iteration % self.stats_every == 0:
            stats, _ = perform_call(
                CallType.STATS_ASSIGNMENTS,
                client.assignment_stats,
                self.collector,
            )

        if self.pause > 0:
            self._sleep(self.pause)

        return IterationResult(ticket=ticket, attempt=attempt, reassign=reassign, stats=stats)

    def _create(self, client: ReviewerServiceClient, ticket: IterationTicket) -> PullRequestAttempt:
        pull_request_id = pull_request_id_for(ticket.vu_index, ticket.iteration)
        name = f"Feature {ticket.vu_index}-{ticket.iteration}"
        author_id = self.pick_author()

        outcome, exchange = perform_call(
            CallType.PR_CREATE,
            lambda: client.create_pull_request(pull_request_id, name, author_id),
            self.collector,
        )
        response = CreateResponse.from_body(exchange.body) if exchange is not None else CreateResponse()

        logger.debug(
            "VU %d iter %d: create %s -> %s (%d reviewers)",
            ticket.vu_index,
            ticket.iteration,
            pull_request_id,
            outcome.status_code,
            len(response.assigned_reviewers),
        )
        return PullRequestAttempt(
            pull_request_id=pull_request_id,
            pull_request_name=name,
            author_id=author_id,
            outcome=outcome,
            response=response,
        )
