"""
Constant-arrival-rate scheduling of scenario iterations.

The scheduler starts a new iteration every ``1 / rate`` seconds for
``duration`` seconds, no matter how long earlier iterations take.  Each
iteration runs on its own worker thread and occupies one virtual user
(VU) for as long as it runs.

- ``pre_allocated_vus`` VUs exist from the start; more are created on
  demand up to ``max_vus``.
- When a tick arrives and every VU is busy at the ceiling, that start is
  **dropped**: it is counted in the report and handed to the ``on_drop``
  callback so the metrics can show it.
- After the last tick the scheduler waits up to ``graceful_stop`` seconds
  for in-flight iterations.  Threads cannot be cancelled, so iterations
  still running after that are reported as ``interrupted`` and left to
  finish on their own; their request timeouts bound how long that takes.
  Each one closes its VU's client when it returns.

Key Concepts Demonstrated:
- Open-model load generation (arrival rate decoupled from latency)
- Bounded concurrency via a VU pool rather than a blocking semaphore
- Injectable clock and sleep for deterministic tests
"""

from __future__ import annotations

import logging
import math
import threading
import time
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable

from pr_loadtest.models import IterationTicket

logger = logging.getLogger(__name__)

# Absorbs float noise such as 0.3 * 10 == 3.0000000000000004.
_TICK_EPSILON = 1e-9


@dataclass(frozen=True)
class SchedulerReport:
    """
    Summary of one scheduled run.

    Attributes:
        planned: Arrival ticks in the run window.
        started: Iterations actually started.
        dropped: Ticks skipped because all ``max_vus`` VUs were busy.
        completed: Iterations that returned normally.
        errored: Iterations that raised an unexpected exception.
        interrupted: Iterations still running when the grace period ended.
        max_in_flight: Highest number of simultaneously running iterations.
        vus_allocated: VUs created during the run.
        elapsed_seconds: Wall-clock time from first tick to return.
    """

    planned: int
    started: int
    dropped: int
    completed: int
    errored: int
    interrupted: int
    max_in_flight: int
    vus_allocated: int
    elapsed_seconds: float


class VirtualUser:
    """
    One concurrent execution slot.

    A VU owns its client (created lazily by ``client_factory``) and its own
    iteration counter.  It is only ever handed to one iteration at a time.
    """

    def __init__(self, index: int, client_factory: Callable[[], Any]) -> None:
        self.index = index
        self.iterations = 0
        self._client_factory = client_factory
        self._client: Any = None

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = self._client_factory()
        return self._client

    def next_ticket(self, sequence: int) -> IterationTicket:
        ticket = IterationTicket(vu_index=self.index, iteration=self.iterations, sequence=sequence)
        self.iterations += 1
        return ticket

    def close(self) -> None:
        close = getattr(self._client, "close", None)
        if callable(close):
            close()
        self._client = None


class ArrivalScheduler:
    """
    Issues iteration starts at a fixed rate with a concurrency ceiling.

    Args:
        rate: Iteration starts per second (> 0).
        duration: Length of the run window in seconds (> 0).
        pre_allocated_vus: VUs created before the first tick.
        max_vus: Hard ceiling on simultaneously running iterations.
        graceful_stop: Seconds to wait for in-flight iterations after the
            window closes.
        clock: Monotonic clock returning seconds.
        sleep: Sleep function used between ticks.

    Raises:
        ValueError: If the rate, duration or VU counts are invalid.
    """

    def __init__(
        self,
        rate: float,
        duration: float,
        pre_allocated_vus: int,
        max_vus: int,
        graceful_stop: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if rate <= 0:
            raise ValueError("rate must be > 0")
        if duration <= 0:
            raise ValueError("duration must be > 0")
        if pre_allocated_vus < 1 or max_vus < pre_allocated_vus:
            raise ValueError("require 1 <= pre_allocated_vus <= max_vus")
        if graceful_stop < 0:
            raise ValueError("graceful_stop must be >= 0")

        self.rate = rate
        self.duration = duration
        self.pre_allocated_vus = pre_allocated_vus
        self.max_vus = max_vus
        self.graceful_stop = graceful_stop
        self._clock = clock
        self._sleep = sleep

        self._lock = threading.Lock()
        self._idle_changed = threading.Condition(self._lock)
        self._idle: deque[VirtualUser] = deque()
        self._all_vus: list[VirtualUser] = []
        self._client_factory: Callable[[], Any] = lambda: None
        self._in_flight = 0
        self._max_in_flight = 0
        self._completed = 0
        self._errored = 0
        self._stopped = False

    @property
    def planned_starts(self) -> int:
        """Number of arrival ticks in the window (``ceil(rate * duration)``)."""
        return max(1, math.ceil(self.rate * self.duration - _TICK_EPSILON))

    @property
    def in_flight(self) -> int:
        with self._lock:
            return self._in_flight

    def run(
        self,
        iteration_fn: Callable[[Any, IterationTicket], Any],
        client_factory: Callable[[], Any],
        on_drop: Callable[[], None] | None = None,
    ) -> SchedulerReport:
        """
        Drive the run window and return its report.

        Args:
            iteration_fn: Called as ``iteration_fn(client, ticket)`` on a
                worker thread for every started iteration.
            client_factory: Builds the per-VU client on first use.
            on_drop: Called on the scheduler thread for every dropped tick.
        """
        self._reset(client_factory)
        planned = self.planned_starts
        interval = 1.0 / self.rate
        started = 0
        dropped = 0

        logger.info(
            "Starting arrival-rate run: %.2f it/s for %.1fs (%d ticks, %d..%d VUs)",
            self.rate,
            self.duration,
            planned,
            self.pre_allocated_vus,
            self.max_vus,
        )

        executor = ThreadPoolExecutor(max_workers=self.max_vus, thread_name_prefix="vu")
        start = self._clock()
        try:
            for tick in range(planned):
                delay = start + tick * interval - self._clock()
                if delay > 0:
                    self._sleep(delay)

                vu = self._checkout()
                if vu is None:
                    dropped += 1
                    logger.debug("Tick %d dropped: all %d VUs busy", tick, self.max_vus)
                    if on_drop is not None:
                        on_drop()
                    continue

                ticket = vu.next_ticket(sequence=started)
                started += 1
                executor.submit(self._run_one, iteration_fn, vu, ticket)

            remaining = start + self.duration - self._clock()
            if remaining > 0:
                self._sleep(remaining)

            with self._idle_changed:
                finished = self._idle_changed.wait_for(
                    lambda: self._in_flight == 0, timeout=self.graceful_stop
                )
                interrupted = self._in_flight
                self._stopped = True
                idle = list(self._idle)
                completed = self._completed
                errored = self._errored
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        if not finished:
            logger.warning(
                "%d iterations still running after %.1fs graceful stop", interrupted, self.graceful_stop
            )

        with self._lock:
            report = SchedulerReport(
                planned=planned,
                started=started,
                dropped=dropped,
                completed=completed,
                errored=errored,
                interrupted=interrupted,
                max_in_flight=self._max_in_flight,
                vus_allocated=len(self._all_vus),
                elapsed_seconds=self._clock() - start,
            )
        for vu in idle:
            vu.close()

        logger.info(
            "Run finished: %d started, %d dropped, %d completed, %d errored, %d interrupted",
            report.started,
            report.dropped,
            report.completed,
            report.errored,
            report.interrupted,
        )
        return report

    def _reset(self, client_factory: Callable[[], Any]) -> None:
        with self._lock:
            self._client_factory = client_factory
            self._all_vus = [VirtualUser(i, client_factory) for i in range(1, self.pre_allocated_vus + 1)]
            self._idle = deque(self._all_vus)
            self._in_flight = 0
            self._max_in_flight = 0
            self._completed = 0
            self._errored = 0
            self._stopped = False

    def _checkout(self) -> VirtualUser | None:
        """Take an idle VU, growing the pool up to ``max_vus`` if needed."""
        with self._lock:
            if self._idle:
                vu = self._idle.popleft()
            elif len(self._all_vus) < self.max_vus:
                vu = VirtualUser(len(self._all_vus) + 1, self._client_factory)
                self._all_vus.append(vu)
            else:
                return None
            self._in_flight += 1
            self._max_in_flight = max(self._max_in_flight, self._in_flight)
            return vu

    def _run_one(
        self,
        iteration_fn: Callable[[Any, IterationTicket], Any],
        vu: VirtualUser,
        ticket: IterationTicket,
    ) -> None:
        failed = False
        try:
            iteration_fn(vu.client, ticket)
        except Exception:
            failed = True
            logger.exception("Iteration %d of VU %d raised", ticket.iteration, ticket.vu_index)
        finally:
            with self._idle_changed:
                self._in_flight -= 1
                if failed:
                    self._errored += 1
                else:
                    self._completed += 1
                self._idle.append(vu)
                self._idle_changed.notify_all()
                # The run already closed its idle VUs; a late finisher closes itself.
                stopped = self._stopped
            if stopped:
                vu.close()
