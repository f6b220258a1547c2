"""
Load harness for the PR reviewer-assignment service.

Seeds fixture teams once, then drives a constant-arrival-rate scenario
(create PR → maybe reassign a reviewer → periodically read stats) and
gates the run on latency percentiles and the business-failure rate.

Modules:
  * :mod:`.fixtures` -- one-time team/member setup
  * :mod:`.workflow` -- the per-iteration business scenario
  * :mod:`.scheduler` -- arrival-rate pacing over a pool of virtual users
  * :mod:`.classifier` -- per-endpoint expected-status tables
  * :mod:`.metrics` -- thread-safe SLI accumulation
  * :mod:`.thresholds` -- k6-style thresholds and the final verdict

Key Concepts Demonstrated:
- Open-model load generation with bounded concurrency
- Business-level outcome validation distinct from transport errors
- Deterministic, CI-friendly pass/fail gating
"""

from __future__ import annotations

import logging

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

__version__ = "1.0.0"
