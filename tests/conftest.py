"""
Shared pytest fixtures for the load harness test suite.

Fixtures here build the pieces most tests need: a fresh metrics
collector, a scripted HTTP session wired into a real
:class:`~pr_loadtest.client.ReviewerServiceClient`, and a seeded random
source so author selection is reproducible.

Key Concepts Demonstrated:
- Fixture composition (client depends on session)
- Deterministic randomness via seeded ``random.Random``
- Test doubles at the transport seam instead of patching internals
"""

from __future__ import annotations

import random

import pytest
from faker import Faker

from pr_loadtest.client import ReviewerServiceClient
from pr_loadtest.metrics import MetricsCollector
from pr_loadtest.models import ScenarioContext
from tests.helpers import FakeResponse, ScriptedSession

fake = Faker()


@pytest.fixture
def collector() -> MetricsCollector:
    """Provide an empty metrics collector."""
    return MetricsCollector()


@pytest.fixture
def session() -> ScriptedSession:
    """
    Provide a scripted session with every endpoint answering happily.

    Tests re-route individual endpoints to model failures.
    """
    return (
        ScriptedSession()
        .route("POST", "/team/add", FakeResponse(201, {"team": {}}))
        .route("POST", "/pullRequest/create", FakeResponse(201, {"pr": {"assigned_reviewers": []}}))
        .route("POST", "/pullRequest/reassign", FakeResponse(200, {"replaced_by": "u2"}))
        .route("GET", "/stats/assignments", FakeResponse(200, {"by_reviewer": [], "by_pr": []}))
    )


@pytest.fixture
def client(session: ScriptedSession) -> ReviewerServiceClient:
    """Provide a real client whose transport is the scripted session."""
    return ReviewerServiceClient("http://reviewer-service.test", session=session, timeout=1.0)


@pytest.fixture
def rng() -> random.Random:
    """Seeded random source for reproducible author selection."""
    return random.Random(1234)


@pytest.fixture
def context() -> ScenarioContext:
    """Context matching the default fixture shape (20 teams x 10 users)."""
    return ScenarioContext(total_users=200)
