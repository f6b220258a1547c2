"""
Value types shared by the load harness.

Everything here is a small, immutable dataclass or enum.  Setup builds
:class:`Team` and :class:`Member` fixtures once, hands every iteration the
same read-only :class:`ScenarioContext`, and each HTTP exchange ends up as
a :class:`CallOutcome` that the metrics collector aggregates.

Key Concepts Demonstrated:
- Frozen dataclasses for data shared across threads without locking
- Enums for the closed sets of call types and outcome kinds
- Decoding a response body once into a typed value
  (:class:`CreateResponse`) instead of poking at dicts in every step
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class CallType(str, Enum):
    """The four HTTP calls the harness issues against the target service."""

    TEAM_ADD = "team_add"
    PR_CREATE = "pr_create"
    PR_REASSIGN = "pr_reassign"
    STATS_ASSIGNMENTS = "stats_assignments"


class OutcomeKind(str, Enum):
    """Business classification of a single call."""

    SUCCESS = "success"
    EXPECTED_CONFLICT = "expected_conflict"
    HARD_FAILURE = "hard_failure"


def user_id_for(index: int) -> str:
    """Return the target-service user id for the 1-based user *index*."""
    return f"u{index}"


def pull_request_id_for(vu_index: int, iteration: int) -> str:
    """Return the PR id owned by one (virtual user, iteration) pair."""
    return f"pr-{vu_index}-{iteration}"


@dataclass(frozen=True)
class Member:
    """One team member as sent in the ``/team/add`` payload."""

    user_id: str
    username: str
    is_active: bool = True

    def to_payload(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "username": self.username,
            "is_active": self.is_active,
        }


@dataclass(frozen=True)
class Team:
    """A fixture team and its ordered members."""

    team_name: str
    members: tuple[Member, ...] = ()

    def to_payload(self) -> dict[str, Any]:
        return {
            "team_name": self.team_name,
            "members": [member.to_payload() for member in self.members],
        }


@dataclass(frozen=True)
class ScenarioContext:
    """
    Read-only state produced by setup and shared with every iteration.

    Attributes:
        total_users: Number of users provisioned across all teams.  Authors
            are drawn uniformly from ``u1 .. u{total_users}``.
    """

    total_users: int

    def __post_init__(self) -> None:
        if self.total_users < 1:
            raise ValueError("total_users must be >= 1")


@dataclass(frozen=True)
class CallOutcome:
    """
    The classified result of one HTTP exchange.

    Attributes:
        call_type: Which endpoint was called.
        kind: Business classification (see :class:`OutcomeKind`).
        status_code: HTTP status, or ``None`` when no response arrived.
        latency_ms: Wall-clock time spent on the exchange.
        error: Transport error description, if any.
    """

    call_type: CallType
    kind: OutcomeKind
    status_code: int | None
    latency_ms: float
    error: str | None = None

    @property
    def is_business_failure(self) -> bool:
        return self.kind is OutcomeKind.HARD_FAILURE


@dataclass(frozen=True)
class CreateResponse:
    """Typed view of a ``/pullRequest/create`` response body."""

    assigned_reviewers: tuple[str, ...] = ()

    @classmethod
    def from_body(cls, body: Any) -> CreateResponse:
        """
        Decode the reviewer list from a create response body.

        The service nests reviewers under ``pr.assigned_reviewers``.  Error
        bodies, non-JSON bodies and unexpected shapes all decode to an
        empty reviewer list.
        """
        if not isinstance(body, dict):
            return cls()
        pr = body.get("pr")
        if not isinstance(pr, dict):
            return cls()
        reviewers = pr.get("assigned_reviewers")
        if not isinstance(reviewers, list):
            return cls()
        return cls(tuple(r for r in reviewers if isinstance(r, str) and r))

    @property
    def has_reviewers(self) -> bool:
        return bool(self.assigned_reviewers)

    @property
    def first_reviewer(self) -> str | None:
        return self.assigned_reviewers[0] if self.assigned_reviewers else None


@dataclass(frozen=True)
class PullRequestAttempt:
    """The PR one iteration tried to create, and how the create call went."""

    pull_request_id: str
    pull_request_name: str
    author_id: str
    outcome: CallOutcome
    response: CreateResponse = field(default_factory=CreateResponse)


@dataclass(frozen=True)
class IterationTicket:
    """
    Identity of one scheduled iteration.

    Attributes:
        vu_index: 1-based index of the virtual user running the iteration.
        iteration: The virtual user's own iteration counter, starting at 0.
        sequence: Run-wide start order, starting at 0.
    """

    vu_index: int
    iteration: int
    sequence: int = 0
