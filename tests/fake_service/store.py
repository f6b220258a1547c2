"""
In-memory model of the reviewer-assignment service.

Implements just enough business logic for the load harness to exercise
every documented status code:

- creating a PR assigns up to two active reviewers from the author's
  team, never the author;
- reassigning replaces one current reviewer with another active team
  member who is neither the author nor already reviewing;
- stats count assignments per reviewer and per PR.

All methods take the store lock because the live fake server is
threaded.
"""

from __future__ import annotations

import random
import threading
from collections import Counter
from dataclasses import dataclass, field


class DomainError(Exception):
    """Base class for business errors the routes map to HTTP responses."""

    status = 500
    code = "INTERNAL"
    message = "internal error"


class TeamExists(DomainError):
    status = 400
    code = "TEAM_EXISTS"
    message = "team_name already exists"


class PullRequestExists(DomainError):
    status = 409
    code = "PR_EXISTS"
    message = "pull_request_id already exists"


class NotAssigned(DomainError):
    status = 409
    code = "NOT_ASSIGNED"
    message = "reviewer is not assigned to this PR"


class NoCandidate(DomainError):
    status = 409
    code = "NO_CANDIDATE"
    message = "no active replacement candidate in team"


class NotFound(DomainError):
    status = 404
    code = "NOT_FOUND"
    message = "resource not found"


@dataclass
class User:
    user_id: str
    username: str
    team_name: str
    is_active: bool = True


@dataclass
class PullRequest:
    pull_request_id: str
    pull_request_name: str
    author_id: str
    status: str = "OPEN"
    assigned_reviewers: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "pull_request_id": self.pull_request_id,
            "pull_request_name": self.pull_request_name,
            "author_id": self.author_id,
            "status": self.status,
            "assigned_reviewers": list(self.assigned_reviewers),
        }


class ReviewStore:
    """Thread-safe in-memory teams, users and pull requests."""

    def __init__(self, seed: int | None = None) -> None:
        self._lock = threading.Lock()
        self._rng = random.Random(seed)
        self.teams: dict[str, list[str]] = {}
        self.users: dict[str, User] = {}
        self.pull_requests: dict[str, PullRequest] = {}
        self.assignments: Counter[str] = Counter()

    def add_team(self, team_name: str, members: list[dict]) -> dict:
        with self._lock:
            if team_name in self.teams:
                raise TeamExists()
            self.teams[team_name] = []
            for member in members:
                user = User(
                    user_id=member["user_id"],
                    username=member.get("username", member["user_id"]),
                    team_name=team_name,
                    is_active=bool(member.get("is_active", True)),
                )
                self.users[user.user_id] = user
                self.teams[team_name].append(user.user_id)
            return {"team_name": team_name, "members": members}

    def create_pull_request(self, pull_request_id: str, name: str, author_id: str) -> PullRequest:
        with self._lock:
            if pull_request_id in self.pull_requests:
                raise PullRequestExists()
            author = self.users.get(author_id)
            if author is None:
                raise NotFound()

            candidates = [
                user_id
                for user_id in self.teams[author.team_name]
                if user_id != author_id and self.users[user_id].is_active
            ]
            reviewers = self._rng.sample(candidates, k=min(2, len(candidates)))
            pr = PullRequest(pull_request_id, name, author_id, assigned_reviewers=reviewers)
            self.pull_requests[pull_request_id] = pr
            self.assignments.update(reviewers)
            return pr

    def reassign(self, pull_request_id: str, old_user_id: str) -> tuple[PullRequest, str]:
        with self._lock:
            pr = self.pull_requests.get(pull_request_id)
            if pr is None:
                raise NotFound()
            if old_user_id not in pr.assigned_reviewers:
                raise NotAssigned()
            old_reviewer = self.users.get(old_user_id)
            if old_reviewer is None:
                raise NotFound()

            candidates = [
                user_id
                for user_id in self.teams[old_reviewer.team_name]
                if self.users[user_id].is_active
                and user_id != pr.author_id
                and user_id not in pr.assigned_reviewers
            ]
            if not candidates:
                raise NoCandidate()

            new_reviewer = self._rng.choice(candidates)
            pr.assigned_reviewers[pr.assigned_reviewers.index(old_user_id)] = new_reviewer
            self.assignments[old_user_id] -= 1
            self.assignments[new_reviewer] += 1
            return pr, new_reviewer

    def stats(self) -> dict:
        with self._lock:
            return {
                "by_reviewer": [
                    {"user_id": user_id, "assignments": count}
                    for user_id, count in sorted(self.assignments.items())
                    if count > 0
                ],
                "by_pr": [
                    {"pull_request_id": pr_id, "assignments": len(pr.assigned_reviewers)}
                    for pr_id, pr in sorted(self.pull_requests.items())
                ],
            }
