"""
Thin HTTP client for the PR reviewer-assignment service.

Each virtual user owns one :class:`ReviewerServiceClient` wrapping its own
``requests.Session`` so connection pooling and keep-alive behave like an
independent client.  The client does not judge responses; it reports the
status code, the decoded body and the elapsed time, and turns every
transport-level problem into a :class:`TransportError`.

Key Concepts Demonstrated:
- Per-user ``requests.Session`` for realistic connection reuse
- Tolerant JSON decoding so a 5xx HTML page never crashes an iteration
- Wrapping library exceptions in one domain exception type
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urljoin

import requests

from pr_loadtest.models import Team

logger = logging.getLogger(__name__)

JSON_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


class TransportError(Exception):
    """
    A call that never produced an HTTP response.

    Raised for connection failures, DNS errors and timeouts.  Carries the
    time spent before the failure so it still contributes a latency
    sample.
    """

    def __init__(self, message: str, latency_ms: float = 0.0) -> None:
        super().__init__(message)
        self.latency_ms = latency_ms


@dataclass(frozen=True)
class HttpExchange:
    """Raw result of one request/response pair."""

    status_code: int
    latency_ms: float
    body: dict[str, Any] = field(default_factory=dict)


def _safe_json(response: Any) -> dict[str, Any]:
    """Return response JSON as a dict, or ``{}`` if parsing fails."""
    try:
        data = response.json()
    except ValueError:
        return {}

    if isinstance(data, dict):
        return data
    return {}


class ReviewerServiceClient:
    """
    Client for the four endpoints the load scenario exercises.

    Args:
        base_url: Root URL of the target service.
        session: Optional pre-built session (tests pass stand-ins here).
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        base_url: str,
        session: requests.Session | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/") + "/"
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout

    def add_team(self, team: Team) -> HttpExchange:
        return self._request("POST", "/team/add", json=team.to_payload())

    def create_pull_request(
        self, pull_request_id: str, pull_request_name: str, author_id: str
    ) -> HttpExchange:
        return self._request(
            "POST",
            "/pullRequest/create",
            json={
                "pull_request_id": pull_request_id,
                "pull_request_name": pull_request_name,
                "author_id": author_id,
            },
        )

    def reassign_reviewer(self, pull_request_id: str, old_user_id: str) -> HttpExchange:
        return self._request(
            "POST",
            "/pullRequest/reassign",
            json={"pull_request_id": pull_request_id, "old_user_id": old_user_id},
        )

    def assignment_stats(self) -> HttpExchange:
        return self._request("GET", "/stats/assignments")

    def close(self) -> None:
        self.session.close()

    def _request(self, method: str, path: str, json: dict[str, Any] | None = None) -> HttpExchange:
        """
        Send one request and time it.

        Raises:
            TransportError: If no HTTP response was received.
        """
        url = urljoin(self.base_url, path.lstrip("/"))
        started = time.perf_counter()
        try:
            response = self.session.request(
                method,
                url,
                json=json,
                headers=JSON_HEADERS,
                timeout=self.timeout,
                allow_redirects=False,
            )
        except requests.Timeout as exc:
            latency_ms = (time.perf_counter() - started) * 1000.0
            logger.debug("%s %s timed out after %.1f ms", method, url, latency_ms)
            raise TransportError(f"{method} {path} timed out", latency_ms) from exc
        except requests.RequestException as exc:
            latency_ms = (time.perf_counter() - started) * 1000.0
            logger.debug("%s %s failed: %s", method, url, exc)
            raise TransportError(f"{method} {path} failed: {exc}", latency_ms) from exc

        latency_ms = (time.perf_counter() - started) * 1000.0
        return HttpExchange(
            status_code=response.status_code,
            latency_ms=latency_ms,
            body=_safe_json(response),
        )
