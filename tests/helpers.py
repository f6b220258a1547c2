"""
Test doubles shared by the unit suites.

``ScriptedSession`` stands in for ``requests.Session``: each
``(method, path)`` route answers from a script of responses, exceptions
or callables, and every request is recorded for later assertions.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Optional, Union
from urllib.parse import urlparse


class FakeResponse:
    """Minimal stand-in for ``requests.Response``."""

    def __init__(self, status_code: int, body: Any = None):
        self.status_code = status_code
        self._body = body

    def json(self) -> Any:
        if self._body is None:
            raise ValueError("No JSON body")
        return self._body


Reply = Union[FakeResponse, Exception, Callable[[Optional[dict]], FakeResponse]]


class ScriptedSession:
    """Thread-safe ``requests.Session`` stand-in answering by route."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._routes: dict[tuple[str, str], list[Reply]] = {}
        self.calls: list[tuple[str, str, dict | None]] = []
        self.closed = False

    def route(self, method: str, path: str, *replies: Reply) -> ScriptedSession:
        """Script replies for a route; the last reply repeats forever."""
        self._routes[(method.upper(), path)] = list(replies)
        return self

    def request(self, method: str, url: str, json: dict | None = None, **_kwargs: Any) -> FakeResponse:
        path = urlparse(url).path
        with self._lock:
            self.calls.append((method.upper(), path, json))
            script = self._routes.get((method.upper(), path))
            if not script:
                reply: Reply = FakeResponse(501)
            elif len(script) > 1:
                reply = script.pop(0)
            else:
                reply = script[0]

        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(json)
        return reply

    def calls_to(self, path: str) -> list[dict | None]:
        with self._lock:
            return [body for _, call_path, body in self.calls if call_path == path]

    def close(self) -> None:
        self.closed = True


def created_with_reviewers(*reviewers: str) -> FakeResponse:
    """A 201 create response carrying ``pr.assigned_reviewers``."""
    return FakeResponse(201, {"pr": {"assigned_reviewers": list(reviewers)}})


class FakeClock:
    """Manually advanced monotonic clock with a matching ``sleep``."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start
        self.sleeps: list[float] = []
        self.before_sleep: Callable[[], None] | None = None

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        if self.before_sleep is not None:
            self.before_sleep()
        self.sleeps.append(seconds)
        self.now += seconds
