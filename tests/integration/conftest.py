"""
Live-server fixtures for integration tests.

Each test gets its own fake reviewer service on a free port, served by
werkzeug in a background thread, so the harness exercises real HTTP:
connection handling, JSON encoding and status codes.

Key Concepts Demonstrated:
- Live server fixture with clean shutdown
- Fixture factories for per-test app configuration
- Isolated state per test (fresh in-memory store)
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Generator

import pytest
from werkzeug.serving import make_server

from pr_loadtest.client import ReviewerServiceClient
from tests.fake_service import create_app


@pytest.fixture
def start_service() -> Generator[Callable[..., str], None, None]:
    """
    Provide a factory that starts a fake service and returns its base URL.

    Yields:
        Callable taking optional app config overrides.
    """
    servers = []

    def start(**config: Any) -> str:
        app = create_app({"SEED": 7, **config})
        server = make_server("127.0.0.1", 0, app, threaded=True)
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        servers.append((server, thread, app))
        return f"http://127.0.0.1:{server.server_port}"

    yield start

    for server, thread, _ in servers:
        server.shutdown()
        thread.join(timeout=5)


@pytest.fixture
def base_url(start_service) -> str:
    """Base URL of a default fake service."""
    return start_service()


@pytest.fixture
def live_client(base_url) -> Generator[ReviewerServiceClient, None, None]:
    """A real client talking to the default fake service."""
    client = ReviewerServiceClient(base_url, timeout=5.0)
    yield client
    client.close()
