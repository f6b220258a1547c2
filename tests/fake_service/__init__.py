"""
Flask fake of the PR reviewer-assignment service.

Integration tests serve this app on a real port so the harness talks to
it over HTTP exactly as it would to the production service.

Key Concepts Demonstrated:
- Application factory pattern (``create_app``)
- Test doubles that honour the real service's status-code contract
"""

from __future__ import annotations

from typing import Any

from flask import Flask

from tests.fake_service.routes import fake_bp
from tests.fake_service.store import ReviewStore


def create_app(config: dict[str, Any] | None = None) -> Flask:
    """
    Create the fake service.

    Args:
        config: Optional overrides.  ``SEED`` fixes reviewer selection;
            ``FAIL_STATS`` makes ``/stats/assignments`` return 500.
    """
    app = Flask(__name__)
    app.config.update(TESTING=True, SEED=None, FAIL_STATS=False)
    if config:
        app.config.update(config)

    app.extensions["review_store"] = ReviewStore(seed=app.config["SEED"])
    app.register_blueprint(fake_bp)
    return app
