"""
Test suite for the PR reviewer-service load harness.

This package contains:
- unit/: per-module tests with scripted HTTP sessions and a fake clock
- integration/: full runs against a live Flask fake of the service
- fake_service/: the Flask fake itself
"""
