"""
Integration tests for the load harness.

Tests serve the Flask fake service on a real port and demonstrate:
- Contract checks of the fake's status codes and body shapes
- End-to-end runs through setup, scenario and threshold verdict
- Failure injection (5xx responses, unreachable host)
"""
