"""
Load harness configuration.

Follows the same class-per-environment pattern as the services under
test: a base :class:`Config` holds the defaults, profile subclasses
override what differs, and :func:`get_config` picks a class from the
``LOADTEST_ENV`` variable.  The runner never reads the classes directly;
:meth:`LoadSettings.from_config` applies environment overrides on top of
the chosen class and returns a validated, immutable :class:`LoadSettings`.

Key Concepts Demonstrated:
- Class-based configuration with inheritance for shared defaults
- Environment-variable overrides for CI (12-factor style)
- Fail-fast validation before any request is sent
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

# Project root, used to resolve the default thresholds file.
BASE_DIR = Path(__file__).resolve().parent.parent

DEFAULT_THRESHOLDS_FILE = BASE_DIR / "thresholds.yml"


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be numeric, got {raw!r}") from exc


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _env_seed(default: int | None = None) -> int | None:
    raw = os.environ.get("RANDOM_SEED")
    if raw is None or raw.strip() == "":
        return default
    return _env_int("RANDOM_SEED", 0)


class Config:
    """
    Default workload: 5 iterations/s for 60 s against 20 teams of 10 users.

    Attributes are defaults only.  An environment variable with the same
    name overrides each of them when :meth:`LoadSettings.from_config`
    runs, unless the profile sets ``READ_ENVIRONMENT`` to False.
    """

    READ_ENVIRONMENT: bool = True

    BASE_URL: str = "http://localhost:8080"

    # Scenario shape
    ARRIVAL_RATE: float = 5.0
    DURATION_SECONDS: float = 60.0
    PRE_ALLOCATED_VUS: int = 10
    MAX_VUS: int = 20
    GRACEFUL_STOP: float = 30.0
    ITERATION_PAUSE: float = 0.1

    # Fixture data
    TEAM_COUNT: int = 20
    USERS_PER_TEAM: int = 10

    # Transport
    REQUEST_TIMEOUT: float = 10.0

    THRESHOLDS_FILE: str = str(DEFAULT_THRESHOLDS_FILE)
    RANDOM_SEED: int | None = None


class SmokeConfig(Config):
    """A few seconds of light traffic to check the harness and service wiring."""

    ARRIVAL_RATE: float = 1.0
    DURATION_SECONDS: float = 5.0
    PRE_ALLOCATED_VUS: int = 1
    MAX_VUS: int = 2
    TEAM_COUNT: int = 2
    USERS_PER_TEAM: int = 3


class TestingConfig(Config):
    """
    Test-suite overrides.

    Points at a non-routable host so nothing leaks to a real service,
    keeps timeouts short and ignores the load-shape environment
    variables a CI job may have exported.
    """

    READ_ENVIRONMENT: bool = False

    BASE_URL: str = os.environ.get("TEST_BASE_URL", "http://reviewer-service.test")
    ARRIVAL_RATE: float = 10.0
    DURATION_SECONDS: float = 1.0
    PRE_ALLOCATED_VUS: int = 2
    MAX_VUS: int = 4
    GRACEFUL_STOP: float = 5.0
    ITERATION_PAUSE: float = 0.0
    TEAM_COUNT: int = 2
    USERS_PER_TEAM: int = 5
    REQUEST_TIMEOUT: float = 1.0
    RANDOM_SEED: int | None = 1234


@dataclass(frozen=True)
class LoadSettings:
    """Validated, immutable settings for one run."""

    base_url: str
    arrival_rate: float
    duration_seconds: float
    pre_allocated_vus: int
    max_vus: int
    graceful_stop: float
    iteration_pause: float
    team_count: int
    users_per_team: int
    request_timeout: float
    thresholds_file: Path
    random_seed: int | None = None

    def __post_init__(self) -> None:
        if not self.base_url:
            raise ValueError("BASE_URL must not be empty")
        if self.arrival_rate <= 0:
            raise ValueError("ARRIVAL_RATE must be > 0")
        if self.duration_seconds <= 0:
            raise ValueError("DURATION_SECONDS must be > 0")
        if self.pre_allocated_vus < 1 or self.max_vus < self.pre_allocated_vus:
            raise ValueError("Require 1 <= PRE_ALLOCATED_VUS <= MAX_VUS")
        if self.team_count < 1 or self.users_per_team < 1:
            raise ValueError("TEAM_COUNT and USERS_PER_TEAM must be >= 1")
        if self.request_timeout <= 0:
            raise ValueError("REQUEST_TIMEOUT must be > 0")
        if self.graceful_stop < 0 or self.iteration_pause < 0:
            raise ValueError("GRACEFUL_STOP and ITERATION_PAUSE must be >= 0")

    @classmethod
    def from_config(cls, config_class: type[Config]) -> LoadSettings:
        """
        Build settings from a profile plus environment overrides.

        Raises:
            ValueError: If an override is not a number or the resulting
                settings are inconsistent.
        """
        read_env = config_class.READ_ENVIRONMENT

        def number(name: str) -> float:
            default = float(getattr(config_class, name))
            return _env_float(name, default) if read_env else default

        def count(name: str) -> int:
            default = int(getattr(config_class, name))
            return _env_int(name, default) if read_env else default

        def text(name: str) -> str:
            default = getattr(config_class, name)
            return os.environ.get(name, default) if read_env else default

        return cls(
            base_url=text("BASE_URL"),
            arrival_rate=number("ARRIVAL_RATE"),
            duration_seconds=number("DURATION_SECONDS"),
            pre_allocated_vus=count("PRE_ALLOCATED_VUS"),
            max_vus=count("MAX_VUS"),
            graceful_stop=number("GRACEFUL_STOP"),
            iteration_pause=number("ITERATION_PAUSE"),
            team_count=count("TEAM_COUNT"),
            users_per_team=count("USERS_PER_TEAM"),
            request_timeout=number("REQUEST_TIMEOUT"),
            thresholds_file=Path(text("THRESHOLDS_FILE")),
            random_seed=_env_seed(config_class.RANDOM_SEED) if read_env else config_class.RANDOM_SEED,
        )


# Lookup table mapping profile names to their config classes.
config = {
    "default": Config,
    "smoke": SmokeConfig,
    "testing": TestingConfig,
}


def get_config(env: str | None = None) -> type[Config]:
    """
    Return the configuration class for a profile.

    Args:
        env: ``"default"``, ``"smoke"`` or ``"testing"``.  When *None*, the
            ``LOADTEST_ENV`` environment variable is consulted, falling back
            to ``"default"``.

    Returns:
        The matching ``Config`` subclass, or ``Config`` if unrecognised.
    """
    if env is None:
        env = os.environ.get("LOADTEST_ENV", "default")
    return config.get(env, config["default"])
