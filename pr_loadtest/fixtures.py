"""
Fixture provisioning for the load scenario.

Before the timed phase starts the harness creates ``team_count`` teams of
``users_per_team`` active members each.  User ids run ``u1, u2, ...``
across all teams so every id is globally unique, and the resulting
:class:`~pr_loadtest.models.ScenarioContext` tells iterations how many
authors they can draw from.

Re-running setup against a service that already holds the teams is fine:
``400 TEAM_EXISTS`` is an expected outcome.  Server errors and transport
failures are recorded as business failures but do not stop the run.
"""

from __future__ import annotations

import logging

from pr_loadtest.calls import perform_call
from pr_loadtest.client import ReviewerServiceClient
from pr_loadtest.metrics import MetricsCollector
from pr_loadtest.models import CallType, Member, ScenarioContext, Team, user_id_for

logger = logging.getLogger(__name__)


def build_teams(team_count: int, users_per_team: int) -> list[Team]:
    """
    Build the fixture teams without sending anything.

    Args:
        team_count: Number of teams (``team_1`` .. ``team_<n>``).
        users_per_team: Members per team.

    Returns:
        Teams whose member ids increase monotonically across teams.

    Raises:
        ValueError: If either count is below 1.
    """
    if team_count < 1 or users_per_team < 1:
        raise ValueError("team_count and users_per_team must both be >= 1")

    teams: list[Team] = []
    next_user = 1
    for team_number in range(1, team_count + 1):
        members = []
        for _ in range(users_per_team):
            members.append(
                Member(
                    user_id=user_id_for(next_user),
                    username=f"user_{next_user}",
                    is_active=True,
                )
            )
            next_user += 1
        teams.append(Team(team_name=f"team_{team_number}", members=tuple(members)))
    return teams


class FixtureProvisioner:
    """Submits the fixture teams and returns the shared scenario context."""

    def __init__(self, client: ReviewerServiceClient, collector: MetricsCollector) -> None:
        self.client = client
        self.collector = collector

    def provision(self, team_count: int, users_per_team: int) -> ScenarioContext:
        teams = build_teams(team_count, users_per_team)
        hard_failures = 0

        for team in teams:
            outcome, _ = perform_call(
                CallType.TEAM_ADD,
                lambda team=team: self.client.add_team(team),
                self.collector,
            )
            if outcome.is_business_failure:
                hard_failures += 1
                logger.warning(
                    "Setup: %s could not be created (status=%s, error=%s)",
                    team.team_name,
                    outcome.status_code,
                    outcome.error,
                )

        total_users = team_count * users_per_team
        if hard_failures:
            logger.warning(
                "Setup finished with %d/%d failed team requests; continuing with best-effort data",
                hard_failures,
                len(teams),
            )
        else:
            logger.info("Setup finished: %d teams, %d users", len(teams), total_users)

        return ScenarioContext(total_users=total_users)
