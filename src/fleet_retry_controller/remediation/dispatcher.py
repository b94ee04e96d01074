"""Remediation dispatcher: walks teams, policies and failing hosts."""
import logging
from typing import Callable, Optional

from fleet_retry_controller.factories.adapters.cache_adapter import CacheAdapter
from fleet_retry_controller.fleetapi.automations import trigger_automation
from fleet_retry_controller.fleetapi.client import FleetClient
from fleet_retry_controller.fleetapi.hosts import Hosts
from fleet_retry_controller.fleetapi.policies import get_policies
from fleet_retry_controller.fleetapi.teams import get_teams
from fleet_retry_controller.remediation.backoff import BackoffAction, decide
from fleet_retry_controller.remediation.statistics import RunStatistics
from fleet_retry_controller.utils.config import RemediationSettings
from fleet_retry_controller.utils.constants import RESPONSE_FAIL
from fleet_retry_controller.utils.core import epoch_now
from fleet_retry_controller.utils.exceptions import ApiConnectionError, ApiError
from fleet_retry_controller.utils.filters import should_process_policy, should_process_team
from fleet_retry_controller.utils.models import GLOBAL_TEAM, Host, Policy, RunScript, Team, make_cache_key


logger = logging.getLogger(__name__)


class RemediationDispatcher:
    """Drive one remediation pass over every team, policy and failing host.

    The Global scope is processed first, then each team in server order.
    API failures below the team listing are counted and skipped; only a
    failure to list teams ends the run.
    """

    def __init__(self, client: FleetClient, cache: CacheAdapter, settings: RemediationSettings,
                 clock: Callable[[], int] = epoch_now):
        """Initialize dispatcher.

        Args:
            client: Fleet API client
            cache: Connected cache adapter
            settings: Resolved configuration
            clock: Returns the current epoch time
        """
        self.client = client
        self.cache = cache
        self.settings = settings
        self.clock = clock

    def run(self, stats: Optional[RunStatistics] = None) -> RunStatistics:
        """Run one full pass.

        Counters are folded into stats as they are collected, so the caller
        still holds partial numbers if the run is interrupted.

        Args:
            stats: Statistics object to update (a new one if omitted)

        Returns:
            RunStatistics: The updated statistics

        Raises:
            ApiConnectionError: If the team listing cannot be fetched
        """
        stats = stats if stats is not None else RunStatistics()
        if self.settings.dry_run:
            logger.info("DRY RUN MODE - No changes will be made")

        logger.info("Fetching teams...")
        try:
            teams = get_teams(self.client)
        except ApiError as e:
            stats.record(api_errors=1)
            raise ApiConnectionError(f"Failed to fetch teams from Fleet: {e}") from e

        if self.settings.include_global:
            self.process_team(GLOBAL_TEAM, stats)

        for team in teams:
            self.process_team(team, stats)

        return stats

    def process_team(self, team: Team, stats: RunStatistics) -> None:
        if not should_process_team(team.name, self.settings.teams):
            logger.debug("Skipping team '%s' (not in team filter)", team.name)
            return

        stats.record(teams_processed=1)
        logger.info("Processing team: %s (ID: %s)", team.name, team.scope)

        try:
            policies = get_policies(self.client, team)
        except ApiError as e:
            logger.error("Failed to fetch policies for team %s: %s", team.name, e)
            stats.record(api_errors=1)
            return

        for policy in policies:
            if not should_process_policy(policy.name, self.settings.exclude_policies):
                logger.debug("Skipping excluded policy '%s'", policy.name)
                continue

            stats.record(policies_processed=1)
            if not policy.has_automation:
                logger.debug("Policy '%s' has no automation configured", policy.name)
                continue

            self.process_policy(team, policy, stats)

    def process_policy(self, team: Team, policy: Policy, stats: RunStatistics) -> None:
        """Page through the team's hosts and remediate those failing the policy."""
        logger.info("Processing policy: %s (ID: %s)", policy.name, policy.id)

        failing = 0
        hosts = Hosts(self.client, team, per_page=self.settings.per_page)
        try:
            for page in hosts.pages():
                for host in page:
                    if host.policy_response(policy.id) != RESPONSE_FAIL:
                        continue
                    failing += 1
                    stats.merge(self.process_host(team, policy, host))
        except ApiError as e:
            logger.error("Failed to fetch hosts for policy '%s' in team %s: %s", policy.name, team.name, e)
            stats.record(api_errors=1)

        logger.info("Processed %s failing hosts for policy '%s'", failing, policy.name)

    def process_host(self, team: Team, policy: Policy, host: Host) -> RunStatistics:
        """Decide and, if due, trigger remediation for one failing host.

        Returns:
            RunStatistics: Counters contributed by this host
        """
        delta = RunStatistics(hosts_processed=1)
        key = make_cache_key(host.id, policy.id, team)
        entry = self.cache.get(key)
        now = self.clock()

        decision = decide(entry, now, self.settings.max_retries, self.settings.backoff_schedule)

        if decision.action is BackoffAction.MAX_RETRIES_REACHED:
            logger.debug("Host %s reached max retries (%s) for policy %s",
                         host.id, self.settings.max_retries, policy.id)
            return delta.record(skipped_max_retries=1)

        if decision.action is BackoffAction.WAIT_BACKOFF:
            logger.debug("Host %s in backoff period for policy %s (%ss remaining)",
                         host.id, policy.id, decision.remaining_seconds)
            return delta.record(skipped_backoff=1)

        logger.info("Host %s (%s) attempt %s/%s for policy '%s'",
                    host.id, host.hostname, decision.attempt, self.settings.max_retries, policy.name)

        try:
            trigger_automation(self.client, host.id, policy.automation, policy.name)
        except ApiError as e:
            logger.warning("Failed to trigger automation on host %s for policy '%s': %s", host.id, policy.name, e)
            delta.record(api_errors=1)
        else:
            if not self.settings.dry_run:
                if isinstance(policy.automation, RunScript):
                    delta.record(scripts_triggered=1)
                else:
                    delta.record(software_triggered=1)

        # Attempts are counted whether or not Fleet accepted the trigger
        if not self.settings.dry_run:
            self.cache.upsert(key, self.clock(), decision.attempt)

        return delta
