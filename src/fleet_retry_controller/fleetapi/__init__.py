"""FleetAPI module for Fleet REST API interactions."""

from fleet_retry_controller.fleetapi.client import FleetClient, require_key
from fleet_retry_controller.fleetapi.rate_limiter import RateLimitConfig, RateLimiter, RetryableError
from fleet_retry_controller.fleetapi.teams import get_teams
from fleet_retry_controller.fleetapi.policies import get_policies, get_policies_path, parse_automation
from fleet_retry_controller.fleetapi.hosts import Hosts
from fleet_retry_controller.fleetapi.automations import install_software, run_script, trigger_automation

__all__ = [
    # Client
    'FleetClient',
    'require_key',
    'RateLimitConfig',
    'RateLimiter',
    'RetryableError',
    # Teams
    'get_teams',
    # Policies
    'get_policies',
    'get_policies_path',
    'parse_automation',
    # Host classes
    'Hosts',
    # Automations
    'run_script',
    'install_software',
    'trigger_automation',
]
