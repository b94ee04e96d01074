"""
Module for fetching Fleet policies.
Parses each policy's automation once, when the policy is read.
"""

import logging
from typing import List

from fleet_retry_controller.fleetapi.client import FleetClient, require_key
from fleet_retry_controller.utils.exceptions import MalformedResponseError
from fleet_retry_controller.utils.models import Automation, InstallSoftware, Policy, RunScript, Team

GLOBAL_POLICIES_PATH = '/policies'

# Automation field paths, probed in order; the first non-empty value wins.
# Fleet versions differ in where they report a policy's automation.
AUTOMATION_FIELDS = [
    (('run_script', 'id'), RunScript),
    (('automation', 'run_script', 'id'), RunScript),
    (('install_software', 'software_title_id'), InstallSoftware),
    (('automation', 'install_software', 'software_title_id'), InstallSoftware),
]


def get_policies_path(team: Team) -> str:
    """Return the policies endpoint for a team, or the global one."""
    if team.is_global:
        return GLOBAL_POLICIES_PATH
    return f"/teams/{team.id}/policies"


def _lookup(data, path):
    for part in path:
        if not isinstance(data, dict):
            return None
        data = data.get(part)
    return data


def _is_empty(value) -> bool:
    return value is None or value == '' or value == 'null'


def parse_automation(item) -> Automation:
    """Parse the automation configured on a policy.

    Script automation takes precedence when a policy declares both kinds.

    Args:
        item: Policy object from the Fleet API

    Returns:
        RunScript, InstallSoftware, or None when nothing is configured
    """
    for path, variant in AUTOMATION_FIELDS:
        value = _lookup(item, path)
        if not _is_empty(value):
            return variant(value)
    return None


def parse_policy(item, path: str = GLOBAL_POLICIES_PATH) -> Policy:
    """Build a Policy from one element of the 'policies' array.

    Raises:
        MalformedResponseError: If the element has no id
    """
    if not isinstance(item, dict) or item.get('id') is None:
        raise MalformedResponseError(f"Policy entry without an id: {item!r}", method='GET', path=path)
    return Policy(id=item['id'], name=str(item.get('name') or ''), automation=parse_automation(item))


def get_policies(client: FleetClient, team: Team) -> List[Policy]:
    """
    Fetch the policies of a team (or the global policies).

    Args:
        client: Fleet API client
        team: Team to fetch policies for; the global team uses the global endpoint

    Returns:
        list: Policy objects with parsed automations

    Raises:
        ApiError: If the request fails or the response has no 'policies' array
    """
    path = get_policies_path(team)
    response = client.get(path)
    items = require_key(response, 'policies', path)
    if not isinstance(items, list):
        raise MalformedResponseError("'policies' is not a list", method='GET', path=path)

    policies = [parse_policy(item, path) for item in items]
    logging.info("Found %s policies in team %s", len(policies), team.name)
    for policy in policies:
        logging.debug("Policy '%s' (ID: %s): automation=%s", policy.name, policy.id, policy.automation)
    return policies
