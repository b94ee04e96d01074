"""Triggers for policy automations (script runs and software installs)."""
import logging
from typing import Optional

from fleet_retry_controller.fleetapi.client import FleetClient
from fleet_retry_controller.utils.models import Automation, InstallSoftware, RunScript

SCRIPT_RUN_PATH = '/scripts/run'


def software_install_path(host_id, software_title_id) -> str:
    return f"/hosts/{host_id}/software/{software_title_id}/install"


def run_script(client: FleetClient, host_id, script_id) -> Optional[dict]:
    """Queue a script run on a host.

    Returns:
        Response body, or None in dry-run mode

    Raises:
        ApiError: If Fleet does not accept the request
    """
    return client.post(SCRIPT_RUN_PATH, {'host_id': host_id, 'script_id': script_id})


def install_software(client: FleetClient, host_id, software_title_id) -> Optional[dict]:
    """Queue a software install on a host.

    Returns:
        Response body, or None in dry-run mode

    Raises:
        ApiError: If Fleet does not accept the request
    """
    return client.post(software_install_path(host_id, software_title_id), {})


def trigger_automation(client: FleetClient, host_id, automation: Automation, policy_name: str = '') -> Optional[dict]:
    """Trigger the automation variant configured for a policy on one host.

    Raises:
        ApiError: If Fleet does not accept the request
        ValueError: If the policy has no automation
    """
    if isinstance(automation, RunScript):
        logging.info("Running script %s on host %s for policy '%s'", automation.script_id, host_id, policy_name)
        return run_script(client, host_id, automation.script_id)
    if isinstance(automation, InstallSoftware):
        logging.info("Installing software %s on host %s for policy '%s'",
                     automation.software_title_id, host_id, policy_name)
        return install_software(client, host_id, automation.software_title_id)
    raise ValueError(f"Policy '{policy_name}' has no automation to trigger")
