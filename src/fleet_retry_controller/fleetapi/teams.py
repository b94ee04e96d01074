"""Fleet team listing."""
import logging
from typing import List

from fleet_retry_controller.fleetapi.client import FleetClient, require_key
from fleet_retry_controller.utils.exceptions import MalformedResponseError
from fleet_retry_controller.utils.models import Team

TEAMS_PATH = '/teams'


def parse_team(item) -> Team:
    """Build a Team from one element of the 'teams' array.

    Raises:
        MalformedResponseError: If the element has no id
    """
    if not isinstance(item, dict) or item.get('id') is None:
        raise MalformedResponseError(f"Team entry without an id: {item!r}", method='GET', path=TEAMS_PATH)
    return Team(id=item['id'], name=str(item.get('name') or ''))


def get_teams(client: FleetClient) -> List[Team]:
    """Fetch all teams from Fleet.

    Args:
        client: Fleet API client

    Returns:
        list: Team objects in server order

    Raises:
        ApiError: If the request fails or the response has no 'teams' array
    """
    response = client.get(TEAMS_PATH)
    items = require_key(response, 'teams', TEAMS_PATH)
    if not isinstance(items, list):
        raise MalformedResponseError("'teams' is not a list", method='GET', path=TEAMS_PATH)

    teams = [parse_team(item) for item in items]
    logging.info("Found %s teams", len(teams))
    return teams
