import logging
from typing import Iterator, List

from fleet_retry_controller.fleetapi.client import FleetClient, require_key
from fleet_retry_controller.utils.constants import DEFAULT_HOSTS_PER_PAGE, RESPONSE_UNKNOWN
from fleet_retry_controller.utils.exceptions import MalformedResponseError
from fleet_retry_controller.utils.models import Host, Team

HOSTS_PATH = '/hosts'


def parse_host(item) -> Host:
    """Build a Host from one element of the 'hosts' array.

    Raises:
        MalformedResponseError: If the element has no id
    """
    if not isinstance(item, dict) or item.get('id') is None:
        raise MalformedResponseError(f"Host entry without an id: {item!r}", method='GET', path=HOSTS_PATH)

    responses = {}
    for policy in item.get('policies') or []:
        if isinstance(policy, dict) and policy.get('id') is not None:
            responses[policy['id']] = policy.get('response') or RESPONSE_UNKNOWN

    return Host(id=item['id'], hostname=str(item.get('hostname') or ''), policy_responses=responses)


class Hosts:
    """
    Hosts class for paging through Fleet hosts.

    Uses page-number pagination: page 0 first, a fixed page size, and the
    first empty page ends the listing.
    """

    def __init__(self, client: FleetClient, team: Team, per_page: int = DEFAULT_HOSTS_PER_PAGE):
        """
        Initialize Hosts instance.

        Args:
            client: Fleet API client
            team: Team to scope the listing to; the global team lists all hosts
            per_page: Page size
        """
        self.client = client
        self.team = team
        self.per_page = per_page

    def page_params(self, page: int) -> dict:
        params = {'page': page, 'per_page': self.per_page}
        if not self.team.is_global:
            params['team_id'] = self.team.id
        return params

    def get_page(self, page: int) -> List[Host]:
        """Fetch one page of hosts.

        Raises:
            ApiError: If the request fails or the response has no 'hosts' array
        """
        response = self.client.get(HOSTS_PATH, params=self.page_params(page))
        items = require_key(response, 'hosts', HOSTS_PATH)
        if not isinstance(items, list):
            raise MalformedResponseError("'hosts' is not a list", method='GET', path=HOSTS_PATH)
        return [parse_host(item) for item in items]

    def pages(self) -> Iterator[List[Host]]:
        """
        Yield pages of hosts until the server returns an empty page.

        Errors propagate to the caller, which decides whether to stop.
        """
        page = 0
        total = 0
        while True:
            hosts = self.get_page(page)
            if not hosts:
                break

            total += len(hosts)
            logging.debug("Page %s: Fetched %s hosts for team %s (total so far: %s)",
                          page, len(hosts), self.team.name, total)
            yield hosts
            page += 1
