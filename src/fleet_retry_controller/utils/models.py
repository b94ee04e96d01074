"""Domain models for business logic."""
from dataclasses import dataclass, field
from typing import Dict, Optional, Union

from fleet_retry_controller.utils.constants import (
    GLOBAL_TEAM_NAME,
    GLOBAL_TEAM_SCOPE,
    RESPONSE_UNKNOWN,
)

CACHE_FIELD_DELIMITER = '|'


@dataclass(frozen=True)
class Team:
    """A Fleet team.

    Attributes:
        id: Fleet team id, or None for the ungrouped (global) scope
        name: Team name as shown in Fleet
    """
    id: Optional[int]
    name: str

    @property
    def is_global(self) -> bool:
        return self.id is None

    @property
    def scope(self) -> str:
        """Team component of a cache key."""
        return GLOBAL_TEAM_SCOPE if self.is_global else str(self.id)


GLOBAL_TEAM = Team(id=None, name=GLOBAL_TEAM_NAME)


@dataclass(frozen=True)
class RunScript:
    """Policy automation that runs a script on the failing host."""
    script_id: int


@dataclass(frozen=True)
class InstallSoftware:
    """Policy automation that installs a software title on the failing host."""
    software_title_id: int


Automation = Optional[Union[RunScript, InstallSoftware]]


@dataclass(frozen=True)
class Policy:
    """A Fleet policy with its parsed automation.

    Attributes:
        id: Fleet policy id
        name: Policy name
        automation: RunScript, InstallSoftware, or None when nothing is configured
    """
    id: int
    name: str
    automation: Automation = None

    @property
    def has_automation(self) -> bool:
        return self.automation is not None


@dataclass
class Host:
    """A Fleet host with its per-policy compliance responses.

    Attributes:
        id: Fleet host id
        hostname: Host name
        policy_responses: Map of policy id to 'pass', 'fail' or 'unknown'
    """
    id: int
    hostname: str = ''
    policy_responses: Dict[int, str] = field(default_factory=dict)

    def policy_response(self, policy_id: int) -> str:
        return self.policy_responses.get(policy_id, RESPONSE_UNKNOWN)


@dataclass(frozen=True)
class CacheEntry:
    """Last remediation attempt recorded for one cache key.

    Attributes:
        key: Composite host/policy/team key
        last_attempt: Unix time of the most recent attempt
        attempts: Number of attempts made so far
    """
    key: str
    last_attempt: int
    attempts: int


def make_cache_key(host_id, policy_id, team: Team) -> str:
    """Build the composite cache key for one remediation target.

    Ids are integers, so ':' separated fields cannot collide across
    distinct (host, policy, team) triples.
    """
    return f"{host_id}:{policy_id}:{team.scope}"


def validate_cache_key(key: str) -> str:
    """Reject keys that would break the line-oriented store format."""
    if not key or CACHE_FIELD_DELIMITER in key or '\n' in key or '\r' in key:
        raise ValueError(f"Invalid cache key: {key!r}")
    return key
