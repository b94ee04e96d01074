"""Filtering logic for teams and policies.

Pure business logic for the caller-supplied allow and deny lists.
Matching is exact and case-sensitive; there is no glob or regex support.
"""
from typing import List, Optional


def parse_name_list(value: Optional[str]) -> List[str]:
    """Split a comma-separated name list, trimming whitespace.

    Args:
        value: Comma-separated names, or None

    Returns:
        List of non-empty trimmed names
    """
    if not value:
        return []
    return [name.strip() for name in value.split(',') if name.strip()]


def should_process_team(team_name: str, allow_list: Optional[str]) -> bool:
    """Check if a team passes the team allow-list.

    Args:
        team_name: Name of the team
        allow_list: Comma-separated team names, or empty/None for all teams

    Returns:
        True if no allow-list is set or the name is in it
    """
    allowed = parse_name_list(allow_list)
    if not allowed:
        return True
    return team_name in allowed


def should_process_policy(policy_name: str, deny_list: Optional[str]) -> bool:
    """Check if a policy passes the policy deny-list.

    Args:
        policy_name: Name of the policy
        deny_list: Comma-separated policy names to exclude, or empty/None

    Returns:
        True unless the name is in the deny-list
    """
    denied = parse_name_list(deny_list)
    if not denied:
        return True
    return policy_name not in denied
