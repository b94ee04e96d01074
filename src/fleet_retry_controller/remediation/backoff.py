"""Backoff decisions for remediation retries.

Pure functions: given the cache entry for a target, the current time and
the configured schedule, decide whether to trigger again now, keep waiting,
or give up. Nothing here touches the cache or the network.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from fleet_retry_controller.utils.constants import DEFAULT_BACKOFF_SCHEDULE
from fleet_retry_controller.utils.config import validate_positive_int
from fleet_retry_controller.utils.exceptions import ConfigurationError
from fleet_retry_controller.utils.models import CacheEntry


class BackoffAction(Enum):
    """Outcome of a backoff decision."""
    PROCEED = "proceed"
    WAIT_BACKOFF = "wait_backoff"
    MAX_RETRIES_REACHED = "max_retries_reached"


@dataclass(frozen=True)
class BackoffDecision:
    """Decision for a single remediation target.

    Attributes:
        action: What the dispatcher should do
        remaining_seconds: Time left in the backoff window (WAIT_BACKOFF only)
        attempt: Attempt number a PROCEED would make (1 for a first attempt)
    """
    action: BackoffAction
    remaining_seconds: int = 0
    attempt: int = 0


def get_backoff_seconds(attempts: int, schedule: Sequence[int] = DEFAULT_BACKOFF_SCHEDULE) -> int:
    """Return the wait required after the given number of attempts.

    The index attempts - 1 is clamped to the schedule: counts below 1 (a
    damaged record) use schedule[0], and counts past the end reuse the last
    (largest) interval.

    Args:
        attempts: Attempts recorded for the target
        schedule: Backoff intervals in seconds

    Returns:
        Backoff window in seconds, 0 for an empty schedule
    """
    if not schedule:
        return 0
    index = max(0, min(attempts - 1, len(schedule) - 1))
    return schedule[index]


def decide(entry: Optional[CacheEntry], now: int, max_retries: int,
           schedule: Sequence[int] = DEFAULT_BACKOFF_SCHEDULE) -> BackoffDecision:
    """Decide whether a remediation target may be retried now.

    Args:
        entry: Cache entry for the target, or None if never attempted
        now: Current epoch time
        max_retries: Maximum number of attempts per target
        schedule: Backoff intervals in seconds

    Returns:
        BackoffDecision
    """
    if entry is None:
        return BackoffDecision(BackoffAction.PROCEED, attempt=1)

    if entry.attempts >= max_retries:
        return BackoffDecision(BackoffAction.MAX_RETRIES_REACHED)

    backoff_seconds = get_backoff_seconds(entry.attempts, schedule)
    elapsed = now - entry.last_attempt
    if elapsed < backoff_seconds:
        return BackoffDecision(BackoffAction.WAIT_BACKOFF, remaining_seconds=backoff_seconds - elapsed)

    return BackoffDecision(BackoffAction.PROCEED, attempt=max(entry.attempts, 0) + 1)


def validate_max_retries(value) -> int:
    """Validate max_retries as a positive integer.

    Raises:
        ConfigurationError: If value is not a positive integer
    """
    return validate_positive_int(value, "max-retries")


def validate_schedule(schedule) -> list:
    """Validate a backoff schedule as a non-empty list of positive integers.

    Accepts a list or a comma-separated string.

    Raises:
        ConfigurationError: If the schedule is empty or has a non-positive entry
    """
    if isinstance(schedule, str):
        schedule = [item for item in schedule.split(',') if item.strip()]
    if not isinstance(schedule, (list, tuple)) or not schedule:
        raise ConfigurationError(f"Invalid backoff schedule: {schedule!r}")

    return [validate_positive_int(item, "backoff interval") for item in schedule]
