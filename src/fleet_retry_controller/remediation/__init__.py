"""Remediation core: backoff decisions, statistics and the dispatcher.

The dispatcher is imported from remediation.dispatcher directly; it pulls
in the Fleet API client, which the lighter modules here do not need.
"""

from fleet_retry_controller.remediation.backoff import BackoffAction, BackoffDecision, decide, get_backoff_seconds
from fleet_retry_controller.remediation.statistics import RunStatistics, render_statistics

__all__ = [
    'BackoffAction',
    'BackoffDecision',
    'decide',
    'get_backoff_seconds',
    'RunStatistics',
    'render_statistics',
]
