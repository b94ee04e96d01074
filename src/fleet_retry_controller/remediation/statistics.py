"""Run statistics for the remediation controller."""
import logging
from dataclasses import asdict, dataclass, fields
from typing import Dict

from rich.console import Console
from rich.table import Table

from fleet_retry_controller.utils.constants import Style


logger = logging.getLogger(__name__)

STATISTIC_LABELS = {
    'teams_processed': 'Teams processed',
    'policies_processed': 'Policies processed',
    'hosts_processed': 'Hosts processed',
    'scripts_triggered': 'Scripts triggered',
    'software_triggered': 'Software installs triggered',
    'skipped_backoff': 'Skipped (backoff)',
    'skipped_max_retries': 'Skipped (max retries)',
    'api_errors': 'API errors',
}


@dataclass
class RunStatistics:
    """Counters for a single controller run.

    Counters only grow. The dispatcher builds a delta per host and folds it
    into the run's statistics with merge(), so there is no hidden shared state.
    """
    teams_processed: int = 0
    policies_processed: int = 0
    hosts_processed: int = 0
    scripts_triggered: int = 0
    software_triggered: int = 0
    skipped_backoff: int = 0
    skipped_max_retries: int = 0
    api_errors: int = 0

    def record(self, **counters) -> 'RunStatistics':
        """Increment the named counters.

        Raises:
            ValueError: For an unknown counter or a negative increment
        """
        for name, amount in counters.items():
            if name not in STATISTIC_LABELS:
                raise ValueError(f"Unknown statistic: {name}")
            if amount < 0:
                raise ValueError(f"Statistics never decrease: {name}={amount}")
            setattr(self, name, getattr(self, name) + amount)
        return self

    def merge(self, other: 'RunStatistics') -> 'RunStatistics':
        """Fold another statistics object (usually a per-host delta) into this one."""
        for item in fields(self):
            setattr(self, item.name, getattr(self, item.name) + getattr(other, item.name))
        return self

    @property
    def triggered(self) -> int:
        return self.scripts_triggered + self.software_triggered

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)

    def log_summary(self, log: logging.Logger = logger) -> None:
        """Write the counters to the log, one line each."""
        log.info("=== Execution Statistics ===")
        for name, label in STATISTIC_LABELS.items():
            log.info(f"{label}: {getattr(self, name)}")
        log.info(f"Total automations triggered: {self.triggered}")


def render_statistics(stats: RunStatistics, console: Console, title: str = "Execution Statistics") -> None:
    """Print the counters as a rich table.

    Args:
        stats: Statistics to display
        console: Rich console to print to
        title: Table title
    """
    table = Table(title=title, title_style=Style.BOLD)
    table.add_column("Statistic", style=Style.CYAN)
    table.add_column("Count", justify="right")

    for name, label in STATISTIC_LABELS.items():
        value = getattr(stats, name)
        style = None
        if name == 'api_errors' and value:
            style = Style.RED
        elif name in ('scripts_triggered', 'software_triggered') and value:
            style = Style.GREEN
        elif name.startswith('skipped_') and value:
            style = Style.YELLOW
        table.add_row(label, str(value), style=style)

    console.print(table)
