"""CLI context and configuration."""
from dataclasses import dataclass, field
from typing import Any, Optional

from rich.console import Console

from fleet_retry_controller.remediation.statistics import RunStatistics


@dataclass
class CliContext:
    """Context object for CLI operations.

    This replaces global state variables and provides a clean way to pass
    configuration and state through the application.

    Attributes:
        console: Rich Console instance for output
        verbose: Whether verbose output is enabled
        stats: Statistics for the current run, shown even when the run is cut short
        config: Loaded YAML configuration
        settings: Resolved RemediationSettings
        cache: Connected cache adapter
        client: Fleet API client
    """
    console: Console
    verbose: bool = False
    stats: RunStatistics = field(default_factory=RunStatistics)
    config: Optional[dict] = None
    settings: Any = None
    cache: Any = None
    client: Any = None

    def log_verbose(self, message: str):
        """Print verbose messages if verbose mode is enabled.

        Args:
            message: The message to print
        """
        if self.verbose:
            self.console.print(f"[dim]{message}[/dim]")

    def close(self):
        """Release the cache and the HTTP session."""
        if self.client is not None:
            self.client.close()
        if self.cache is not None:
            self.cache.close()
