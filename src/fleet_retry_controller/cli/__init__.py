"""CLI module for fleet-retry-controller."""

from fleet_retry_controller.cli.cli_setup import build_settings, parse_arguments, setup_environment
from fleet_retry_controller.cli.context import CliContext

__all__ = [
    'parse_arguments',
    'build_settings',
    'setup_environment',
    'CliContext',
]
