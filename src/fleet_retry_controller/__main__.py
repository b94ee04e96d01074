#!/usr/bin/env python3
"""
Fleet Policy Remediation Controller CLI Tool

Re-triggers policy automations on hosts that are still failing them,
with a persistent retry cache and backoff between attempts.
"""

import logging
import signal
import sys

from rich.console import Console

from fleet_retry_controller import __version__
from fleet_retry_controller.cli.cli_setup import parse_arguments, setup_environment
from fleet_retry_controller.cli.context import CliContext
from fleet_retry_controller.remediation.dispatcher import RemediationDispatcher
from fleet_retry_controller.remediation.statistics import render_statistics
from fleet_retry_controller.utils.constants import Style
from fleet_retry_controller.utils.exceptions import ApiConnectionError, CacheError, ConfigurationError


logger = logging.getLogger(__name__)


def _raise_keyboard_interrupt(signum, frame):
    """Treat SIGTERM like Ctrl+C so the statistics are still reported."""
    raise KeyboardInterrupt()


def _report_statistics(ctx):
    """Log and print the statistics collected so far."""
    ctx.stats.log_summary()
    render_statistics(ctx.stats, ctx.console)
    if ctx.verbose and ctx.client is not None:
        metrics = ctx.client.rate_limiter.get_metrics()
        ctx.console.print(
            f"[{Style.DIM}]API requests: {metrics['total_requests']} "
            f"(retried: {metrics['retried_requests']}, failed: {metrics['failed_requests']}, "
            f"wait: {metrics['total_wait_time']:.1f}s)[/{Style.DIM}]"
        )


def _handle_error(error, error_type, ctx, exit_code=1):
    """Handle error reporting."""
    ctx.console.print(f"[bold red]{error_type}:[/bold red] {error}")
    if ctx.verbose and hasattr(error, '__traceback__'):
        import traceback
        ctx.console.print(traceback.format_exc())
    sys.exit(exit_code)


def _handle_keyboard_interrupt(ctx):
    """Handle KeyboardInterrupt (Ctrl+C or SIGTERM) gracefully."""
    ctx.console.print("\n[yellow]Received interrupt signal, shutting down gracefully...[/yellow]")
    logger.info("Received interrupt signal, shutting down gracefully...")
    _report_statistics(ctx)
    sys.exit(130)


def run(args, ctx):
    """Set up the environment and run one remediation pass."""
    setup_environment(args, ctx)

    logger.info("Starting Fleet Policy Remediation Controller v%s", __version__)
    dispatcher = RemediationDispatcher(ctx.client, ctx.cache, ctx.settings)
    dispatcher.run(ctx.stats)

    _report_statistics(ctx)
    logger.info("Fleet Policy Remediation Controller completed successfully")


def main(argv=None):
    """Main CLI entry point - orchestrates the remediation run."""
    args = parse_arguments(argv)
    ctx = CliContext(console=Console(), verbose=args.verbose)
    signal.signal(signal.SIGTERM, _raise_keyboard_interrupt)

    try:
        run(args, ctx)

    except ConfigurationError as e:
        _handle_error(e, "Configuration Error", ctx)

    except CacheError as e:
        _handle_error(e, "Cache Error", ctx)

    except ApiConnectionError as e:
        logger.error("%s", e)
        _report_statistics(ctx)
        _handle_error(e, "API Connection Error", ctx)

    except KeyboardInterrupt:
        _handle_keyboard_interrupt(ctx)

    except Exception as e:  # pylint: disable=broad-exception-caught
        _handle_error(e, "Unexpected Error", ctx)

    finally:
        ctx.close()


if __name__ == "__main__":
    main()
