"""CLI setup and initialization functions."""
import argparse
import os

from dotenv import load_dotenv
from rich.console import Console

from fleet_retry_controller import __version__
from fleet_retry_controller.cli.context import CliContext
from fleet_retry_controller.factories.cache_factory import open_cache
from fleet_retry_controller.fleetapi.client import FleetClient
from fleet_retry_controller.fleetapi.rate_limiter import RateLimitConfig, RateLimiter
from fleet_retry_controller.remediation.backoff import validate_max_retries, validate_schedule
from fleet_retry_controller.utils.config import (
    RemediationSettings,
    apply_env_overrides,
    read_config_from_yaml,
    validate_non_negative_float,
    validate_non_negative_int,
    validate_positive_int,
)
from fleet_retry_controller.utils.constants import DEFAULT_ENV_PREFIX
from fleet_retry_controller.utils.exceptions import CacheError, ConfigurationError
from fleet_retry_controller.utils.logger import setup_logging

DEFAULT_CONFIG_PATH = "config/config.yaml"


def validate_max_retries_arg(value: str) -> int:
    """Validate the --max-retries argument.

    Raises:
        argparse.ArgumentTypeError: If the value is not a positive integer
    """
    try:
        return validate_max_retries(value)
    except ConfigurationError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fleet-retry-controller",
        description="Fleet Policy Remediation Controller - Re-trigger policy automations on failing hosts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "environment variables:\n"
            "  FLEET_URL, FLEET_TOKEN     Fleet server URL and API token\n"
            "  FLEET_API_SLEEP            Sleep between API calls in seconds\n"
            "  FLEET_MAX_RETRIES          Maximum retry attempts per host and policy\n"
            "  FLEET_CACHE_FILE           Retry cache file\n"
            "  FLEET_LOG_LEVEL            DEBUG, INFO, WARNING or ERROR\n"
            "\n"
            "examples:\n"
            "  fleet-retry-controller --dry-run\n"
            "  fleet-retry-controller --verbose --log-file=/var/log/fleet-retry.log\n"
            "  fleet-retry-controller --teams=\"Production,Staging\"\n"
            "  fleet-retry-controller --exclude-policies=\"Legacy Script,Broken Install\"\n"
        ),
    )

    # Connection Configuration
    parser.add_argument(
        "-c", "--config",
        default=None,
        help=f"Path to configuration YAML file (default: {DEFAULT_CONFIG_PATH})"
    )
    parser.add_argument(
        "--fleet-url",
        help="Fleet server URL, e.g. https://fleet.example.com (overrides env and config file)"
    )
    parser.add_argument(
        "--fleet-token",
        help="Fleet API token (overrides env and config file)"
    )

    # Remediation options
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Preview actions without executing them"
    )
    parser.add_argument(
        "--teams",
        help="Comma-separated team names to process (the global scope is named 'Global')"
    )
    parser.add_argument(
        "--exclude-policies",
        help="Comma-separated policy names to exclude"
    )
    parser.add_argument(
        "--max-retries",
        type=validate_max_retries_arg,
        help="Maximum retry attempts per host and policy (default: 3)"
    )

    # Output options
    parser.add_argument(
        "--log-file",
        help="Log to file in addition to stderr"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s v{__version__}"
    )
    return parser


def parse_arguments(argv=None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed arguments namespace
    """
    return build_parser().parse_args(argv)


def load_configuration(args, ctx) -> dict:
    """Load configuration, overlay the environment and set up logging.

    A missing default config file is fine; a file named with --config must exist.

    Args:
        args: Parsed command line arguments
        ctx: CLI context

    Returns:
        Configuration dictionary

    Raises:
        ConfigurationError: If an explicitly given config file cannot be loaded
    """
    # Load environment variables from .env file if present
    load_dotenv()

    config_path = args.config or DEFAULT_CONFIG_PATH
    ctx.log_verbose(f"Loading configuration from {config_path}")
    config = read_config_from_yaml(config_path, required=args.config is not None)
    apply_env_overrides(config)

    setup_logging(config, worker_name="fleet-retry", verbose=args.verbose, log_file=args.log_file)
    return config


def _resolve(cli_value, env_name, config_value):
    # Priority: CLI arg > ENV var > config file
    if cli_value:
        return cli_value
    return os.environ.get(env_name) or config_value


def build_settings(args, config) -> RemediationSettings:
    """Resolve CLI arguments, environment and config into RemediationSettings.

    Args:
        args: Parsed command line arguments
        config: Configuration dictionary (environment overrides applied)

    Returns:
        RemediationSettings

    Raises:
        ConfigurationError: If URL or token is missing or a numeric option is invalid
    """
    fleet = config.get('fleet', {})
    api = config.get('api', {})
    remediation = config.get('remediation', {})
    prefix = fleet.get('prefix', DEFAULT_ENV_PREFIX)

    base_url = _resolve(args.fleet_url, prefix + 'URL', fleet.get('url'))
    if not base_url:
        raise ConfigurationError(f"No Fleet URL provided. Use --fleet-url, set {prefix}URL env var, or configure in YAML")
    if not base_url.startswith(('http://', 'https://')):
        raise ConfigurationError(f"Invalid Fleet URL: {base_url} (must start with http:// or https://)")

    token = _resolve(args.fleet_token, prefix + 'TOKEN', fleet.get('token'))
    if not token:
        raise ConfigurationError(f"No Fleet token provided. Use --fleet-token, set {prefix}TOKEN env var, or configure in YAML")

    max_retries = args.max_retries if args.max_retries is not None else remediation.get('max_retries')
    teams = args.teams if args.teams is not None else remediation.get('teams')
    exclude_policies = args.exclude_policies if args.exclude_policies is not None else remediation.get('exclude_policies')

    return RemediationSettings(
        base_url=base_url,
        token=token,
        api_prefix=fleet.get('api_prefix') or '',
        api_sleep=validate_non_negative_float(api.get('sleep'), "api sleep"),
        transport_retries=validate_non_negative_int(api.get('transport_retries'), "transport retries"),
        retry_delay=validate_non_negative_float(api.get('retry_delay'), "retry delay"),
        connect_timeout=validate_positive_int(api.get('connect_timeout'), "connect timeout"),
        timeout=validate_positive_int(api.get('timeout'), "timeout"),
        per_page=validate_positive_int(api.get('per_page'), "per page"),
        max_retries=validate_max_retries(max_retries),
        backoff_schedule=validate_schedule(remediation.get('backoff_schedule')),
        include_global=bool(remediation.get('include_global', True)),
        teams=teams or '',
        exclude_policies=exclude_policies or '',
        dry_run=args.dry_run,
        verbose=args.verbose,
    )


def setup_cache(config, ctx):
    """Setup the retry cache and prune stale entries.

    Raises:
        CacheError: If the cache cannot be opened
    """
    ctx.log_verbose("Opening retry cache...")
    try:
        return open_cache(config)
    except ValueError as e:
        raise CacheError(f"Failed to open cache: {e}") from e


def setup_client(settings: RemediationSettings, ctx) -> FleetClient:
    """Create the Fleet API client with its rate limiter."""
    ctx.log_verbose(f"Connecting to Fleet at {settings.base_url}...")
    rate_limiter = RateLimiter(RateLimitConfig(
        api_sleep=settings.api_sleep,
        retry_attempts=settings.transport_retries,
        retry_delay=settings.retry_delay,
    ))
    return FleetClient(
        settings.base_url,
        settings.token,
        api_prefix=settings.api_prefix,
        rate_limiter=rate_limiter,
        dry_run=settings.dry_run,
        connect_timeout=settings.connect_timeout,
        timeout=settings.timeout,
    )


def setup_environment(args, ctx=None) -> CliContext:
    """Setup complete environment (config, cache, API client).

    Settings are validated before the cache is touched, so a configuration
    error never creates a cache file.

    Args:
        args: Parsed command line arguments
        ctx: Existing CLI context to fill in (a new one if omitted)

    Returns:
        CliContext with all environment setup complete
    """
    if ctx is None:
        ctx = CliContext(console=Console(), verbose=args.verbose)

    ctx.config = load_configuration(args, ctx)
    ctx.settings = build_settings(args, ctx.config)
    ctx.cache = setup_cache(ctx.config, ctx)
    ctx.client = setup_client(ctx.settings, ctx)
    return ctx
