import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

import yaml

from fleet_retry_controller.utils.constants import (
    DEFAULT_API_PREFIX,
    DEFAULT_API_SLEEP,
    DEFAULT_BACKOFF_SCHEDULE,
    DEFAULT_CACHE_MAX_AGE_SECONDS,
    DEFAULT_CACHE_TYPE,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_ENV_PREFIX,
    DEFAULT_FLAT_FILE_PATH,
    DEFAULT_HOSTS_PER_PAGE,
    DEFAULT_MAX_RETRIES,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETRY_DELAY,
    DEFAULT_TINYDB_PATH,
    DEFAULT_TRANSPORT_RETRIES,
)
from fleet_retry_controller.utils.exceptions import ConfigurationError


@dataclass
class RemediationSettings:
    """Resolved configuration consumed by the remediation core.

    Built once from CLI arguments, environment and the YAML file so the
    dispatcher never looks at raw argv or os.environ.
    """
    base_url: str
    token: str
    api_prefix: str = DEFAULT_API_PREFIX
    api_sleep: float = DEFAULT_API_SLEEP
    transport_retries: int = DEFAULT_TRANSPORT_RETRIES
    retry_delay: float = DEFAULT_RETRY_DELAY
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    timeout: float = DEFAULT_REQUEST_TIMEOUT
    per_page: int = DEFAULT_HOSTS_PER_PAGE
    max_retries: int = DEFAULT_MAX_RETRIES
    backoff_schedule: List[int] = field(default_factory=lambda: list(DEFAULT_BACKOFF_SCHEDULE))
    include_global: bool = True
    teams: str = ''
    exclude_policies: str = ''
    dry_run: bool = False
    verbose: bool = False


def _load_config_defaults(config):
    # Ensure we have a dict to work with
    if not isinstance(config, dict):
        config = {}

    # Fleet connection placeholder defaults (keeps keys present)
    config.setdefault('fleet', {})
    fc = config['fleet']
    fc['url'] = fc.get('url', '')
    fc['token'] = fc.get('token', '')
    fc['api_prefix'] = fc.get('api_prefix', DEFAULT_API_PREFIX)
    fc['prefix'] = fc.get('prefix', DEFAULT_ENV_PREFIX)

    # API call defaults
    config.setdefault('api', {})
    api = config['api']
    api['sleep'] = api.get('sleep', DEFAULT_API_SLEEP)
    api['transport_retries'] = api.get('transport_retries', DEFAULT_TRANSPORT_RETRIES)
    api['retry_delay'] = api.get('retry_delay', DEFAULT_RETRY_DELAY)
    api['connect_timeout'] = api.get('connect_timeout', DEFAULT_CONNECT_TIMEOUT)
    api['timeout'] = api.get('timeout', DEFAULT_REQUEST_TIMEOUT)
    api['per_page'] = api.get('per_page', DEFAULT_HOSTS_PER_PAGE)

    # Remediation defaults
    config.setdefault('remediation', {})
    rem = config['remediation']
    rem['max_retries'] = rem.get('max_retries', DEFAULT_MAX_RETRIES)
    rem['backoff_schedule'] = rem.get('backoff_schedule', list(DEFAULT_BACKOFF_SCHEDULE))
    rem['include_global'] = rem.get('include_global', True)
    rem['teams'] = rem.get('teams', '')
    rem['exclude_policies'] = rem.get('exclude_policies', '')

    # Cache adapter defaults
    config.setdefault('cache', {})
    config['cache']['type'] = config['cache'].get('type', DEFAULT_CACHE_TYPE)
    config['cache']['max_age_seconds'] = config['cache'].get('max_age_seconds', DEFAULT_CACHE_MAX_AGE_SECONDS)

    # Flat file defaults
    config.setdefault('flat_file', {})
    config['flat_file']['path'] = config['flat_file'].get('path', DEFAULT_FLAT_FILE_PATH)

    # TinyDB defaults
    config.setdefault('tiny_db', {})
    config['tiny_db']['path'] = config['tiny_db'].get('path', DEFAULT_TINYDB_PATH)

    # Logging defaults
    config.setdefault('logging', {})
    log = config['logging']
    log['file'] = log.get('file')
    log['level'] = log.get('level', 'INFO')

    return config


def read_config_from_yaml(config_file="config/config.yaml", required=False):
    """Read the YAML configuration and fill in defaults.

    Args:
        config_file: Path to the YAML file
        required: Raise instead of falling back to defaults when the file
            is missing or unreadable (set when the user named the file)

    Returns:
        dict: Configuration with every default key present

    Raises:
        ConfigurationError: If required and the file cannot be loaded
    """
    try:
        with open(config_file, 'r') as file:
            config = yaml.safe_load(file) or {}
    except FileNotFoundError as e:
        if required:
            raise ConfigurationError(f"Configuration file not found: {config_file}") from e
        config = {}
    except (OSError, yaml.YAMLError) as e:
        if required:
            raise ConfigurationError(f"Error reading configuration from {config_file}: {e}") from e
        logging.warning("Error reading configuration from %s: %s", config_file, e)
        config = {}
    config = _load_config_defaults(config)
    return config


def env_value(name, prefix=DEFAULT_ENV_PREFIX) -> Optional[str]:
    """Look up an environment override, prefixed name first.

    FLEET_API_SLEEP wins over API_SLEEP; the unprefixed names are kept for
    existing cron setups.
    """
    return os.environ.get(prefix + name) or os.environ.get(name)


def validate_positive_int(value, name):
    """Validate that value is a positive integer (bools rejected).

    Raises:
        ConfigurationError: If the value is not a positive integer
    """
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid {name} value: {value}")
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid {name} value: {value}") from e
    if number <= 0:
        raise ConfigurationError(f"Invalid {name} value: {value} (must be a positive integer)")
    return number


def validate_non_negative_int(value, name):
    """Validate that value is an integer >= 0."""
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid {name} value: {value}")
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid {name} value: {value}") from e
    if number < 0:
        raise ConfigurationError(f"Invalid {name} value: {value} (must not be negative)")
    return number


def validate_non_negative_float(value, name):
    """Validate that value is a number >= 0."""
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid {name} value: {value}")
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid {name} value: {value}") from e
    if number < 0:
        raise ConfigurationError(f"Invalid {name} value: {value} (must not be negative)")
    return number


# Environment overrides for tuning values: (env name, config section, key)
ENV_OVERRIDES = [
    ('API_SLEEP', 'api', 'sleep'),
    ('MAX_RETRIES', 'remediation', 'max_retries'),
    ('LOG_LEVEL', 'logging', 'level'),
]


def apply_env_overrides(config):
    """Overlay environment variables on a loaded configuration.

    Priority: ENV var > config file. CACHE_FILE points the configured cache
    backend at a different file. Credentials are resolved separately with
    the CLI flags in build_settings.

    Args:
        config: Configuration with defaults already filled in

    Returns:
        dict: The same configuration, updated in place
    """
    prefix = config.get('fleet', {}).get('prefix', DEFAULT_ENV_PREFIX)

    for name, section, key in ENV_OVERRIDES:
        value = env_value(name, prefix)
        if value:
            config.setdefault(section, {})[key] = value

    cache_file = env_value('CACHE_FILE', prefix)
    if cache_file:
        cache_type = config.get('cache', {}).get('type', DEFAULT_CACHE_TYPE)
        config.setdefault(cache_type, {})['path'] = cache_file

    return config
