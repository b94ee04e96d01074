"""Shared constants for the remediation controller.

Constants used across CLI, remediation and Fleet API modules.
"""

# Backoff schedule (seconds): 30min -> 2h -> 6h -> 24h
DEFAULT_BACKOFF_SCHEDULE = (1800, 7200, 21600, 86400)
DEFAULT_MAX_RETRIES = 3

# Cache entries untouched for 7 days are pruned at startup
DEFAULT_CACHE_MAX_AGE_SECONDS = 604800
DEFAULT_CACHE_TYPE = 'flat_file'
DEFAULT_FLAT_FILE_PATH = '~/.fleet_retry_cache.db'
DEFAULT_TINYDB_PATH = '~/.fleet_retry_cache.json'

# API constants
DEFAULT_API_PREFIX = '/api/v1/fleet'
DEFAULT_API_SLEEP = 0.3
DEFAULT_TRANSPORT_RETRIES = 3
DEFAULT_RETRY_DELAY = 1.0
DEFAULT_CONNECT_TIMEOUT = 30
DEFAULT_REQUEST_TIMEOUT = 120
DEFAULT_HOSTS_PER_PAGE = 100
RETRYABLE_STATUS_CODES = (408, 429, 500, 502, 503, 504)

# Environment variable prefix for credentials and overrides
DEFAULT_ENV_PREFIX = 'FLEET_'

# Ungrouped policy scope
GLOBAL_TEAM_NAME = 'Global'
GLOBAL_TEAM_SCOPE = 'global'

# Host policy responses
RESPONSE_FAIL = 'fail'
RESPONSE_UNKNOWN = 'unknown'


# Rich styles (used by the statistics report)
class Style:  # pylint: disable=too-few-public-methods
    """Rich markup style constants."""
    GREEN = "green"
    RED = "red"
    YELLOW = "yellow"
    DIM = "dim"
    CYAN = "cyan"
    BOLD = "bold"
