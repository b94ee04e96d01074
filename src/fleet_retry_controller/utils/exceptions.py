"""Custom exceptions for fleet_retry_controller.

Business logic exceptions shared between the CLI and the remediation core.
These exceptions provide semantic error handling for common failure scenarios.
"""


class FleetRemediationError(Exception):
    """Base exception for all fleet_retry_controller errors.

    All custom exceptions in the project should inherit from this base class.
    """
    pass


class ConfigurationError(FleetRemediationError):
    """Configuration file or settings error.

    Raised when:
    - An explicitly requested configuration file is missing or invalid
    - The Fleet URL or API token is missing
    - A numeric option (max retries, sleep, schedule) is not valid
    - YAML parsing fails
    """
    pass


class ApiError(FleetRemediationError):
    """Error from a single Fleet API call.

    Recoverable: the dispatcher catches it at team, policy or host scope,
    counts it and moves on.
    """

    def __init__(self, message, method=None, path=None, status_code=None):
        super().__init__(message)
        self.method = method
        self.path = path
        self.status_code = status_code


class TransportError(ApiError):
    """Transport-level failure after transport retries were exhausted.

    Raised when:
    - Connection to the Fleet server fails
    - The request times out
    - The server answers with a non-2xx status
    """
    pass


class MalformedResponseError(ApiError):
    """Fleet API response is missing expected fields.

    Raised when:
    - The body is not valid JSON or not a JSON object
    - A required key (teams, policies, hosts) is absent
    """
    pass


class ApiConnectionError(FleetRemediationError):
    """Cannot reach the Fleet API at all.

    Raised when the team listing fails, which aborts the whole run.
    """
    pass


class CacheError(FleetRemediationError):
    """Cache store cannot be initialised or written.

    Raised when:
    - The cache location is not writable
    - The parent directory cannot be created
    - An atomic replace of the cache file fails
    """
    pass


class CacheCorruptionError(CacheError):
    """Cache store content cannot be parsed.

    Handled inside the adapters: the store (or the offending record)
    is treated as absent so the affected keys behave like first attempts.
    """
    pass


__all__ = [
    'FleetRemediationError',
    'ConfigurationError',
    'ApiError',
    'TransportError',
    'MalformedResponseError',
    'ApiConnectionError',
    'CacheError',
    'CacheCorruptionError',
]
