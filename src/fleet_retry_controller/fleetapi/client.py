"""HTTP client for the Fleet REST API."""
import json
import logging
from typing import Any, Dict, Optional

import requests

from fleet_retry_controller.fleetapi.rate_limiter import RateLimiter, RetryableError
from fleet_retry_controller.utils.constants import (
    DEFAULT_API_PREFIX,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_REQUEST_TIMEOUT,
    RETRYABLE_STATUS_CODES,
)
from fleet_retry_controller.utils.exceptions import MalformedResponseError, TransportError

logger = logging.getLogger(__name__)


class FleetClient:
    """Client for authenticated Fleet API requests.

    Every request carries the bearer token and a JSON content type, goes
    through the rate limiter's transport retry, and fails with an ApiError
    subclass. POSTs are only logged in dry-run mode.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        api_prefix: str = DEFAULT_API_PREFIX,
        rate_limiter: Optional[RateLimiter] = None,
        dry_run: bool = False,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Fleet server URL (e.g. https://fleet.example.com)
            token: Fleet API token
            api_prefix: Path prefix of the REST API
            rate_limiter: Rate limiter applying the inter-call delay and retries
            dry_run: Log POSTs instead of sending them
            connect_timeout: Connect timeout in seconds
            timeout: Read timeout in seconds
            session: Optional requests session (for connection reuse or tests)
        """
        self.base_url = base_url.rstrip('/')
        self.api_prefix = '/' + api_prefix.strip('/') if api_prefix and api_prefix.strip('/') else ''
        self.rate_limiter = rate_limiter or RateLimiter()
        self.dry_run = dry_run
        self.timeout = (connect_timeout, timeout)
        self.session = session or requests.Session()
        self.session.headers.update({
            'Authorization': f'Bearer {token}',
            'Content-Type': 'application/json',
        })

    def url_for(self, path: str) -> str:
        return f"{self.base_url}{self.api_prefix}/{path.lstrip('/')}"

    def _send(self, method: str, path: str, params=None, body=None) -> requests.Response:
        """Send one request, classifying failures for the rate limiter."""
        url = self.url_for(path)
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                data=json.dumps(body) if body is not None else None,
                timeout=self.timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            raise RetryableError(TransportError(f"{method} {path} failed: {e}", method=method, path=path)) from e
        except requests.RequestException as e:
            raise TransportError(f"{method} {path} failed: {e}", method=method, path=path) from e

        if response.status_code in RETRYABLE_STATUS_CODES:
            raise RetryableError(TransportError(
                f"{method} {path} returned HTTP {response.status_code}",
                method=method, path=path, status_code=response.status_code
            ))
        if not 200 <= response.status_code < 300:
            raise TransportError(
                f"{method} {path} returned HTTP {response.status_code}: {response.text[:200]}",
                method=method, path=path, status_code=response.status_code
            )
        return response

    def _request(self, method: str, path: str, params=None, body=None) -> Dict[str, Any]:
        try:
            response = self.rate_limiter.execute_with_retry(self._send, method, path, params=params, body=body)
        except TransportError as e:
            logger.error("API call failed: %s %s (%s)", method, path, e)
            raise

        if not response.content or not response.content.strip():
            return {}
        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError(f"{method} {path} returned invalid JSON", method=method, path=path) from e
        if not isinstance(data, dict):
            raise MalformedResponseError(
                f"{method} {path} returned {type(data).__name__}, expected an object", method=method, path=path
            )
        return data

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Execute GET request."""
        logger.debug("GET %s %s", path, params or '')
        return self._request('GET', path, params=params)

    def post(self, path: str, body: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """Execute POST request, or only log it in dry-run mode.

        Returns:
            Response body, or None when the call was skipped for dry-run
        """
        body = body if body is not None else {}
        if self.dry_run:
            logger.info("[DRY-RUN] Would POST to %s with data: %s", path, json.dumps(body))
            return None
        logger.debug("POST %s %s", path, body)
        return self._request('POST', path, body=body)

    def close(self) -> None:
        self.session.close()


def require_key(data: Dict[str, Any], key: str, path: str) -> Any:
    """Return data[key] or raise MalformedResponseError if the key is missing.

    A null value is returned as an empty list; Fleet reports empty
    collections either way.
    """
    if not isinstance(data, dict) or key not in data:
        raise MalformedResponseError(f"Response from {path} has no '{key}' field", method='GET', path=path)
    value = data[key]
    return [] if value is None else value
