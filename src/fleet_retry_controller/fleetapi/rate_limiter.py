"""Fixed-rate limiter and transport retry for Fleet API calls."""
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from fleet_retry_controller.utils.constants import (
    DEFAULT_API_SLEEP,
    DEFAULT_RETRY_DELAY,
    DEFAULT_TRANSPORT_RETRIES,
)
from fleet_retry_controller.utils.exceptions import ApiError, TransportError


logger = logging.getLogger(__name__)


@dataclass
class RateLimitConfig:
    """Configuration for rate limiting."""
    api_sleep: float = DEFAULT_API_SLEEP  # Pause after every successful call
    retry_attempts: int = DEFAULT_TRANSPORT_RETRIES  # Retries after the first try
    retry_delay: float = DEFAULT_RETRY_DELAY  # Fixed delay between retries


class RetryableError(Exception):
    """Transport failure worth retrying (connection error, timeout, 408/429/5xx).

    Wraps the TransportError that is surfaced once retries are exhausted.
    """

    def __init__(self, error: TransportError):
        super().__init__(str(error))
        self.error = error


class RateLimiter:
    """Fixed-delay rate limiter with bounded transport retries.

    Not adaptive: every successful call is followed by the same pause, and
    every retryable failure waits the same delay before the next try.
    """

    def __init__(self, config: Optional[RateLimitConfig] = None, sleep: Callable[[float], None] = time.sleep):
        """Initialize rate limiter.

        Args:
            config: Rate limit configuration
            sleep: Sleep function (replaced in tests)
        """
        self.config = config or RateLimitConfig()
        self._sleep = sleep

        # Metrics
        self.total_requests = 0
        self.retried_requests = 0
        self.failed_requests = 0
        self.total_wait_time = 0.0

    def _wait(self, seconds: float) -> None:
        if seconds <= 0:
            return
        self.total_wait_time += seconds
        self._sleep(seconds)

    def execute_with_retry(self, func: Callable, *args, **kwargs) -> Any:
        """Execute a function with rate limiting and retry logic.

        func signals a retryable failure by raising RetryableError and a
        permanent one by raising any ApiError.

        Args:
            func: Function to execute
            *args: Positional arguments for func
            **kwargs: Keyword arguments for func

        Returns:
            Result from func

        Raises:
            TransportError: If all retry attempts fail
            ApiError: If func raised a non-retryable error
        """
        last_error = None
        attempts = self.config.retry_attempts + 1

        for attempt in range(1, attempts + 1):
            self.total_requests += 1
            try:
                result = func(*args, **kwargs)

            except RetryableError as e:
                last_error = e.error
                if attempt < attempts:
                    self.retried_requests += 1
                    logger.warning(
                        f"Attempt {attempt}/{attempts} failed: {e}. Retrying in {self.config.retry_delay}s"
                    )
                    self._wait(self.config.retry_delay)
                continue

            except ApiError:
                # Non-retryable error
                self.failed_requests += 1
                raise

            self._wait(self.config.api_sleep)
            return result

        # All retries exhausted
        self.failed_requests += 1
        logger.error(f"All {attempts} attempts exhausted: {last_error}")
        raise last_error

    def get_metrics(self) -> dict:
        """Get rate limiter metrics."""
        return {
            'total_requests': self.total_requests,
            'retried_requests': self.retried_requests,
            'failed_requests': self.failed_requests,
            'total_wait_time': self.total_wait_time,
            'api_sleep': self.config.api_sleep,
            'retry_attempts': self.config.retry_attempts,
        }
