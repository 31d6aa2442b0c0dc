"""
Rate Limiting Helpers

Two kinds of pacing are needed against the X API:
- a minimum interval between consecutive requests
- waiting out an exhausted 15-minute window until its reset time
"""

import logging
import time
from typing import Optional

from follownet.services.types import RateLimitStatus

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Minimum-interval rate limiter.

    Spaces consecutive requests at least 1/requests_per_second apart.
    """

    def __init__(self, requests_per_second: float = 1.0):
        """
        Initialize rate limiter.

        Args:
            requests_per_second: Maximum requests per second (default: 1.0)
        """
        self.min_interval = 1.0 / requests_per_second
        self.last_request_time = 0.0

    def wait(self):
        """Wait if necessary to respect rate limit."""
        elapsed = time.time() - self.last_request_time
        if elapsed < self.min_interval:
            sleep_time = self.min_interval - elapsed
            time.sleep(sleep_time)
        self.last_request_time = time.time()


def wait_for_reset(
    status: Optional[RateLimitStatus],
    margin: float = 1.0,
    max_wait: Optional[float] = None,
) -> float:
    """
    Sleep until the rate-limit window resets if no calls remain.

    Args:
        status: Current window status, or None when it could not be fetched
        margin: Seconds added after the reset time
        max_wait: Upper bound on the sleep, None for no bound

    Returns:
        Seconds slept (0.0 when calls remain)
    """
    if status is None or status.remaining > 0:
        return 0.0

    wait_time = status.seconds_until_reset(time.time()) + margin
    if max_wait is not None:
        wait_time = min(wait_time, max_wait)

    logger.info(f"Waiting {wait_time / 60:.2f} mins for rate limitation")
    time.sleep(wait_time)
    return wait_time
