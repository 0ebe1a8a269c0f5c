"""Bounded retry for transient network faults.

This module provides:
- NETWORK_EXCEPTIONS: httpx exceptions treated as transient transport faults
- RetryBudget: Explicit attempt counter shared across one logical call
- send_with_network_retry: Issue a request, retrying once after a fixed delay
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

import httpx

from possync.client.errors import NetworkError

logger = logging.getLogger(__name__)

DEFAULT_RETRY_DELAY = 2.0  # seconds
DEFAULT_NETWORK_RETRIES = 1

# Transport faults worth one more attempt. Protocol/URL errors are not.
NETWORK_EXCEPTIONS: tuple[type[Exception], ...] = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
)


@dataclass
class RetryBudget:
    """Retries left for one reason within one logical call.

    Attributes:
        retries_left: Remaining retries (not attempts).
        used: Retries consumed so far.
    """

    retries_left: int = DEFAULT_NETWORK_RETRIES
    used: int = 0

    def consume(self) -> bool:
        """Take one retry from the budget.

        Returns:
            True if a retry was available.
        """
        if self.retries_left <= 0:
            return False
        self.retries_left -= 1
        self.used += 1
        return True


def send_with_network_retry(
    send: Callable[[], httpx.Response],
    budget: RetryBudget | None = None,
    retry_delay: float = DEFAULT_RETRY_DELAY,
    description: str = "request",
) -> httpx.Response:
    """Issue a request, retrying transport faults while the budget allows.

    Args:
        send: Function performing the HTTP request.
        budget: Retry budget; shared across calls to keep one total per
            logical operation. A fresh single-retry budget if omitted.
        retry_delay: Fixed delay before retrying, in seconds.
        description: Short label for log messages.

    Returns:
        The HTTP response (any status code).

    Raises:
        NetworkError: If the fault persists once the budget is exhausted.
    """
    if budget is None:
        budget = RetryBudget()

    while True:
        try:
            return send()
        except NETWORK_EXCEPTIONS as e:
            if not budget.consume():
                logger.error(f"{description} failed: {e}")
                raise NetworkError(f"{description} failed: {e}") from e
            logger.warning(
                f"{description} failed: {e}. Retrying in {retry_delay:.1f}s..."
            )
            time.sleep(retry_delay)
