"""Exception taxonomy for upstream API calls.

This module provides:
- ApiError: Non-auth, non-200 response (terminal, not retried)
- AuthError: Credentials rejected or re-authentication exhausted
- NetworkError: Transport fault that persisted after the single retry
- DataError: Response body could not be decoded or had an unexpected shape
- NoLocationsError: No location configuration could be resolved at startup
"""

from __future__ import annotations


class ApiError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthError(ApiError):
    """Authentication failed or could not be renewed."""


class NetworkError(ApiError):
    """Transport-level failure (timeout, connection reset, DNS...)."""


class DataError(ApiError):
    """Malformed or unexpectedly shaped response payload."""


class NoLocationsError(Exception):
    """No active, credentialed location could be resolved."""
