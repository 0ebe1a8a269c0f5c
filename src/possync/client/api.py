"""Resilient HTTP client for the session-authenticated backoffice API.

This module provides:
- is_auth_failure: Classifier for "session invalid" responses
- ResilientApiClient: Issues calls with one re-authentication replay and one
  network retry, each with an independent budget
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from possync.client.errors import ApiError, AuthError, DataError
from possync.client.retry import RetryBudget, send_with_network_retry
from possync.client.payload import get_field
from possync.client.session import AuthenticatedSession, session_headers
from possync.core.config import BackofficeConfig

logger = logging.getLogger(__name__)

# Attempts allowed per call for auth failures (first try + one replay)
MAX_AUTH_ATTEMPTS = 2

BACKOFFICE_HEADERS = {
    "Content-Type": "application/json; charset=UTF-8",
    "Accept": "application/json",
    "appname": "Backoffice",
}


def is_auth_failure(status_code: int, body: Any) -> bool:
    """Check whether a response signals an invalid or expired session.

    Covers both the transport-level 401 and the backoffice habit of
    returning 200 with an error message about the session.

    Args:
        status_code: HTTP status code.
        body: Decoded JSON body (or None if not JSON).

    Returns:
        True if the caller should re-authenticate.
    """
    if status_code == 401:
        return True
    if status_code != 200 or not isinstance(body, dict):
        return False
    if get_field(body, "Result") is True:
        return False
    message = get_field(body, "Message")
    return isinstance(message, str) and "session" in message.lower()


def _decode(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


class ResilientApiClient:
    """HTTP client for backoffice endpoints that need a session.

    Usage:
        with ResilientApiClient.from_config(config) as client:
            report = client.call("/api/posv3/reports/closing-report", {...})
    """

    def __init__(
        self,
        session: AuthenticatedSession,
        http: httpx.Client,
        lsp_id: int | None = None,
        org_id: int | None = None,
        retry_delay: float = 2.0,
    ) -> None:
        """Initialize the client.

        Args:
            session: Session shared by every call for this account.
            http: HTTP client bound to the backoffice base URL.
            lsp_id: Account LSP identifier added to every payload.
            org_id: Account organisation identifier added to every payload.
            retry_delay: Fixed delay before the network retry, in seconds.
        """
        self._session = session
        self._http = http
        self._lsp_id = lsp_id
        self._org_id = org_id
        self._retry_delay = retry_delay

    @classmethod
    def from_config(cls, config: BackofficeConfig) -> ResilientApiClient:
        """Build the HTTP client, session and API client for one account."""
        http = httpx.Client(
            base_url=config.base_url,
            timeout=config.timeout,
            headers={**BACKOFFICE_HEADERS, "Origin": config.base_url},
        )
        session = AuthenticatedSession.from_config(config, http)
        return cls(
            session,
            http,
            lsp_id=config.lsp_id,
            org_id=config.org_id,
            retry_delay=config.retry_delay,
        )

    @property
    def session(self) -> AuthenticatedSession:
        """Get the underlying session."""
        return self._session

    def close(self) -> None:
        """Close the HTTP client."""
        self._http.close()

    def __enter__(self) -> ResilientApiClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def _build_body(self, payload: dict[str, Any], token: str, user_id: str | None) -> dict[str, Any]:
        body = {**payload, "SessionId": token}
        if self._lsp_id is not None:
            body["LspId"] = int(self._lsp_id)
        if self._org_id is not None:
            body["OrgId"] = int(self._org_id)
        if user_id:
            body["UserId"] = int(user_id) if user_id.isdigit() else user_id
        return body

    def call(self, endpoint: str, payload: dict[str, Any]) -> Any:
        """Call an authenticated endpoint.

        Args:
            endpoint: Path relative to the backoffice base URL.
            payload: Request body; session and account ids are added.

        Returns:
            The decoded JSON response.

        Raises:
            AuthError: Credentials rejected, or a second consecutive auth failure.
            NetworkError: Transport fault persisted after one retry.
            ApiError: Any other non-200 response, or a non-JSON body.
        """
        network_budget = RetryBudget()
        auth_attempts = 0

        session = self._session.ensure_valid()
        while True:
            if session.token is None:
                raise AuthError(f"No backoffice session token for {endpoint}")
            body = self._build_body(payload, session.token, session.user_id)
            headers = session_headers(session)

            response = send_with_network_retry(
                lambda: self._http.post(endpoint, json=body, headers=headers),
                budget=network_budget,
                retry_delay=self._retry_delay,
                description=f"POST {endpoint}",
            )
            decoded = _decode(response)

            if is_auth_failure(response.status_code, decoded):
                auth_attempts += 1
                if auth_attempts >= MAX_AUTH_ATTEMPTS:
                    raise AuthError(
                        f"Session rejected again after re-authentication ({endpoint})",
                        response.status_code,
                    )
                logger.info(
                    f"Backoffice session invalid ({response.status_code}) on "
                    f"{endpoint}, re-authenticating..."
                )
                session = self._session.reauthenticate(stale_token=session.token)
                continue

            if response.status_code != 200:
                raise ApiError(
                    f"API error {response.status_code} on {endpoint}",
                    response.status_code,
                )
            if decoded is None:
                raise DataError(f"Malformed response from {endpoint}", response.status_code)
            return decoded
