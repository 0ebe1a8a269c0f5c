"""Session lifecycle for the backoffice API.

This module provides:
- Credentials: Username/password or a pre-obtained static session token
- Session: Current token with its estimated expiry
- AuthenticatedSession: Owns credentials and the session, logs in on demand
- session_headers: Cookie header for a session
- account_lock: Per-account lock serializing (re)authentication

The upstream never reports an expiry, so sessions are assumed valid for a
fixed, configurable TTL after login.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx

from possync.client.errors import AuthError
from possync.client.payload import get_field
from possync.client.retry import send_with_network_retry
from possync.core.config import BackofficeConfig

logger = logging.getLogger(__name__)

LOGIN_PATH = "/api/user/login"
SESSION_COOKIE = "LLSession"

_account_locks: dict[str, threading.Lock] = {}
_registry_lock = threading.Lock()


def account_lock(account_key: str) -> threading.Lock:
    """Get the lock guarding authentication for one upstream account.

    Args:
        account_key: Identity of the upstream account.

    Returns:
        The same Lock instance for every caller using this account.
    """
    with _registry_lock:
        lock = _account_locks.get(account_key)
        if lock is None:
            lock = threading.Lock()
            _account_locks[account_key] = lock
        return lock


@dataclass(frozen=True)
class Credentials:
    """Login credentials for one upstream account."""

    username: str | None = None
    password: str | None = None
    static_token: str | None = None
    static_user_id: str | None = None

    @property
    def can_login(self) -> bool:
        """Check if username and password are both available."""
        return bool(self.username and self.password)

    @classmethod
    def from_config(cls, config: BackofficeConfig) -> Credentials:
        """Build credentials from backoffice configuration."""
        return cls(
            username=config.username,
            password=config.password,
            static_token=config.session_id,
            static_user_id=config.user_id,
        )

    def __repr__(self) -> str:
        """Representation without secrets."""
        return f"Credentials(username={self.username!r})"


@dataclass(frozen=True)
class Session:
    """An issued backoffice session.

    Attributes:
        token: Session id; None means unauthenticated.
        issued_at: Unix time the session was obtained.
        estimated_expiry: Unix time after which the session is assumed stale
            (None for static tokens).
        user_id: Backoffice user id.
    """

    token: str | None = None
    issued_at: float | None = None
    estimated_expiry: float | None = None
    user_id: str | None = None

    @property
    def is_authenticated(self) -> bool:
        """Check if a token is present."""
        return self.token is not None

    def is_expired(self, now: float) -> bool:
        """Check whether the estimated expiry has passed."""
        return self.estimated_expiry is not None and now > self.estimated_expiry


def session_headers(session: Session) -> dict[str, str]:
    """Build the request headers carrying a session cookie."""
    if session.token is None:
        return {}
    return {"Cookie": f"{SESSION_COOKIE}={session.token}"}


class AuthenticatedSession:
    """Owns credentials and the current session for one upstream account.

    Login happens lazily on the first ensure_valid() call. Invalidation
    clears the session; the next ensure_valid() logs in again. A rejected
    session is replaced through reauthenticate(). All three are serialized by a
    per-account lock so concurrent callers hitting an expired session trigger a
    single login.

    Usage:
        session = AuthenticatedSession(credentials, http_client)
        current = session.ensure_valid()
        headers = session_headers(current)
    """

    def __init__(
        self,
        credentials: Credentials,
        http: httpx.Client,
        account_key: str = "default",
        ttl_seconds: float = 24 * 60 * 60,
        retry_delay: float = 2.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the session.

        Args:
            credentials: Account credentials (or static token).
            http: HTTP client bound to the backoffice base URL.
            account_key: Identity used to pick the authentication lock.
            ttl_seconds: Conservative session lifetime after login.
            retry_delay: Delay before retrying a failed login transport.
            clock: Time source (seconds since epoch).
        """
        self._credentials = credentials
        self._http = http
        self._ttl = ttl_seconds
        self._retry_delay = retry_delay
        self._clock = clock
        self._lock = account_lock(account_key)
        self._login_count = 0

        if credentials.static_token:
            self._session = Session(
                token=credentials.static_token,
                issued_at=clock(),
                user_id=credentials.static_user_id,
            )
        else:
            self._session = Session()

    @classmethod
    def from_config(
        cls, config: BackofficeConfig, http: httpx.Client
    ) -> AuthenticatedSession:
        """Create a session from backoffice configuration."""
        return cls(
            Credentials.from_config(config),
            http,
            account_key=config.account_key,
            ttl_seconds=config.session_ttl_hours * 3600,
            retry_delay=config.retry_delay,
        )

    @property
    def current(self) -> Session:
        """Get the current session (possibly unauthenticated)."""
        return self._session

    @property
    def login_count(self) -> int:
        """Number of successful logins performed."""
        return self._login_count

    def ensure_valid(self) -> Session:
        """Return a usable session, logging in if needed.

        Returns:
            The current authenticated session.

        Raises:
            AuthError: If credentials are missing or rejected.
            NetworkError: If the login endpoint is unreachable.
        """
        with self._lock:
            session = self._session
            if session.is_authenticated and not session.is_expired(self._clock()):
                return session

            if session.is_authenticated:
                logger.info("Backoffice session expired, re-authenticating...")
                self._session = Session()

            if not self._credentials.can_login:
                raise AuthError("No backoffice credentials available to log in")

            self._session = self._login()
            return self._session

    def invalidate(self, stale_token: str | None = None) -> None:
        """Clear the current session.

        Args:
            stale_token: If given, only clear when the current token is still
                this one; a concurrent caller may already have renewed it.
        """
        with self._lock:
            if stale_token is not None and self._session.token != stale_token:
                return
            self._session = Session()

    def reauthenticate(self, stale_token: str | None) -> Session:
        """Replace a session the upstream rejected.

        Concurrent callers that saw the same stale token share one login:
        whoever takes the lock first logs in, the rest get the renewed
        session.

        Args:
            stale_token: Token the rejected request carried.

        Returns:
            A freshly authenticated session.

        Raises:
            AuthError: If no credentials are available to log in again.
        """
        with self._lock:
            session = self._session
            if (
                session.token != stale_token
                and session.is_authenticated
                and not session.is_expired(self._clock())
            ):
                return session

            self._session = Session()
            if not self._credentials.can_login:
                raise AuthError("Session rejected and no credentials available to log in")

            self._session = self._login()
            return self._session

    def headers(self) -> dict[str, str]:
        """Get the headers carrying the current session."""
        return session_headers(self._session)

    def _login(self) -> Session:
        """Perform the login request. Caller holds the lock."""
        logger.info(f"Logging in to backoffice as {self._credentials.username}...")

        response = send_with_network_retry(
            lambda: self._http.post(
                LOGIN_PATH,
                json={
                    "Username": self._credentials.username,
                    "Password": self._credentials.password,
                    "RememberMe": True,
                },
            ),
            retry_delay=self._retry_delay,
            description="Backoffice login",
        )

        if response.status_code != 200:
            raise AuthError(
                f"Login rejected with status {response.status_code}",
                response.status_code,
            )

        try:
            payload: Any = response.json()
        except ValueError as e:
            raise AuthError("Login returned a malformed payload", 200) from e

        if not get_field(payload, "Result"):
            message = get_field(payload, "Message")
            raise AuthError(f"Login failed: {message or 'Unknown error'}", 200)

        data = get_field(payload, "Data")
        if not isinstance(data, dict):
            raise AuthError("Login returned a malformed payload", 200)

        token = get_field(data, "SessionId") or response.cookies.get(SESSION_COOKIE)
        if not token:
            raise AuthError("Login response carried no session id", 200)

        user_id = get_field(data, "UserId") or get_field(data, "Id")
        now = self._clock()
        self._login_count += 1
        logger.info(
            f"Backoffice login successful: userId={user_id}, "
            f"sessionId={str(token)[:8]}..."
        )
        return Session(
            token=str(token),
            issued_at=now,
            estimated_expiry=now + self._ttl,
            user_id=str(user_id) if user_id is not None else None,
        )
