"""Tests for the backoffice session lifecycle."""

from __future__ import annotations

import json
import threading

import httpx
import pytest

from possync.client.errors import AuthError
from possync.client.session import (
    AuthenticatedSession,
    Credentials,
    Session,
    account_lock,
    session_headers,
)

BASE_URL = "https://bo.test"
LOGIN_URL = f"{BASE_URL}/api/user/login"


class FakeClock:
    """Settable time source."""

    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def login_ok(httpx_mock, token: str = "sess-1", user_id: int = 42) -> None:  # type: ignore[no-untyped-def]
    httpx_mock.add_response(
        method="POST",
        url=LOGIN_URL,
        json={"Result": True, "Data": {"SessionId": token, "UserId": user_id}},
    )


def make_session(
    http: httpx.Client,
    credentials: Credentials | None = None,
    clock: FakeClock | None = None,
    ttl_seconds: float = 3600,
) -> AuthenticatedSession:
    return AuthenticatedSession(
        credentials or Credentials(username="alice", password="secret"),
        http,
        ttl_seconds=ttl_seconds,
        clock=clock or FakeClock(),
    )


class TestSession:
    """Tests for the Session value object."""

    def test_unauthenticated_without_token(self) -> None:
        """Should be unauthenticated when no token is present."""
        assert Session().is_authenticated is False

    def test_expiry(self) -> None:
        """Should be expired only once now is past the estimated expiry."""
        session = Session(token="t", issued_at=0, estimated_expiry=100)
        assert session.is_expired(100) is False
        assert session.is_expired(100.5) is True

    def test_no_expiry_never_expires(self) -> None:
        """Should never expire without an expiry estimate."""
        assert Session(token="t").is_expired(1e12) is False


class TestCredentials:
    """Tests for Credentials."""

    def test_can_login_requires_both(self) -> None:
        """Should need both username and password to log in."""
        assert Credentials(username="a", password="b").can_login is True
        assert Credentials(username="a").can_login is False
        assert Credentials(static_token="tok").can_login is False

    def test_repr_hides_password(self) -> None:
        """Should not leak the password in its representation."""
        assert "secret" not in repr(Credentials(username="a", password="secret"))


class TestEnsureValid:
    """Tests for AuthenticatedSession.ensure_valid()."""

    def test_logs_in_lazily(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should log in on first use and send the expected payload."""
        login_ok(httpx_mock)

        with httpx.Client(base_url=BASE_URL) as http:
            auth = make_session(http)
            assert auth.current.is_authenticated is False

            session = auth.ensure_valid()

        assert session.token == "sess-1"
        assert session.user_id == "42"
        assert auth.login_count == 1
        request = httpx_mock.get_request()
        assert json.loads(request.content) == {
            "Username": "alice",
            "Password": "secret",
            "RememberMe": True,
        }

    def test_reuses_valid_session(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should not log in again while the session is valid."""
        login_ok(httpx_mock)

        with httpx.Client(base_url=BASE_URL) as http:
            auth = make_session(http)
            first = auth.ensure_valid()
            second = auth.ensure_valid()

        assert first is second
        assert auth.login_count == 1
        assert len(httpx_mock.get_requests()) == 1

    def test_relogs_after_expiry(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should log in again once the estimated expiry has passed."""
        login_ok(httpx_mock, token="old")
        login_ok(httpx_mock, token="new")
        clock = FakeClock()

        with httpx.Client(base_url=BASE_URL) as http:
            auth = make_session(http, clock=clock, ttl_seconds=60)
            assert auth.ensure_valid().token == "old"
            clock.now += 61
            assert auth.ensure_valid().token == "new"

        assert auth.login_count == 2

    def test_expiry_is_issued_at_plus_ttl(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should estimate expiry as login time plus the TTL."""
        login_ok(httpx_mock)
        clock = FakeClock(5000.0)

        with httpx.Client(base_url=BASE_URL) as http:
            session = make_session(http, clock=clock, ttl_seconds=86400).ensure_valid()

        assert session.issued_at == 5000.0
        assert session.estimated_expiry == 5000.0 + 86400

    def test_rejected_login_raises(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should raise AuthError when the login endpoint rejects credentials."""
        httpx_mock.add_response(
            method="POST",
            url=LOGIN_URL,
            json={"Result": False, "Message": "Invalid username or password"},
        )

        with httpx.Client(base_url=BASE_URL) as http:
            auth = make_session(http)
            with pytest.raises(AuthError, match="Invalid username or password"):
                auth.ensure_valid()

        assert auth.current.is_authenticated is False

    def test_login_http_error_raises(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should raise AuthError on a non-200 login response."""
        httpx_mock.add_response(method="POST", url=LOGIN_URL, status_code=403)

        with httpx.Client(base_url=BASE_URL) as http:
            with pytest.raises(AuthError) as exc_info:
                make_session(http).ensure_valid()

        assert exc_info.value.status_code == 403

    def test_missing_session_id_raises(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should raise AuthError when the login response has no session id."""
        httpx_mock.add_response(
            method="POST", url=LOGIN_URL, json={"Result": True, "Data": {"UserId": 1}}
        )

        with httpx.Client(base_url=BASE_URL) as http:
            with pytest.raises(AuthError, match="no session id"):
                make_session(http).ensure_valid()

    def test_lowercase_login_payload(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should accept a login response with lowercase keys."""
        httpx_mock.add_response(
            method="POST",
            url=LOGIN_URL,
            json={"result": True, "data": {"sessionId": "sess-lc", "userId": 5}},
        )

        with httpx.Client(base_url=BASE_URL) as http:
            session = make_session(http).ensure_valid()

        assert session.token == "sess-lc"
        assert session.user_id == "5"

    def test_no_credentials_raises_without_request(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should raise AuthError without calling the login endpoint."""
        with httpx.Client(base_url=BASE_URL) as http:
            auth = make_session(http, credentials=Credentials())
            with pytest.raises(AuthError, match="No backoffice credentials"):
                auth.ensure_valid()

        assert httpx_mock.get_requests() == []


class TestStaticToken:
    """Tests for sessions built from a pre-obtained token."""

    def test_static_token_used_without_login(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should use the static token directly."""
        with httpx.Client(base_url=BASE_URL) as http:
            auth = make_session(
                http, credentials=Credentials(static_token="static", static_user_id="7")
            )
            session = auth.ensure_valid()

        assert session.token == "static"
        assert session.user_id == "7"
        assert auth.login_count == 0

    def test_static_token_falls_back_to_login(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should log in with credentials once the static token is invalidated."""
        login_ok(httpx_mock, token="fresh")

        with httpx.Client(base_url=BASE_URL) as http:
            auth = make_session(
                http,
                credentials=Credentials(username="a", password="b", static_token="static"),
            )
            auth.invalidate()
            assert auth.ensure_valid().token == "fresh"

    def test_invalidated_static_token_without_credentials(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should raise AuthError once an uncredentialed static token is invalidated."""
        with httpx.Client(base_url=BASE_URL) as http:
            auth = make_session(http, credentials=Credentials(static_token="static"))
            auth.invalidate()
            with pytest.raises(AuthError):
                auth.ensure_valid()


class TestInvalidate:
    """Tests for AuthenticatedSession.invalidate()."""

    def test_invalidate_clears_session(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should clear the session and headers."""
        login_ok(httpx_mock)

        with httpx.Client(base_url=BASE_URL) as http:
            auth = make_session(http)
            auth.ensure_valid()
            assert auth.headers() == {"Cookie": "LLSession=sess-1"}

            auth.invalidate()

        assert auth.current.is_authenticated is False
        assert auth.headers() == {}

    def test_stale_token_does_not_clear_renewed_session(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should ignore invalidation for a token that was already replaced."""
        login_ok(httpx_mock, token="new")

        with httpx.Client(base_url=BASE_URL) as http:
            auth = make_session(http)
            auth.ensure_valid()
            auth.invalidate(stale_token="old")

        assert auth.current.token == "new"


class TestReauthenticate:
    """Tests for AuthenticatedSession.reauthenticate()."""

    def test_replaces_stale_session(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should log in again when the rejected token is still current."""
        login_ok(httpx_mock, token="sess-1")
        login_ok(httpx_mock, token="sess-2")

        with httpx.Client(base_url=BASE_URL) as http:
            auth = make_session(http)
            auth.ensure_valid()
            renewed = auth.reauthenticate(stale_token="sess-1")

        assert renewed.token == "sess-2"
        assert auth.current.token == "sess-2"
        assert auth.login_count == 2

    def test_already_renewed_session_is_reused(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should return the current session when another caller already renewed it."""
        login_ok(httpx_mock, token="sess-2")

        with httpx.Client(base_url=BASE_URL) as http:
            auth = make_session(http)
            auth.ensure_valid()
            renewed = auth.reauthenticate(stale_token="sess-1")

        assert renewed.token == "sess-2"
        assert auth.login_count == 1
        assert len(httpx_mock.get_requests()) == 1

    def test_concurrent_rejections_single_login(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should log in once for concurrent callers rejected with the same token."""
        login_ok(httpx_mock, token="sess-1")
        login_ok(httpx_mock, token="sess-2")
        results: list[str | None] = []

        with httpx.Client(base_url=BASE_URL) as http:
            auth = make_session(http)
            auth.ensure_valid()

            def worker() -> None:
                results.append(auth.reauthenticate(stale_token="sess-1").token)

            threads = [threading.Thread(target=worker) for _ in range(5)]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()

        assert results == ["sess-2"] * 5
        assert auth.login_count == 2
        assert len(httpx_mock.get_requests()) == 2

    def test_static_token_without_credentials(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should raise AuthError and stay cleared when a static token is rejected."""
        with httpx.Client(base_url=BASE_URL) as http:
            auth = make_session(http, credentials=Credentials(static_token="static-1"))

            with pytest.raises(AuthError):
                auth.reauthenticate(stale_token="static-1")
            with pytest.raises(AuthError):
                auth.ensure_valid()

        assert auth.current.is_authenticated is False
        assert httpx_mock.get_requests() == []


class TestSessionHeaders:
    """Tests for session_headers()."""

    def test_cookie_for_token(self) -> None:
        """Should carry the token in the session cookie."""
        assert session_headers(Session(token="abc")) == {"Cookie": "LLSession=abc"}

    def test_empty_without_token(self) -> None:
        """Should return no headers for an unauthenticated session."""
        assert session_headers(Session()) == {}


class TestAccountLock:
    """Tests for the per-account lock registry."""

    def test_same_account_same_lock(self) -> None:
        """Should return one lock per account key."""
        assert account_lock("acct-a") is account_lock("acct-a")
        assert account_lock("acct-a") is not account_lock("acct-b")

    def test_concurrent_callers_single_login(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should perform one login for concurrent callers of an expired session."""
        login_ok(httpx_mock)
        results: list[str | None] = []

        with httpx.Client(base_url=BASE_URL) as http:
            auth = make_session(http)

            def worker() -> None:
                results.append(auth.ensure_valid().token)

            threads = [threading.Thread(target=worker) for _ in range(5)]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()

        assert results == ["sess-1"] * 5
        assert auth.login_count == 1
        assert len(httpx_mock.get_requests()) == 1
