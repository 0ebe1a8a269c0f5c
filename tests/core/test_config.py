"""Tests for core configuration classes."""

from __future__ import annotations

import pytest

from possync.core.config import (
    BackofficeConfig,
    ErpConfig,
    MenuApiConfig,
    PosApiConfig,
    SyncConfig,
)


class TestBackofficeConfig:
    """Tests for BackofficeConfig class."""

    def test_defaults(self) -> None:
        """Should default to the account identifiers and a 24h session."""
        config = BackofficeConfig()
        assert config.lsp_id == 575
        assert config.org_id == 5134
        assert config.session_ttl_hours == 24.0
        assert config.retry_delay == 2.0
        assert config.has_credentials is False

    def test_url_trailing_slash_removed(self) -> None:
        """Should strip trailing slash from base URL."""
        config = BackofficeConfig(base_url="https://example.com/")
        assert config.base_url == "https://example.com"

    def test_has_credentials(self) -> None:
        """Should require both username and password."""
        assert BackofficeConfig(username="bot", password="pw").has_credentials is True
        assert BackofficeConfig(username="bot").has_credentials is False

    def test_account_key_distinguishes_accounts(self) -> None:
        """Should differ between organisations of the same host."""
        a = BackofficeConfig(org_id=1, username="bot")
        b = BackofficeConfig(org_id=2, username="bot")
        assert a.account_key != b.account_key
        assert a.account_key == BackofficeConfig(org_id=1, username="bot").account_key


class TestApiConfigs:
    """Tests for POS, menu and ERP configs."""

    def test_pos_url_normalized(self) -> None:
        """Should strip trailing slash from POS URL."""
        assert PosApiConfig(base_url="https://pos.example.com/").base_url == (
            "https://pos.example.com"
        )

    def test_menu_enabled_with_key(self) -> None:
        """Should be enabled only with an API key."""
        assert MenuApiConfig().enabled is False
        assert MenuApiConfig(api_key="k").enabled is True

    def test_erp_enabled(self) -> None:
        """Should need URL, username and API key."""
        assert ErpConfig(url="https://erp.example.com/", username="bot").enabled is False
        config = ErpConfig(url="https://erp.example.com/", username="bot", api_key="k")
        assert config.enabled is True
        assert config.url == "https://erp.example.com"


class TestSyncConfig:
    """Tests for SyncConfig class."""

    def test_defaults(self) -> None:
        """Should default to a sequential 10-minute cycle."""
        config = SyncConfig()
        assert config.sync_interval_minutes == 10
        assert config.max_workers == 1
        assert config.banner_hour == 5
        assert config.gl_export_hour == 8

    def test_rejects_zero_workers(self) -> None:
        """Should refuse a worker count below one."""
        with pytest.raises(ValueError):
            SyncConfig(max_workers=0)

    def test_rejects_zero_interval(self) -> None:
        """Should refuse an interval below one minute."""
        with pytest.raises(ValueError):
            SyncConfig(sync_interval_minutes=0)
