"""Tests for CLI configuration loading."""

from __future__ import annotations

import logging
from pathlib import Path
from unittest.mock import patch

import pytest

from possync.cli.config import (
    get_config_dir,
    load_config,
    load_settings,
    save_config,
    setup_logging,
)


class TestConfigFile:
    """Tests for the JSON config file helpers."""

    def test_default_dir(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Should use ~/.possync by default."""
        monkeypatch.delenv("POSSYNC_CONFIG_DIR", raising=False)
        assert get_config_dir() == Path.home() / ".possync"

    def test_dir_override(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Should honour POSSYNC_CONFIG_DIR."""
        monkeypatch.setenv("POSSYNC_CONFIG_DIR", str(tmp_path))
        assert get_config_dir() == tmp_path

    def test_save_and_load(self, tmp_path: Path) -> None:
        """Should write the config file and read it back."""
        with patch("possync.cli.config.get_config_dir", return_value=tmp_path / "cfg"):
            assert load_config() == {}
            save_config({"sync": {"max_workers": 4}})
            assert load_config() == {"sync": {"max_workers": 4}}


class TestLoadSettings:
    """Tests for load_settings."""

    def test_defaults(self) -> None:
        """Should build default settings from nothing."""
        settings = load_settings({}, {})
        assert settings.sync.sync_interval_minutes == 10
        assert settings.erp.enabled is False
        assert settings.menu.enabled is False

    def test_file_values(self) -> None:
        """Should read sections from the config file."""
        settings = load_settings(
            {
                "backoffice": {"username": "bot", "password": "pw", "org_id": 9},
                "sync": {"directory_url": "https://dir.example.com/stores"},
            },
            {},
        )
        assert settings.backoffice.has_credentials is True
        assert settings.backoffice.org_id == 9
        assert settings.sync.directory_url == "https://dir.example.com/stores"

    def test_environment_wins(self) -> None:
        """Should let environment variables override the file and coerce types."""
        settings = load_settings(
            {"sync": {"max_workers": 2}, "menu": {"api_key": "from-file"}},
            {
                "POSSYNC_MAX_WORKERS": "4",
                "POSSYNC_SESSION_TTL_HOURS": "12.5",
                "POSSYNC_MENU_API_KEY": "from-env",
                "POSSYNC_ERP_URL": "",
            },
        )
        assert settings.sync.max_workers == 4
        assert settings.backoffice.session_ttl_hours == 12.5
        assert settings.menu.api_key == "from-env"
        assert settings.erp.url is None

    def test_unknown_setting(self) -> None:
        """Should reject unknown keys."""
        with pytest.raises(ValueError, match="max_worker"):
            load_settings({"sync": {"max_worker": 2}}, {})

    def test_bad_number(self) -> None:
        """Should reject unparsable numbers."""
        with pytest.raises(ValueError):
            load_settings({}, {"POSSYNC_SYNC_INTERVAL": "often"})

    def test_section_must_be_object(self) -> None:
        """Should reject non-object sections."""
        with pytest.raises(ValueError, match="sync"):
            load_settings({"sync": ["nope"]}, {})


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_file_handler(self, tmp_path: Path) -> None:
        """Should log to stdout and the given file."""
        log_path = tmp_path / "logs" / "possync.log"
        setup_logging("DEBUG", log_path)

        logger = logging.getLogger("possync")
        try:
            assert logger.level == logging.DEBUG
            assert len(logger.handlers) == 2
            logging.getLogger("possync.test").info("hello")
            for handler in logger.handlers:
                handler.flush()
            assert "hello" in log_path.read_text()
        finally:
            for handler in logger.handlers:
                handler.close()
            logger.handlers.clear()
            logging.getLogger("apscheduler").handlers.clear()
