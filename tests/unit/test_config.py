"""Tests for settings and logging setup."""

import logging

import pytest

from bamb.core.config import Settings
from bamb.core.logger import get_logger, setup_logger


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self):
        settings = Settings()
        assert settings.token_header == "authorization"
        assert settings.peer_call_timeout is None
        assert settings.query_timeout is None

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("BAMB_QUERY_TIMEOUT", "2.5")
        monkeypatch.setenv("BAMB_CORS_ORIGINS", "http://a.test, http://b.test")
        settings = Settings()
        assert settings.query_timeout == 2.5
        assert settings.cors_origins_list == ["http://a.test", "http://b.test"]


class TestLogging:
    """Tests for logger setup."""

    def test_invalid_level(self):
        with pytest.raises(ValueError):
            setup_logger("bamb.test.invalid", level="LOUD", console_logging=False)

    def test_file_logging(self, tmp_path):
        logger = setup_logger(
            "bamb.test.file", log_dir=str(tmp_path), level="debug", file_logging=True, console_logging=False
        )
        logger.debug("written")
        for handler in logger.handlers:
            handler.flush()
        assert "written" in (tmp_path / "bamb.test.file.log").read_text()

    def test_get_logger_nests_under_root(self):
        assert get_logger("api").name == "bamb.api"
        assert get_logger("bamb.core.locator").name == "bamb.core.locator"
        assert isinstance(get_logger("bamb"), logging.Logger)
