"""Tests for seqdir settings."""

import logging
import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from seqdir.config import (
    Settings,
    clear_settings_cache,
    get_settings,
    get_settings_for_testing,
)
from seqdir.manager import StatusErrorPolicy


class TestSettingsDefaults:
    """Defaults with no environment."""

    def test_defaults(self):
        settings = Settings()
        assert settings.poll_interval_seconds == 60.0
        assert settings.get_status_error_policy() is StatusErrorPolicy.IGNORE
        assert settings.log_level == "INFO"
        assert settings.get_log_level() == logging.INFO
        assert settings.get_watchlist_path() is None


class TestSettingsFromEnvironment:
    """Environment variable overrides."""

    def test_env_overrides(self):
        with patch.dict(os.environ, {
            "SEQDIR_POLL_INTERVAL_SECONDS": "2.5",
            "SEQDIR_STATUS_ERROR_POLICY": "RAISE",
            "SEQDIR_LOG_LEVEL": "debug",
            "SEQDIR_WATCHLIST_PATH": "~/runs.yaml",
        }):
            settings = Settings()
            assert settings.poll_interval_seconds == 2.5
            assert settings.get_status_error_policy() is StatusErrorPolicy.RAISE
            assert settings.get_log_level() == logging.DEBUG
            assert settings.get_watchlist_path() == Path.home() / "runs.yaml"

    def test_dotenv_file_is_read(self, tmp_path):
        (tmp_path / ".env").write_text("SEQDIR_POLL_INTERVAL_SECONDS=7\n")
        assert Settings().poll_interval_seconds == 7.0

    def test_unprefixed_variables_are_ignored(self):
        with patch.dict(os.environ, {"POLL_INTERVAL_SECONDS": "5"}):
            assert Settings().poll_interval_seconds == 60.0


class TestSettingsValidation:
    """Field validators."""

    def test_rejects_unknown_policy(self):
        with pytest.raises(ValidationError, match="status_error_policy"):
            get_settings_for_testing(status_error_policy="retry")

    def test_rejects_non_positive_interval(self):
        with pytest.raises(ValidationError, match="poll_interval_seconds"):
            get_settings_for_testing(poll_interval_seconds=0)

    def test_rejects_unknown_log_level(self):
        with pytest.raises(ValidationError, match="log_level"):
            get_settings_for_testing(log_level="chatty")


class TestSettingsCache:
    """get_settings caching."""

    def test_cached_until_cleared(self):
        first = get_settings()
        assert get_settings() is first

        with patch.dict(os.environ, {"SEQDIR_POLL_INTERVAL_SECONDS": "1"}):
            assert get_settings().poll_interval_seconds == 60.0
            clear_settings_cache()
            assert get_settings().poll_interval_seconds == 1.0
