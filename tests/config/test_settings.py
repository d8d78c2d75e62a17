"""Tests for environment-driven settings.

Covers: defaults, DIAGNOSTICS_ prefixed overrides, JSON log rendering
rules, invalid values.
"""

import pytest
from pydantic import ValidationError

from expression_diagnostics.config.settings import (
    Environment,
    LogLevel,
    Settings,
    get_settings,
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    for name in ("LOG_LEVEL", "LOG_JSON", "ENVIRONMENT"):
        monkeypatch.delenv(f"DIAGNOSTICS_{name}", raising=False)
    # Keep a developer's local .env out of the picture.
    monkeypatch.chdir(tmp_path)


class TestSettingsDefaults:
    """Settings has correct defaults."""

    def test_defaults(self) -> None:
        settings = get_settings()
        assert settings.LOG_LEVEL == LogLevel.INFO
        assert settings.LOG_JSON is None
        assert settings.ENVIRONMENT == Environment.DEV
        assert not settings.is_production

    def test_dev_renders_console(self) -> None:
        assert not Settings().render_json_logs


class TestSettingsFromEnv:
    """DIAGNOSTICS_-prefixed environment variables override defaults."""

    def test_log_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DIAGNOSTICS_LOG_LEVEL", "DEBUG")
        assert Settings().LOG_LEVEL == LogLevel.DEBUG

    def test_production_renders_json(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DIAGNOSTICS_ENVIRONMENT", "prod")
        settings = Settings()
        assert settings.is_production
        assert settings.render_json_logs

    def test_explicit_json_flag_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DIAGNOSTICS_ENVIRONMENT", "staging")
        monkeypatch.setenv("DIAGNOSTICS_LOG_JSON", "false")
        assert not Settings().render_json_logs

    def test_invalid_level_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DIAGNOSTICS_LOG_LEVEL", "VERBOSE")
        with pytest.raises(ValidationError):
            Settings()
