"""Tests for settings and logging configuration."""

import pytest
import structlog
from pydantic import ValidationError

from buddyflow.config import Settings, configure_logging


class TestSettings:
    def test_defaults(self) -> None:
        settings = Settings(_env_file=None)

        assert settings.DEFAULT_DEADLINE_BUSINESS_DAYS == 7
        assert settings.MAX_BUDDIES == 5
        assert settings.MAX_ACTIVE_ASSIGNMENTS == 5
        assert settings.MAX_DEADLINE_EXTENSION_DAYS == 365
        assert settings.SNAPSHOT_VERSION == "1.0.0"

    def test_read_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MAX_ACTIVE_ASSIGNMENTS", "3")
        monkeypatch.setenv("SIDE_CHANNEL_TIMEOUT_SECONDS", "0.5")

        settings = Settings(_env_file=None)

        assert settings.MAX_ACTIVE_ASSIGNMENTS == 3
        assert settings.SIDE_CHANNEL_TIMEOUT_SECONDS == 0.5

    @pytest.mark.parametrize("field", ["MAX_BUDDIES", "SIDE_CHANNEL_TIMEOUT_SECONDS"])
    def test_limits_must_be_positive(self, field: str) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: 0})

    def test_snapshot_version_is_stripped(self) -> None:
        assert Settings(_env_file=None, SNAPSHOT_VERSION=" 2.0.0 ").SNAPSHOT_VERSION == "2.0.0"
        with pytest.raises(ValidationError):
            Settings(_env_file=None, SNAPSHOT_VERSION="  ")

    def test_unknown_environment(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, ENVIRONMENT="staging")


class TestConfigureLogging:
    @pytest.fixture(autouse=True)
    def _restore_structlog(self):
        yield
        structlog.reset_defaults()

    def test_production_renders_json(self) -> None:
        configure_logging("production")

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_development_renders_for_the_console(self) -> None:
        configure_logging("development")

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)
