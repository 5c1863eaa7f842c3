"""
Tests for the core configuration module.
"""
import pytest
import os
from pathlib import Path
from unittest.mock import patch
from pydantic import ValidationError
from core.config import Settings, settings


class TestSettings:
    """Test the Settings class."""

    def test_default_values(self):
        """Test that default values are set correctly."""
        with patch.dict(os.environ, {}, clear=True):
            test_settings = Settings(_env_file=None)

            assert test_settings.robomesh_home is None
            assert test_settings.triggers_file is None
            assert test_settings.persist_triggers is True
            assert test_settings.trigger_check_interval_ms == 10000
            assert test_settings.shell_executable == "/bin/sh"
            assert test_settings.debug is False
            assert test_settings.log_level == "INFO"
            assert test_settings.api_host == "0.0.0.0"
            assert test_settings.api_port == 8000

    def test_environment_variable_override(self):
        """Test that environment variables override defaults."""
        test_env = {
            "ROBOMESH_HOME": "/srv/robomesh",
            "TRIGGER_CHECK_INTERVAL_MS": "500",
            "DEBUG": "true",
            "LOG_LEVEL": "DEBUG",
            "API_PORT": "9000",
        }

        with patch.dict(os.environ, test_env, clear=True):
            test_settings = Settings(_env_file=None)

            assert test_settings.robomesh_home == Path("/srv/robomesh")
            assert test_settings.trigger_check_interval_ms == 500
            assert test_settings.debug is True
            assert test_settings.log_level == "DEBUG"
            assert test_settings.api_port == 9000

    def test_interval_must_be_positive(self):
        """Test validation of the check interval."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, trigger_check_interval_ms=0)

    def test_global_settings_instance(self):
        """Test that the global settings instance exists."""
        assert isinstance(settings, Settings)


class TestTriggersFile:
    """Test resolution of the persisted trigger file."""

    def test_default_location(self):
        """Test the per-user default path."""
        with patch.dict(os.environ, {}, clear=True):
            test_settings = Settings(_env_file=None)
            assert test_settings.resolve_triggers_file() == Path.home() / ".robomesh" / "triggers.json"

    def test_home_override(self, tmp_path):
        """Test that the application home moves the default file."""
        test_settings = Settings(_env_file=None, robomesh_home=tmp_path)
        assert test_settings.resolve_triggers_file() == tmp_path / "triggers.json"

    def test_explicit_file(self, tmp_path):
        """Test that an explicit file wins over the home directory."""
        test_settings = Settings(
            _env_file=None,
            robomesh_home=tmp_path / "home",
            triggers_file=tmp_path / "custom.json",
        )
        assert test_settings.resolve_triggers_file() == tmp_path / "custom.json"

    def test_persistence_disabled(self, tmp_path):
        """Test that disabling persistence yields no path."""
        test_settings = Settings(_env_file=None, persist_triggers=False, triggers_file=tmp_path / "x.json")
        assert test_settings.resolve_triggers_file() is None
