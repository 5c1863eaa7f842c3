"""
Configuration settings for the workflow trigger and execution engine.
"""
from pathlib import Path
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


DEFAULT_HOME_DIRNAME = ".robomesh"
DEFAULT_TRIGGERS_FILENAME = "triggers.json"


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Application data settings
    robomesh_home: Optional[Path] = Field(
        default=None,
        description="Application data directory (defaults to ~/.robomesh)"
    )
    triggers_file: Optional[Path] = Field(
        default=None,
        description="Path of the persisted trigger state file"
    )
    persist_triggers: bool = Field(
        default=True,
        description="Persist trigger state to disk"
    )

    # Scheduler settings
    trigger_check_interval_ms: int = Field(
        default=10000,
        gt=0,
        description="Milliseconds between trigger check cycles"
    )

    # Executor settings
    shell_executable: str = Field(
        default="/bin/sh",
        description="Shell used to run shell node commands"
    )

    # Application settings
    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    # API settings
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    api_port: int = Field(
        default=8000,
        description="API server port"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    def home_directory(self) -> Path:
        """Directory holding per-user application data."""
        if self.robomesh_home:
            return Path(self.robomesh_home).expanduser()
        return Path.home() / DEFAULT_HOME_DIRNAME

    def resolve_triggers_file(self) -> Optional[Path]:
        """
        Resolve where trigger state is persisted.

        Returns:
            The trigger file path, or None when persistence is disabled
        """
        if not self.persist_triggers:
            return None
        if self.triggers_file:
            return Path(self.triggers_file).expanduser()
        return self.home_directory() / DEFAULT_TRIGGERS_FILENAME


# Create global settings instance
settings = Settings()
