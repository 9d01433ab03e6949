"""Configuration settings for daggers.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

from pathlib import PurePosixPath
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the DAGGERS_ prefix.
    CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="DAGGERS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Engine
    docker_binary: str = Field(
        default="docker",
        description="Docker CLI executable used to resolve volumes and run containers",
    )
    exec_timeout: int = Field(
        default=3600,
        ge=60,
        description="Timeout for running a prepared container, in seconds",
    )
    mount_path: str = Field(
        default="/src",
        description="Path the working directory is mounted at inside containers",
    )

    # Secrets read once from the host environment per pipeline invocation
    secret_env_vars: list[str] = Field(
        default_factory=lambda: ["GITHUB_TOKEN"],
        description="Host environment variables wrapped as container secrets",
    )

    @field_validator("mount_path")
    @classmethod
    def validate_mount_path(cls, v: str) -> str:
        """Validate mount path is absolute."""
        if not PurePosixPath(v).is_absolute():
            raise ValueError("mount_path must be an absolute path")
        return v


def get_settings() -> Settings:
    """Get the application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = ["Settings", "get_settings", "print_settings_json"]
