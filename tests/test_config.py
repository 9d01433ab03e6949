"""Tests for configuration and functional options modules."""

import json
import os
from unittest.mock import patch

import pytest
from pydantic import BaseModel, ValidationError

from daggers.config import Settings, get_settings, print_settings_json
from daggers.options import init_config, set_field


class TestSettings:
    """Test Settings class."""

    def test_default_settings(self) -> None:
        """Settings should have sensible defaults."""
        settings = Settings()

        assert settings.docker_binary == "docker"
        assert settings.exec_timeout == 3600
        assert settings.mount_path == "/src"
        assert settings.log_level == "INFO"
        assert settings.secret_env_vars == ["GITHUB_TOKEN"]

    def test_settings_from_env(self) -> None:
        """Settings should be loadable from environment variables."""
        with patch.dict(
            os.environ,
            {
                "DAGGERS_DOCKER_BINARY": "podman",
                "DAGGERS_LOG_LEVEL": "DEBUG",
                "DAGGERS_EXEC_TIMEOUT": "600",
                "DAGGERS_SECRET_ENV_VARS": '["GITHUB_TOKEN", "NPM_TOKEN"]',
            },
        ):
            settings = Settings()
            assert settings.docker_binary == "podman"
            assert settings.log_level == "DEBUG"
            assert settings.exec_timeout == 600
            assert settings.secret_env_vars == ["GITHUB_TOKEN", "NPM_TOKEN"]

    def test_relative_mount_path_rejected(self) -> None:
        """mount_path must be absolute."""
        with pytest.raises(ValidationError):
            Settings(mount_path="src")

    def test_exec_timeout_minimum(self) -> None:
        """exec_timeout below one minute is rejected."""
        with pytest.raises(ValidationError):
            Settings(exec_timeout=5)


class TestGetSettings:
    """Test get_settings function."""

    def test_get_settings_returns_settings(self) -> None:
        """get_settings should return a Settings instance."""
        assert isinstance(get_settings(), Settings)


class TestPrintSettingsJson:
    """Test print_settings_json function."""

    def test_print_settings_json(self) -> None:
        """print_settings_json should return valid JSON."""
        data = json.loads(print_settings_json())

        assert "docker_binary" in data
        assert "mount_path" in data
        assert "log_level" in data

    def test_print_settings_json_with_custom_settings(self) -> None:
        """print_settings_json should use the provided settings."""
        data = json.loads(print_settings_json(Settings(docker_binary="podman")))

        assert data["docker_binary"] == "podman"


class _Sample(BaseModel):
    name: str = "default"
    count: int = 0


class TestInitConfig:
    """Tests for init_config and set_field."""

    def test_no_options_gives_defaults(self) -> None:
        """Without options the defaults are returned."""
        cfg = init_config(_Sample)

        assert cfg == _Sample()

    def test_options_left_to_right(self) -> None:
        """Later options override earlier ones."""
        cfg = init_config(
            _Sample,
            set_field("name", "first"),
            set_field("count", 3),
            set_field("name", "second"),
        )

        assert cfg.name == "second"
        assert cfg.count == 3

    def test_set_field_returns_new_instance(self) -> None:
        """set_field should not modify its input."""
        original = _Sample()

        updated = set_field("name", "changed")(original)

        assert original.name == "default"
        assert updated.name == "changed"
