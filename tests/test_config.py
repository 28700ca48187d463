"""Tests for configuration module."""

import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from kmodbuild.config import Settings, get_settings, print_settings_json
from kmodbuild.errors import ConfigError

CONFIG_VARS = (
    "BUILD_DIR",
    "IMAGE_NAME",
    "REPO_URL",
    "DRIVER_REF",
    "REBUILD_IMAGE",
    "CLEANUP",
    "CLEANUP_IMAGE",
    "MODULE_NAME",
    "SOURCE_DIR_NAME",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate settings from the caller's environment and any .env file."""
    for var in CONFIG_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


class TestSettings:
    """Test Settings class."""

    def test_default_settings(self) -> None:
        """Settings should match the documented defaults."""
        settings = Settings()

        assert settings.build_dir == Path("/tmp/r8127_build")
        assert settings.image_name == "r8127-builder"
        assert settings.repo_url == "https://github.com/openwrt/rtl8127.git"
        assert settings.driver_ref is None
        assert settings.rebuild_image is False
        assert settings.cleanup is False
        assert settings.cleanup_image is False
        assert settings.module_name == "r8127"
        assert settings.log_level == "INFO"

    def test_settings_from_env(self) -> None:
        """Unprefixed variables should configure the build."""
        with patch.dict(
            os.environ,
            {
                "BUILD_DIR": "/srv/build",
                "IMAGE_NAME": "my-builder",
                "DRIVER_REF": "v1.0",
                "REBUILD_IMAGE": "1",
                "CLEANUP": "1",
                "CLEANUP_IMAGE": "0",
            },
        ):
            settings = Settings()
            assert settings.build_dir == Path("/srv/build")
            assert settings.image_name == "my-builder"
            assert settings.driver_ref == "v1.0"
            assert settings.rebuild_image is True
            assert settings.cleanup is True
            assert settings.cleanup_image is False

    def test_empty_driver_ref_means_default_branch(self) -> None:
        """An empty DRIVER_REF should be treated as unset."""
        with patch.dict(os.environ, {"DRIVER_REF": ""}):
            assert Settings().driver_ref is None

    def test_log_level_case_insensitive(self) -> None:
        with patch.dict(os.environ, {"LOG_LEVEL": "debug"}):
            assert Settings().log_level == "DEBUG"

    def test_derived_paths(self) -> None:
        """Source and module paths derive from build_dir and names."""
        settings = Settings(build_dir=Path("/b"))
        assert settings.source_dir == Path("/b/rtl8127")
        assert settings.module_path == Path("/b/rtl8127/r8127.ko")

    def test_relative_build_dir_made_absolute(self, tmp_path) -> None:
        """Bind-mount sources must be absolute; a relative BUILD_DIR is resolved."""
        with patch.dict(os.environ, {"BUILD_DIR": "relbuild"}):
            settings = Settings()
        assert settings.build_dir.is_absolute()
        assert settings.build_dir == tmp_path.resolve() / "relbuild"
        assert settings.source_dir == tmp_path.resolve() / "relbuild" / "rtl8127"

    def test_settings_are_frozen(self) -> None:
        settings = Settings()
        with pytest.raises(ValidationError):
            settings.cleanup = True


class TestGetSettings:
    """Test get_settings function."""

    def test_get_settings_returns_settings(self) -> None:
        """get_settings should return a Settings instance."""
        assert isinstance(get_settings(), Settings)

    def test_invalid_value_is_config_error(self) -> None:
        """A malformed boolean should surface as ConfigError."""
        with patch.dict(os.environ, {"CLEANUP": "maybe"}):
            with pytest.raises(ConfigError) as exc_info:
                get_settings()
        assert "CLEANUP" in str(exc_info.value)
        assert exc_info.value.code == "config_error"


class TestPrintSettingsJson:
    """Test print_settings_json function."""

    def test_print_settings_json(self) -> None:
        """print_settings_json should return valid JSON."""
        parsed = json.loads(print_settings_json(Settings()))

        assert parsed["image_name"] == "r8127-builder"
        assert "build_dir" in parsed
        assert "cleanup" in parsed

    def test_print_settings_json_default(self) -> None:
        """print_settings_json without args should use default settings."""
        parsed = json.loads(print_settings_json())
        assert "repo_url" in parsed
