"""Configuration settings for kmodbuild.

Uses pydantic-settings for config parsing from environment variables
and defaults. Variable names carry no prefix (BUILD_DIR, IMAGE_NAME, ...)
so existing invocations such as ``CLEANUP=1 kmodbuild`` keep working.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from kmodbuild.errors import ConfigError

DEFAULT_BUILD_DIR = Path("/tmp/r8127_build")
DEFAULT_IMAGE_NAME = "r8127-builder"
DEFAULT_REPO_URL = "https://github.com/openwrt/rtl8127.git"


class Settings(BaseSettings):
    """Build configuration.

    Settings are loaded from unprefixed environment variables (or a local
    ``.env`` file) and are immutable once loaded.
    """

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Paths
    build_dir: Path = Field(
        default=DEFAULT_BUILD_DIR,
        description="Working directory for the checkout, Dockerfile and logs",
    )
    headers_root: Path = Field(
        default=Path("/usr/src"),
        description="Directory holding linux-headers-* trees",
    )
    fallback_headers: str = Field(
        default="linux-headers-truenas-production-amd64",
        description="Header tree used when no version-specific tree exists",
    )

    # Toolchain image
    image_name: str = Field(
        default=DEFAULT_IMAGE_NAME,
        min_length=1,
        description="Name of the cached toolchain image",
    )
    base_image: str = Field(
        default="debian:bookworm",
        min_length=1,
        description="Base image for the generated Dockerfile",
    )
    rebuild_image: bool = Field(
        default=False,
        description="Rebuild the toolchain image even if it exists",
    )

    # Driver source
    repo_url: str = Field(
        default=DEFAULT_REPO_URL,
        min_length=1,
        description="Git repository with the driver source",
    )
    driver_ref: str | None = Field(
        default=None,
        description="Branch or tag to check out (repository default if unset)",
    )
    source_dir_name: str = Field(
        default="rtl8127",
        min_length=1,
        description="Checkout directory name inside build_dir",
    )
    module_name: str = Field(
        default="r8127",
        min_length=1,
        description="Kernel module name produced by the build",
    )

    # Teardown
    cleanup: bool = Field(
        default=False,
        description="Delete the build directory on exit",
    )
    cleanup_image: bool = Field(
        default=False,
        description="Delete the toolchain image on exit",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    @field_validator("build_dir")
    @classmethod
    def _absolute_build_dir(cls, value: Path) -> Path:
        return value.expanduser().resolve()

    @field_validator("driver_ref", mode="before")
    @classmethod
    def _empty_ref_is_unset(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value

    @property
    def source_dir(self) -> Path:
        """Path of the driver checkout."""
        return self.build_dir / self.source_dir_name

    @property
    def module_path(self) -> Path:
        """Expected path of the compiled kernel object."""
        return self.source_dir / f"{self.module_name}.ko"


def get_settings() -> Settings:
    """Load settings from the environment.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ConfigError: If any variable holds an invalid value.
    """
    try:
        return Settings()
    except ValidationError as e:
        fields = ", ".join(
            str(err["loc"][0]).upper() for err in e.errors() if err.get("loc")
        )
        raise ConfigError(
            f"Invalid configuration: {fields or e}",
            hint="Check the environment variables listed above.",
        ) from e


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


__all__ = [
    "DEFAULT_BUILD_DIR",
    "DEFAULT_IMAGE_NAME",
    "DEFAULT_REPO_URL",
    "Settings",
    "get_settings",
    "print_settings_json",
]
