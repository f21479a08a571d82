"""Application settings using Pydantic Settings."""

import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from fscprobe.core.config.loader import ConfigLoader


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="FSCPROBE_LOGGING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    level: str = Field(
        default="WARNING",
        description="Log level",
    )
    format: str = Field(
        default="[%(name)s] %(message)s",
        description="Log format string",
    )
    file: Path | None = Field(
        default=None,
        description="Log file path",
    )
    use_rich: bool = Field(
        default=True,
        description="Use Rich console for log output",
    )

    @field_validator("level", mode="before")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator("file", mode="before")
    @classmethod
    def validate_file(cls, v: str | None) -> Path | None:
        """Validate and convert file to Path."""
        if v is None or v == "":
            return None
        return Path(v)


class ToolchainSettings(BaseSettings):
    """Build toolchain location settings."""

    model_config = SettingsConfigDict(
        env_prefix="FSCPROBE_TOOLCHAIN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    dotnet_path: Path | None = Field(
        default=None,
        description="Explicit path to the dotnet host executable",
    )
    require_msbuild: bool = Field(
        default=True,
        description="Verify that 'dotnet msbuild' runs during toolchain setup",
    )

    @field_validator("dotnet_path", mode="before")
    @classmethod
    def validate_dotnet_path(cls, v: str | None) -> Path | None:
        """Validate and convert dotnet_path to Path."""
        if v is None or v == "":
            return None
        return Path(v)


class BuildSettings(BaseSettings):
    """Graph build configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="FSCPROBE_BUILD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    action: str = Field(
        default="Build",
        min_length=1,
        description="Target executed on every graph node",
    )
    max_parallel: int = Field(
        default_factory=lambda: os.cpu_count() or 1,
        ge=1,
        le=256,
        description="Maximum number of nodes built concurrently",
    )
    timeout: int | None = Field(
        default=None,
        ge=1,
        description="Per-node build timeout in seconds (None = no timeout)",
    )
    global_properties: dict[str, str] = Field(
        default_factory=dict,
        description="Global properties applied to the root project",
    )
    restore: bool = Field(
        default=False,
        description="Run the Restore target before building each node",
    )
    provide_command_line_args: bool = Field(
        default=False,
        description="Pass ProvideCommandLineArgs=true so Fsc records its arguments",
    )


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="FSCPROBE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    toolchain: ToolchainSettings = Field(default_factory=ToolchainSettings)
    build: BuildSettings = Field(default_factory=BuildSettings)

    @classmethod
    def from_yaml(cls, path: Path) -> "Settings":
        """Load settings from YAML file.

        Args:
            path: Path to YAML configuration file.

        Returns:
            Settings instance with values from YAML.
        """
        loader = ConfigLoader(path)
        loader.load()

        return cls(
            logging=LoggingSettings(**loader.get_section("logging")),
            toolchain=ToolchainSettings(**loader.get_section("toolchain")),
            build=BuildSettings(**loader.get_section("build")),
        )

    @classmethod
    def load(cls, config_path: Path | None = None) -> "Settings":
        """Load settings from a file or from the default locations.

        Priority: explicit file > environment variables > .env > defaults

        Args:
            config_path: Optional YAML file to load.

        Returns:
            Settings instance.
        """
        if config_path is not None:
            return cls.from_yaml(config_path)

        return cls()


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings singleton.
    """
    return Settings.load()
