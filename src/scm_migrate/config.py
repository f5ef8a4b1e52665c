"""Configuration settings for scm-migrate."""

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ExportConfig(BaseModel):
    """Configuration for export runs.

    Controls the working directory, page size, comment fan-out and
    the size bound of pull request chunk files.
    """

    export_dir: str = Field(
        default="migration-export",
        description="Directory the export tree and archive are written to",
    )

    # Concurrency
    parallelism: int = Field(
        default=20,
        ge=1,
        le=100,
        description="Workers fetching pull request comments concurrently",
    )

    # Pagination
    page_size: int = Field(
        default=25,
        ge=1,
        le=100,
        description="Fixed page size for every provider listing call",
    )

    # Output
    max_chunk_size_mb: int = Field(
        default=25,
        ge=1,
        le=1024,
        description="Maximum serialized size of a single pr<N>.json file",
    )

    @property
    def max_chunk_size_bytes(self) -> int:
        """Get the chunk bound in bytes."""
        return self.max_chunk_size_mb * 1024 * 1024


class GitConfig(BaseModel):
    """Configuration for the git command helper.

    Minimum tool versions are checked once before any clone happens.
    """

    min_git_version: str = Field(
        default="2.45",
        description="Minimum supported git version",
    )
    min_lfs_version: str = Field(
        default="3.5",
        description="Minimum supported git-lfs version",
    )
    command_timeout: float | None = Field(
        default=None,
        gt=0,
        description="Seconds before a git command is killed (None = no timeout)",
    )


class LoggingConfig(BaseModel):
    """Configuration for logging behavior.

    Controls file logging, rotation, and output format.
    """

    log_file: str | None = Field(
        default=None,
        description="Optional path for file logging (enables rotation)",
    )
    rotation: str = Field(
        default="10 MB",
        description="When to rotate log file (e.g., '10 MB', '1 day')",
    )
    retention: str = Field(
        default="7 days",
        description="How long to keep rotated logs",
    )
    serialize: bool = Field(
        default=False,
        description="If True, output JSON format to file",
    )


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
    )

    # --------------------------------------------------------------------------
    # Source Provider (GitHub)
    # --------------------------------------------------------------------------
    github_token: str = Field(
        default="",
        description="GitHub personal access token",
    )
    github_username: str = Field(
        default="",
        description="Login used for authenticated git clones",
    )
    github_base_url: str | None = Field(
        default=None,
        description="API root for GitHub Enterprise (None = api.github.com)",
    )

    # --------------------------------------------------------------------------
    # Target System
    # --------------------------------------------------------------------------
    target_endpoint: str = Field(
        default="",
        description="Base URL of the target code-hosting API",
    )
    target_token: str = Field(
        default="",
        description="API token for the target system",
    )

    # --------------------------------------------------------------------------
    # Application
    # --------------------------------------------------------------------------
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # --------------------------------------------------------------------------
    # Export & Git
    # --------------------------------------------------------------------------
    export: ExportConfig = Field(
        default_factory=ExportConfig,
        description="Export run configuration",
    )
    git: GitConfig = Field(
        default_factory=GitConfig,
        description="Git command helper configuration",
    )

    # --------------------------------------------------------------------------
    # Logging Configuration
    # --------------------------------------------------------------------------
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration (file output, rotation)",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
