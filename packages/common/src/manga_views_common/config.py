"""Configuration management.

Settings are read from environment variables (case-insensitive) or a local
``.env`` file and cached for the lifetime of the process.
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
VALID_LOG_FORMATS = {"console", "json"}


class Settings(BaseSettings):
    """Runtime settings for the merge jobs.

    Attributes:
        store_dir: Directory holding manga.json, daily-views.json and the
            pending staging files
        staging_folder: Name of the staging folder inside store_dir
        log_level: Minimum log level
        log_format: "console" or "json"
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    store_dir: str = "."
    staging_folder: str = "data"
    log_level: str = "INFO"
    log_format: str = "console"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        upper = v.upper()
        if upper not in VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(VALID_LOG_LEVELS)}, got {v!r}")
        return upper

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        lower = v.lower()
        if lower not in VALID_LOG_FORMATS:
            raise ValueError(f"log_format must be one of {sorted(VALID_LOG_FORMATS)}, got {v!r}")
        return lower

    @field_validator("staging_folder")
    @classmethod
    def validate_staging_folder(cls, v: str) -> str:
        if not v.strip() or v.strip() in {".", ".."}:
            raise ValueError("staging_folder must name a sub-folder of store_dir")
        return v.strip()


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
