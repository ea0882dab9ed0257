"""Runtime settings for libpower.

Values are read from ``LIBPOWER_*`` environment variables (or a ``.env`` file)
and can be overridden per invocation by CLI options.
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ErrorPolicy(str, Enum):
    """What the loader does with a malformed internal power group."""

    SKIP = "skip"  # drop the group, debug log only
    WARN = "warn"  # drop the group with a warning
    ABORT = "abort"  # re-raise and stop loading


class Settings(BaseSettings):
    on_error: ErrorPolicy = ErrorPolicy.WARN
    report_digits: int = Field(default=3, ge=0, le=12, description="Digits in power reports")
    quiet: bool = False

    model_config = SettingsConfigDict(
        env_prefix="LIBPOWER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
