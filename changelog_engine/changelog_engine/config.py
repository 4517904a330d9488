"""Change-log compiler configuration loaded from environment variables."""

from __future__ import annotations

import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Compiler settings loaded from environment variables with CHANGELOG_ prefix."""

    model_config = SettingsConfigDict(
        env_prefix="CHANGELOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    debug: bool = False

    # Scripts
    script_suffix: str = ".py"
    script_encoding: str = "utf-8"

    # Inclusion
    max_include_depth: int = 64

    # Custom includeAll filters / comparators
    allow_dotted_extensions: bool = True

    # Logging
    structured_logging: bool = False
    log_level: str = "INFO"

    @field_validator("script_suffix")
    @classmethod
    def suffix_has_dot(cls, v: str) -> str:
        if not v.startswith("."):
            return "." + v
        return v

    @field_validator("max_include_depth")
    @classmethod
    def depth_is_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_include_depth must be at least 1")
        return v


def load_settings(**overrides: object) -> Settings:
    """Load settings from environment, with optional overrides for testing."""
    settings = Settings(**overrides)  # type: ignore[arg-type]

    if settings.debug:
        logger.info("Loaded settings: max_include_depth=%d", settings.max_include_depth)

    return settings
