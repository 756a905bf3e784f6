"""
Guard configuration.

Loads settings from environment variables (prefixed ``OASGUARD_``)
with sensible defaults.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Guard settings loaded from environment."""

    # ==========================================================================
    # Environment
    # ==========================================================================

    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # ==========================================================================
    # API document
    # ==========================================================================

    api_spec_path: str = ""
    base_path: str | None = None  # Overrides the document's servers[0] path

    # ==========================================================================
    # Security evaluation
    # ==========================================================================

    validate_security: bool = True

    # ==========================================================================
    # Helpers
    # ==========================================================================

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    class Config:
        env_prefix = "OASGUARD_"
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(settings: Settings | None = None) -> None:
    """Apply the configured log level to the ``oasguard`` logger tree."""
    settings = settings or get_settings()
    level = logging.DEBUG if settings.debug else settings.log_level.upper()
    logging.getLogger("oasguard").setLevel(level)
