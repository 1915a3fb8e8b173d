"""Centralized CLI configuration using Pydantic Settings.

The library functions in :mod:`portalloc.prober` never read these; only the
``portalloc`` command does.
"""

from functools import lru_cache
from typing import Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

from .prober import MAX_PORT

load_dotenv()


class Settings(BaseSettings):
    """CLI settings loaded from PORTALLOC_* environment variables."""

    # ==================== Probe ====================
    # Empty host binds all local interfaces (dual-stack where available)
    host: str = ""

    # ==================== Search ====================
    search_start: int = 8082
    search_size: int = 100

    # ==================== Logging ====================
    log_level: str = "WARNING"
    log_file: Optional[str] = None  # If None, log to stderr

    @field_validator("search_start")
    @classmethod
    def check_port(cls, v):
        if not 0 <= v <= MAX_PORT:
            raise ValueError(f"port must be between 0 and {MAX_PORT}, got {v}")
        return v

    @field_validator("search_size")
    @classmethod
    def check_size(cls, v):
        if v < 1:
            raise ValueError(f"search size must be at least 1, got {v}")
        return v

    @field_validator("log_level")
    @classmethod
    def normalize_level(cls, v):
        return v.upper()

    # Handle empty strings for optional string fields
    @field_validator("log_file", mode="before")
    @classmethod
    def parse_optional_str(cls, v):
        if v == "":
            return None
        return v

    model_config = SettingsConfigDict(
        env_prefix="PORTALLOC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
