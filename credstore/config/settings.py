"""
Configuration using Pydantic settings for type-safe backend selection.

Every field can be overridden with a ``CREDSTORE_``-prefixed environment
variable, e.g. ``CREDSTORE_BACKEND=mock`` or ``CREDSTORE_COLLECTION=work``.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BackendName = Literal["auto", "secret-service", "keychain", "credman", "mock"]


class CredStoreSettings(BaseSettings):
    """Settings consulted when the active backend is first bound."""

    model_config = SettingsConfigDict(
        env_prefix="CREDSTORE_",
        case_sensitive=False,
    )

    backend: BackendName = Field(
        default="auto",
        description="Backend to bind on first use; 'auto' selects by operating system",
    )
    collection: str = Field(
        default="login",
        min_length=1,
        description="Secret Service collection holding the items (must already exist)",
    )
    security_binary: str = Field(
        default="/usr/bin/security",
        min_length=1,
        description="Path to the macOS security tool used by the Keychain backend",
    )
    log_level: str = Field(default="INFO", description="Minimum log level for configure_logging")

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Upper-case and validate the log level name."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return level


@lru_cache(maxsize=1)
def get_settings() -> CredStoreSettings:
    """Return the process-wide settings, read from the environment once."""
    return CredStoreSettings()
