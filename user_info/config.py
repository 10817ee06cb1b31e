"""
Configuration and settings for the user-info service.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PORT = 60000


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Database (Postgres expected, any SQLAlchemy URL works)
    database_url: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    # HTTP listener
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=DEFAULT_PORT)

    log_level: str = Field(default="INFO")

    # Appended to usernames on the bag routes, e.g. "@iplantcollaborative.org"
    user_domain: str = Field(default="")

    # Build metadata reported by --version
    app_version: str = Field(default="")
    git_ref: str = Field(default="")
    built_by: str = Field(default="")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()


def load_settings(env_file: str | None = None, **overrides) -> Settings:
    """
    Build settings from an explicit env-style file instead of the cached
    default. Keyword overrides win over both the file and the environment.
    """
    if env_file:
        return Settings(_env_file=env_file, **overrides)
    return Settings(**overrides)


def fix_port(port: str | int) -> int:
    """Accept both "60000" and the ":60000" listen-address form."""
    value = str(port).strip()
    if value.startswith(":"):
        value = value[1:]
    return int(value)
