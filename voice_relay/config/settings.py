"""
Environment-based settings for the voice relay.

Values are read from the process environment (after an optional .env file has
been loaded by the entry point) and validated with pydantic so a bad PORT or
greeting delay fails at startup instead of mid-call.
"""

import os
from functools import lru_cache
from typing import Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from voice_relay.config.constants import (
    DEFAULT_REALTIME_MODEL,
    DEFAULT_SUMMARY_MODEL,
    GREETING_DELAY_SECONDS,
)


class ConfigurationError(Exception):
    """Raised when the environment holds an invalid setting."""


class Settings(BaseModel):
    """Validated application settings."""

    openai_api_key: Optional[str] = Field(None, description="OpenAI API key")
    realtime_model: str = Field(DEFAULT_REALTIME_MODEL, description="Realtime model name")
    summary_model: str = Field(DEFAULT_SUMMARY_MODEL, description="Model used for summaries")
    app_env: str = Field("development", description="Deployment environment")
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    greeting_delay: float = Field(GREETING_DELAY_SECONDS, ge=0)
    host: str = "0.0.0.0"
    port: int = Field(8000, ge=1, le=65535)
    log_level: str = "INFO"

    @field_validator("app_env", "log_level")
    def normalize_case(cls, v, info):
        """Store the environment lowercase and the log level uppercase."""
        return v.upper() if info.field_name == "log_level" else v.lower()

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read from, defaults to os.environ

        Returns:
            Settings: The validated settings

        Raises:
            ConfigurationError: If a variable holds an invalid value
        """
        env = os.environ if environ is None else environ
        values = {
            "openai_api_key": env.get("OPENAI_API_KEY") or None,
            "realtime_model": env.get("OPENAI_REALTIME_MODEL", DEFAULT_REALTIME_MODEL),
            "summary_model": env.get("OPENAI_SUMMARY_MODEL", DEFAULT_SUMMARY_MODEL),
            "app_env": env.get("APP_ENV", "development"),
            "supabase_url": env.get("SUPABASE_URL") or None,
            "supabase_key": env.get("SUPABASE_SERVICE_ROLE_KEY") or env.get("SUPABASE_ANON_KEY") or None,
            "greeting_delay": env.get("GREETING_DELAY_SECONDS", GREETING_DELAY_SECONDS),
            "host": env.get("HOST", "0.0.0.0"),
            "port": env.get("PORT", "8000"),
            "log_level": env.get("LOG_LEVEL", "INFO"),
        }
        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigurationError(f"Environment validation failed: {e}") from e


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings, read once from the environment."""
    return Settings.from_env()
