"""
Configuration Management for Caretaker Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The REST backend is optional: when its URL or key is missing the
application runs on the local cache alone.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BackendSettings(BaseSettings):
    """Remote REST store (PostgREST/Supabase style) configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SUPABASE_",
        extra="ignore"
    )

    url: str = Field(
        default="",
        description="Base URL of the REST backend"
    )
    anon_key: str = Field(
        default="",
        description="API key sent as both apikey and bearer token"
    )
    timeout_seconds: float = Field(
        default=10.0,
        ge=1.0,
        le=120.0,
        description="HTTP timeout for backend calls"
    )
    family_data_table: str = Field(
        default="family_data",
        description="Table holding (family_id, key, value, updated_at) rows"
    )
    users_table: str = Field(
        default="users",
        description="Table holding user accounts"
    )

    @field_validator('url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.strip().rstrip("/")

    @property
    def is_configured(self) -> bool:
        """Backend is used only when both URL and key are present."""
        return bool(self.url and self.anon_key)


class CacheSettings(BaseSettings):
    """Local key-value cache configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CARETAKER_CACHE_",
        extra="ignore"
    )

    enabled: bool = Field(
        default=True,
        description="Disable to simulate an unavailable cache"
    )
    namespace: str = Field(
        default="caretaker",
        min_length=1,
        description="Prefix of every cache key"
    )
    file_path: Optional[str] = Field(
        default=None,
        description="Optional JSON file the cache is persisted to"
    )
    quota_bytes: int = Field(
        default=5 * 1024 * 1024,
        ge=1024,
        description="Maximum total size of cached values"
    )

    @field_validator('file_path')
    @classmethod
    def validate_file_path(cls, v: Optional[str]) -> Optional[str]:
        """Warn if the cache directory doesn't exist (it is created on first write)."""
        if v and not Path(v).parent.exists():
            import warnings
            warnings.warn(
                f"Cache directory {Path(v).parent} does not exist yet. "
                "It will be created on the first write."
            )
        return v


class AuthSettings(BaseSettings):
    """Authentication and session configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CARETAKER_AUTH_",
        extra="ignore"
    )

    session_max_age_hours: int = Field(
        default=24,
        ge=1,
        description="Sessions older than this are logged out on next check"
    )
    min_password_length: int = Field(
        default=4,
        ge=1,
        le=128,
        description="Minimum password length on registration"
    )
    bcrypt_rounds: int = Field(
        default=12,
        ge=4,
        le=16,
        description="bcrypt work factor"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    debug_mode: bool = Field(
        default=False,
        description="Log at DEBUG level (cache hits, skipped syncs)"
    )

    # Bookkeeping defaults
    action_log_limit: int = Field(
        default=1000,
        ge=1,
        description="Number of most recent action log entries kept"
    )
    default_monthly_base_amount: float = Field(
        default=6250.0,
        gt=0,
        description="Monthly base amount used until the family sets one"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def backend(self) -> BackendSettings:
        return BackendSettings()

    @property
    def cache(self) -> CacheSettings:
        return CacheSettings()

    @property
    def auth(self) -> AuthSettings:
        return AuthSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("backend", "cache", "auth", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    # An unconfigured backend is valid, but worth reporting
    if results.get("backend"):
        results["backend_configured"] = settings.backend.is_configured

    return results
