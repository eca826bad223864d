"""
Configuration Management for Spend Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Relational store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    url: str = Field(
        default="sqlite+aiosqlite:///./spend_ledger.db",
        description="SQLAlchemy async URL (postgresql+asyncpg://... in production)"
    )
    echo: bool = Field(
        default=False,
        description="Echo SQL statements to the log"
    )
    pool_pre_ping: bool = Field(
        default=True,
        description="Test pooled connections before handing them out"
    )
    pool_recycle: int = Field(
        default=300,
        ge=-1,
        description="Seconds after which a pooled connection is replaced"
    )
    tenant_setting: str = Field(
        default="app.current_tenant",
        description="Transaction-local setting read by row security policies"
    )
    connect_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts made when bootstrapping the schema"
    )

    @field_validator('url')
    @classmethod
    def validate_async_driver(cls, v: str) -> str:
        """Only async drivers can be used with the asyncio engine."""
        scheme = v.split("://", 1)[0]
        if "+" not in scheme:
            raise ValueError(
                f"Database URL must name an async driver "
                f"(e.g. postgresql+asyncpg, sqlite+aiosqlite), got '{scheme}'"
            )
        return v

    @field_validator('tenant_setting')
    @classmethod
    def validate_tenant_setting(cls, v: str) -> str:
        """Custom settings need a dotted prefix in PostgreSQL."""
        if "." not in v or not v.replace(".", "").replace("_", "").isalnum():
            raise ValueError(f"Invalid tenant setting name: {v}")
        return v


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

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Log level for structured logging"
    )

    # Presentation
    currency_symbol: str = Field(
        default="₹",
        min_length=1,
        max_length=5,
        description="Symbol used in user-facing messages"
    )
    alert_threshold_percent: int = Field(
        default=75,
        ge=0,
        le=100,
        description="Budget usage at which an alert is raised"
    )

    # Profile defaults
    note_max_length: int = Field(
        default=500,
        ge=1,
        description="Maximum length of a profile note accepted from tools"
    )
    fallback_profile_email: str = Field(
        default="unknown@example.com",
        description="Email used when a profile must be created without one"
    )
    fallback_profile_name: str = Field(
        default="User",
        description="Name used when a profile must be created without one"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


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
    def database(self) -> DatabaseSettings:
        return DatabaseSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
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

    try:
        _ = settings.database
        results["database"] = True
    except Exception as e:
        results["database"] = False
        results["database_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
