"""
Salon Retention Analytics
Centralized Configuration Management

This module provides configuration management using Pydantic settings with
environment variable support, validation, and type safety.
"""

from functools import lru_cache
from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AnalyticsSettings(BaseSettings):
    """Retention Engine Configuration"""

    model_config = SettingsConfigDict(env_prefix="ANALYTICS_")

    # Sentinels used by the source report
    guest_id: str = Field(default="訪客", description="Member id of walk-in customers")
    unlabelled: str = Field(default="未標註", description="Placeholder for a missing store or provider")
    completed_status: str = Field(default="完成", description="Order status of completed services")
    anonymous_name: str = Field(default="匿名", description="Display name for members without a name")

    # Duration plausibility windows (minutes, exclusive bounds)
    max_duration_minutes: int = Field(default=300, description="Upper bound for provider duration averages")
    max_hourly_duration_minutes: int = Field(default=600, description="Upper bound for hourly duration averages")

    # Lifecycle thresholds (days since last visit)
    active_days: int = Field(default=60, description="Below this a member is active")
    dormant_days: int = Field(default=120, description="Below this a member is dormant")
    at_risk_days: int = Field(default=180, description="Below this a member is at risk")

    # Lost cohort
    lost_window_days: int = Field(default=60, description="Days without a visit before a member counts as lost")
    top_n: int = Field(default=3, description="Entries reported per axis in cohort profiles")

    # Opening hours for hourly traffic
    opening_hour: int = Field(default=10, description="First opening hour")
    closing_hour: int = Field(default=21, description="Last opening hour")

    # Benchmark fallbacks when no provider contributes a value
    default_daily_throughput: float = Field(default=10.0, description="Fallback orders per day")
    default_duration_minutes: int = Field(default=45, description="Fallback service duration")


class DataSettings(BaseSettings):
    """Data Storage Configuration"""

    model_config = SettingsConfigDict(env_prefix="DATA_")

    raw_path: str = Field(default="./data/raw", description="Raw report drop path")
    curated_path: str = Field(default="./data/curated", description="Curated output path")
    encoding: str = Field(default="utf8", description="Report file encoding")


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", description="Log format: json or text")
    log_file: Optional[str] = Field(default=None, description="Log file path")


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="salon-retention-analytics", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", alias="API_HOST", description="API host")
    api_port: int = Field(default=8000, alias="API_PORT", description="API port")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)
    data: DataSettings = Field(default_factory=DataSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development"""
        return self.app_env == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
