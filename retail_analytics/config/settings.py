"""
Retail Sales Reporting Engine
Centralized Configuration Management

Configuration management using Pydantic settings with environment variable
support, validation, and type safety.
"""

from functools import lru_cache
from typing import Optional, List
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ReportSettings(BaseSettings):
    """Reporting Engine Configuration"""

    model_config = SettingsConfigDict(env_prefix="REPORTS_")

    data_path: str = Field(default="./data/sales.csv", description="Flat sales CSV consumed by the loader")
    benchmark_store_ids: List[str] = Field(
        default=["S001", "S002", "S003", "S004", "S005"],
        description="Stores compared in the weather x store report",
    )
    year_cutoff: int = Field(default=2024, description="Season/weather report covers years before this")
    seasons: List[str] = Field(
        default=["Spring", "Summer", "Autumn", "Winter"],
        description="Allowed seasonality labels",
    )
    weather_conditions: List[str] = Field(
        default=["Sunny", "Rainy", "Cloudy", "Snowy"],
        description="Known weather values",
    )
    strict_dimensions: bool = Field(
        default=False,
        description="Fail the load when a repeated dimension key disagrees with its first value",
    )
    max_workers: int = Field(default=4, description="Thread pool size for concurrent report runs")
    display_places: int = Field(default=2, description="Decimal places for monetary output")

    @field_validator("max_workers")
    @classmethod
    def validate_workers(cls, v: int) -> int:
        """At least one worker"""
        if v < 1:
            raise ValueError("max_workers must be >= 1")
        return v


class SecuritySettings(BaseSettings):
    """API Security Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    # CORS
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8088"],
        description="Allowed CORS origins"
    )


class MonitoringSettings(BaseSettings):
    """Monitoring and Observability Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    # Logging
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
    app_name: str = Field(default="retail-analytics", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", alias="API_HOST", description="API host")
    api_port: int = Field(default=8000, alias="API_PORT", description="API port")
    api_workers: int = Field(default=1, alias="API_WORKERS", description="API workers")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    reports: ReportSettings = Field(default_factory=ReportSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
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
