"""Configuration management for the meal planner using Pydantic Settings."""

from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class WhoopSettings(BaseSettings):
    """Whoop API OAuth settings."""

    model_config = SettingsConfigDict(env_prefix="WHOOP_", env_file=".env", extra="ignore")

    client_id: str = ""
    client_secret: SecretStr = SecretStr("")
    redirect_uri: str = "http://localhost:8080/callback"
    access_token: SecretStr = SecretStr("")
    refresh_token: SecretStr = SecretStr("")
    token_file: str = "~/.config/mealplanner/whoop_tokens.json"


class DatabaseSettings(BaseSettings):
    """Database settings."""

    model_config = SettingsConfigDict(env_prefix="", env_file=".env", extra="ignore")

    database_url: str = Field(default="sqlite:///mealplanner.db", alias="DATABASE_URL")
    echo_sql: bool = Field(default=False, alias="DATABASE_ECHO")


class PlannerSettings(BaseSettings):
    """Meal selection and analysis tuning."""

    model_config = SettingsConfigDict(env_prefix="PLANNER_", env_file=".env", extra="ignore")

    # Minimum number of image-bearing library meals before a plan can be drawn
    min_pool_size: int = 20
    # Relative half-over-half change that flips a trend out of "stable"
    trend_threshold: float = 0.05
    analysis_days: int = 7
    max_results: int = 28
    default_user_id: str = "whoop_user_main"

    plan_cache_ttl_seconds: int = 6 * 3600
    image_cache_ttl_seconds: int = 3600
    cache_max_entries: int = 1024
    daily_sync_hour: int = 5


class Settings(BaseSettings):
    """Main meal planner settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # General
    environment: Literal["development", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    timezone: str = "UTC"

    # Sub-settings
    whoop: WhoopSettings = Field(default_factory=WhoopSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    planner: PlannerSettings = Field(default_factory=PlannerSettings)


# Global settings instance
settings = Settings()
