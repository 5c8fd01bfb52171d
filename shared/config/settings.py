"""Process-wide configuration powered by ``pydantic-settings``."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoggingSettings(BaseSettings):
    """Configuration for the structlog/loguru logging pipeline."""

    level: str = Field(default="INFO", description="Minimum log level emitted to stderr")

    model_config = SettingsConfigDict(env_prefix="LOG_", env_file=".env", extra="ignore")


class Settings(BaseSettings):
    """Top-level application settings namespace."""

    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = SettingsConfigDict(env_file=".env", env_nested_delimiter="__", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance for application use."""

    return Settings()


__all__ = [
    "LoggingSettings",
    "Settings",
    "get_settings",
]
