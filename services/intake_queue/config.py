"""Configuration models for the intake queue service."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CapacitySettings(BaseSettings):
    """Per-tier and total waiting-room limits."""

    emergency: int = Field(default=10, ge=0, description="Maximum waiting emergency patients.")
    senior: int = Field(default=15, ge=0, description="Maximum waiting senior patients.")
    regular: int = Field(default=25, ge=0, description="Maximum waiting regular patients.")
    total: int = Field(
        default=50,
        ge=0,
        description="Maximum waiting patients across all tiers, checked independently.",
    )
    warning_threshold: float = Field(
        default=0.8,
        gt=0.0,
        le=1.0,
        description="Fraction of a limit at which a tier is reported as WARNING.",
    )
    critical_threshold: float = Field(
        default=0.95,
        gt=0.0,
        le=1.0,
        description="Fraction of a limit at which a tier is reported as CRITICAL.",
    )

    model_config = SettingsConfigDict(extra="ignore")

    @model_validator(mode="after")
    def validate_thresholds(self) -> "CapacitySettings":
        if self.warning_threshold > self.critical_threshold:
            raise ValueError("warning_threshold must not exceed critical_threshold")
        return self


class IntakeQueueSettings(BaseSettings):
    """Aggregate configuration for the intake queue service."""

    capacity: CapacitySettings = Field(default_factory=CapacitySettings)
    senior_age_threshold: int = Field(
        default=75,
        ge=0,
        le=150,
        description="Minimum age for automatic or manual placement in the senior tier.",
    )
    reject_duplicate_names: bool = Field(
        default=False,
        description="Refuse intake of a patient whose name is already waiting.",
    )

    model_config = SettingsConfigDict(extra="ignore")


class Settings(BaseSettings):
    """Root configuration container enabling nested environment variables."""

    intake_queue: IntakeQueueSettings = Field(default_factory=IntakeQueueSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )


@lru_cache
def get_settings() -> IntakeQueueSettings:
    """Return the cached intake queue settings instance."""

    return Settings().intake_queue


__all__ = [
    "CapacitySettings",
    "IntakeQueueSettings",
    "Settings",
    "get_settings",
]
