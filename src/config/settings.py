"""
Configuration Management for Household Finance

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The domain models carry their own defaults (10% deviation threshold,
80/95% envelope alerts, 90% on-track tolerance); these settings let a
deployment change the defaults the application flows pass in without
touching the models.
"""

from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.models.money import DEFAULT_CURRENCY, DEFAULT_LOCALE, normalize_currency


class AlertSettings(BaseSettings):
    """Thresholds for agreement deviation and envelope alerts."""

    model_config = SettingsConfigDict(
        env_prefix="ALERTS_",
        extra="ignore"
    )

    deviation_threshold_percentage: float = Field(
        default=10.0,
        ge=0.0,
        le=100.0,
        description="Percentage-point deviation from an agreement that raises an alert"
    )
    envelope_warning_percentage: float = Field(
        default=80.0,
        ge=0.0,
        le=100.0,
        description="Spent percentage at which an envelope warns"
    )
    envelope_critical_percentage: float = Field(
        default=95.0,
        ge=0.0,
        le=100.0,
        description="Spent percentage at which an envelope is critical"
    )

    @model_validator(mode="after")
    def check_order(self) -> "AlertSettings":
        if self.envelope_warning_percentage > self.envelope_critical_percentage:
            raise ValueError("Envelope warning threshold cannot exceed the critical threshold")
        return self


class BudgetSettings(BaseSettings):
    """Budget envelope defaults."""

    model_config = SettingsConfigDict(
        env_prefix="BUDGET_",
        extra="ignore"
    )

    custom_period_days: int = Field(
        default=30,
        ge=1,
        le=366,
        description="Length of a custom budget period when no explicit range is given"
    )
    rollover_enabled_by_default: bool = Field(
        default=False,
        description="Whether new envelopes carry unspent money into the next period"
    )


class GoalSettings(BaseSettings):
    """Goal tracking defaults."""

    model_config = SettingsConfigDict(
        env_prefix="GOALS_",
        extra="ignore"
    )

    on_track_tolerance: float = Field(
        default=0.9,
        gt=0.0,
        le=1.0,
        description="Fraction of the expected progress a goal needs to count as on track"
    )
    recent_contributions_limit: int = Field(
        default=10,
        ge=1,
        description="How many contributions recent-contribution queries return"
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

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Money
    default_currency: str = Field(
        default=DEFAULT_CURRENCY,
        description="ISO 4217 currency for new households"
    )
    default_locale: str = Field(
        default=DEFAULT_LOCALE,
        description="Locale used to format amounts for display"
    )

    # Households
    max_household_name_length: int = Field(
        default=100,
        ge=1,
        description="Longest household name accepted"
    )

    @field_validator("default_currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        return normalize_currency(v)


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

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def app(self) -> AppSettings:
        return AppSettings()

    @property
    def alerts(self) -> AlertSettings:
        return AlertSettings()

    @property
    def budget(self) -> BudgetSettings:
        return BudgetSettings()

    @property
    def goals(self) -> GoalSettings:
        return GoalSettings()


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

    for name in ("app", "alerts", "budget", "goals"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
