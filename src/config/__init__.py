"""Configuration package."""

from src.config.settings import (
    AlertSettings,
    AppSettings,
    BudgetSettings,
    GoalSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AlertSettings",
    "AppSettings",
    "BudgetSettings",
    "GoalSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
