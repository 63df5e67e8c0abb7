"""Configuration package."""

from ledger_fees.config.settings import (
    FeeCacheSettings,
    FeeEngineSettings,
    FeeValidationSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "FeeCacheSettings",
    "FeeEngineSettings",
    "FeeValidationSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
