"""
Configuration Management for Ledger Fees

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The fee engine location, cache sizing and the fee naming conventions
used by the classifier are all deployment concerns, so none of them
are hard-coded in the components that consume them.
"""

from decimal import Decimal
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_FEE_ALIAS_PATTERNS = (
    "fee-,-fee,tarifa-,-tarifa,"
    "processing-fee-,-processing-fee,"
    "admin-fee-,-admin-fee"
)


def _split_csv(value: str) -> list[str]:
    return [part.strip().lower() for part in value.split(",") if part.strip()]


class FeeEngineSettings(BaseSettings):
    """Remote fee (pricing) engine configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FEE_ENGINE_",
        extra="ignore"
    )

    enabled: bool = Field(
        default=True,
        description="Whether fee calculation is enabled for this console"
    )
    base_url: Optional[str] = Field(
        default=None,
        description="Base URL of the fee engine, e.g. http://fees.local/v1"
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=120,
        description="Per-request timeout for fee engine calls"
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts made on transport errors before giving up"
    )

    @field_validator('base_url')
    @classmethod
    def strip_trailing_slash(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip().rstrip("/")
        return v or None

    @property
    def is_configured(self) -> bool:
        return self.enabled and self.base_url is not None


class FeeCacheSettings(BaseSettings):
    """Fee result cache sizing."""

    model_config = SettingsConfigDict(
        env_prefix="FEE_CACHE_",
        extra="ignore"
    )

    capacity: int = Field(
        default=100,
        ge=1,
        le=10000,
        description="Maximum number of cached fee states"
    )
    ttl_seconds: float = Field(
        default=300.0,
        gt=0,
        description="Seconds before a cached fee state expires"
    )


class FeeValidationSettings(BaseSettings):
    """
    Tolerances and naming conventions for distribution and fee checks.

    The alias patterns mix English ("fee") and Portuguese ("tarifa")
    conventions. They are kept as configuration so a deployment can
    extend them without a code change.
    """

    model_config = SettingsConfigDict(
        env_prefix="FEE_VALIDATION_",
        extra="ignore"
    )

    tolerance: Decimal = Field(
        default=Decimal("0.01"),
        ge=0,
        description="Allowed difference when comparing sums (two-decimal currency)"
    )
    fee_keywords: str = Field(
        default="fee,tarifa",
        description="Comma-separated keywords that mark an operation as a fee"
    )
    fee_alias_patterns: str = Field(
        default=DEFAULT_FEE_ALIAS_PATTERNS,
        description="Comma-separated prefixes (ending in '-') and suffixes "
                    "(starting with '-') wrapped around fee account aliases"
    )
    filter_foreign_fees: bool = Field(
        default=True,
        description="Drop fee lines that cannot be attributed to a participant"
    )

    @property
    def fee_keywords_list(self) -> list[str]:
        """Get fee keywords as a lower-cased list."""
        return _split_csv(self.fee_keywords)

    @property
    def fee_alias_patterns_list(self) -> list[str]:
        """Get alias patterns as a lower-cased list."""
        return _split_csv(self.fee_alias_patterns)


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
    def fee_engine(self) -> FeeEngineSettings:
        return FeeEngineSettings()

    @property
    def cache(self) -> FeeCacheSettings:
        return FeeCacheSettings()

    @property
    def validation(self) -> FeeValidationSettings:
        return FeeValidationSettings()


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

    Returns a dict of {setting_name: is_valid}, with an extra
    "<name>_error" entry describing each failure.
    """
    results = {}
    settings = get_settings()

    for name in ("fee_engine", "cache", "validation"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
