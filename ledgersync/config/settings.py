"""
Configuration Management for Ledger Sync

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_RATES = {
    "BRL": Decimal("1"),
    "USD": Decimal("5.30"),
    "EUR": Decimal("5.70"),
    "GBP": Decimal("6.50"),
}

DEFAULT_CRYPTO_TICKERS = "BTC,ETH,SOL,USDT,USDC,BNB,ADA,XRP,DOGE,DOT,MATIC,LTC"


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets backed remote store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    ledger_sheet_name: str = Field(
        default="Ledger",
        description="Name of the worksheet holding the path tree"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class CurrencySettings(BaseSettings):
    """
    Exchange rate table and display precision.

    Rates are the value of ONE unit of a currency expressed in the
    base currency. Override with CURRENCY_RATES='{"BRL": 1, "USD": 5.1}'.
    """

    model_config = SettingsConfigDict(
        env_prefix="CURRENCY_",
        extra="ignore"
    )

    base_currency: str = Field(
        default="BRL",
        description="Currency every rate is expressed in"
    )
    default_preferred_currency: str = Field(
        default="BRL",
        description="Display currency used when the user has none saved"
    )
    rates: dict[str, Decimal] = Field(
        default_factory=lambda: dict(DEFAULT_RATES),
        description="Rate table: code -> value of one unit in base currency"
    )
    fiat_fraction_digits: int = Field(
        default=2,
        ge=0,
        le=4,
        description="Fraction digits when displaying fiat amounts"
    )
    crypto_fraction_digits: int = Field(
        default=8,
        ge=2,
        le=18,
        description="Maximum fraction digits when displaying crypto amounts"
    )
    crypto_tickers: str = Field(
        default=DEFAULT_CRYPTO_TICKERS,
        description="Comma-separated tickers displayed with crypto precision"
    )

    @field_validator('base_currency', 'default_preferred_currency')
    @classmethod
    def uppercase_code(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator('rates')
    @classmethod
    def validate_rates(cls, v: dict[str, Decimal]) -> dict[str, Decimal]:
        """Rates must be positive; codes are normalized to uppercase."""
        normalized = {}
        for code, rate in v.items():
            if not rate.is_finite() or rate <= 0:
                raise ValueError(f"Rate for {code} must be a positive number")
            normalized[code.strip().upper()] = rate
        return normalized

    @property
    def crypto_tickers_set(self) -> set[str]:
        """Get crypto tickers as a set."""
        return {t.strip().upper() for t in self.crypto_tickers.split(",") if t.strip()}


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
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Minimum level for structured logs"
    )


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
    # (tests run with no Google credentials at all).

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def currency(self) -> CurrencySettings:
        return CurrencySettings()

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

    for name in ("google_sheets", "currency", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
