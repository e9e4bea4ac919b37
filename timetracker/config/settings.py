"""
Configuration Management for Time Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The per-person rate tables and the rent reserve are policy values,
so they live in one place instead of being scattered through the ledgers.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """
    Settlement policy and per-person defaults.

    Dict values can be overridden with JSON, e.g.
    TIMETRACKER_DEFAULT_RATES='{"Marty": 420}'.
    """

    model_config = SettingsConfigDict(
        env_prefix="TIMETRACKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    default_rates: dict[str, Decimal] = Field(
        default_factory=lambda: {"Maruška": Decimal("275"), "Marty": Decimal("400")},
        description="Default hourly rate (CZK) per person"
    )
    default_deductions: dict[str, Decimal] = Field(
        default_factory=lambda: {"Maruška": Decimal("0.333"), "Marty": Decimal("0.5")},
        description="Fraction of earnings routed into the shared budget, per person"
    )

    # Rent reserve
    rent_amount: Decimal = Field(
        default=Decimal("24500"),
        gt=0,
        description="Monthly rent in CZK, also the reserve kept before paying debts"
    )
    rent_category: str = Field(
        default="Rent",
        description="Expense category used for the monthly rent record"
    )
    landlord: str = Field(
        default="Landlord",
        description="Creditor of rent debts created on a shortfall"
    )
    shared_debtor: str = Field(
        default="Shared debt",
        description="Debtor name used for common rent debts"
    )

    # Choices offered by the front-end
    people: list[str] = Field(
        default_factory=lambda: ["Maruška", "Marty"]
    )
    activities: list[str] = Field(
        default_factory=lambda: [
            "Wellness",
            "Villa preparation",
            "Work call",
            "Marketing",
            "Administration",
        ]
    )
    income_categories: list[str] = Field(
        default_factory=lambda: ["Earnings", "Investments", "Gift", "Other income"]
    )
    expense_categories: list[str] = Field(
        default_factory=lambda: [
            "Food",
            "Transport",
            "Housing",
            "Entertainment",
            "Work",
            "Rent",
            "Other",
        ]
    )

    @field_validator("default_deductions")
    @classmethod
    def validate_deductions(cls, v: dict[str, Decimal]) -> dict[str, Decimal]:
        """Deduction rates are fractions of earnings."""
        for person, rate in v.items():
            if rate < 0 or rate > 1:
                raise ValueError(f"Deduction rate for {person} must be between 0 and 1")
        return v

    def rate_for(self, person: str) -> Decimal:
        """Default hourly rate for a person (0 when unknown)."""
        return self.default_rates.get(person, Decimal("0"))

    def deduction_for(self, person: str) -> Decimal:
        """Default deduction rate for a person (0 when unknown)."""
        return self.default_deductions.get(person, Decimal("0"))


class StorageSettings(BaseSettings):
    """Snapshot storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="TIMETRACKER_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    backend: Literal["memory", "json", "google_sheets"] = Field(
        default="json",
        description="Which snapshot store to use"
    )
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory holding JSON snapshots"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets snapshot storage configuration."""

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
    snapshot_sheet_name: str = Field(
        default="Snapshots",
        description="Name of the sheet holding one row per snapshot key"
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

    # Sub-settings are loaded lazily so a missing Sheets config
    # does not break a JSON-backed installation.

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()


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

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("ledger", "storage", "google_sheets"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
