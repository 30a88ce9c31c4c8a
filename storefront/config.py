"""Configuration loading for the Storefront system.

This module provides centralized configuration management:
- Load settings from environment variables and .env files
- Validate configuration using pydantic
- Provide typed access to all settings
"""

from decimal import Decimal
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment.

    Uses pydantic-settings for environment variable handling with
    .env file support via python-dotenv.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Store configuration
    store_backend: Literal["memory", "sqlite"] = Field(
        default="memory",
        description="Order store backend type; catalog and accounts are always in memory",
    )
    store_sqlite_path: str = Field(
        default="./data/storefront.db",
        description="SQLite database file path for orders and payments",
    )
    seed_demo_data: bool = Field(
        default=True,
        description="Load the demo catalog and accounts on startup",
    )

    # Pricing
    currency_symbol: str = Field(
        default="GH₵",
        description="Currency prefix used when displaying amounts",
    )
    delivery_fee: Decimal = Field(
        default=Decimal("15.00"),
        description="Flat delivery fee added at checkout",
    )
    tax_rate: Decimal = Field(
        default=Decimal("0.08"),
        description="Tax rate applied to the items subtotal",
    )

    # Payment simulation
    mobile_money_success_rate: float = Field(
        default=0.8,
        description="Probability that a mobile money payment succeeds",
    )
    card_success_rate: float = Field(
        default=0.85,
        description="Probability that a card payment succeeds",
    )
    mobile_money_delay_seconds: float = Field(
        default=2.0,
        description="Simulated processing time after mobile money approval",
    )
    card_delay_seconds: float = Field(
        default=3.0,
        description="Simulated card processing time",
    )
    random_seed: int | None = Field(
        default=None,
        description="Seed for the payment outcome draws; unset for nondeterministic runs",
    )
    confirmation_mode: Literal["console", "auto_approve"] = Field(
        default="console",
        description="How mobile money payment requests are approved",
    )

    # Logging configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Log level",
    )
    log_format: Literal["json", "text"] = Field(
        default="text",
        description="Log format",
    )

    # Development
    debug: bool = Field(
        default=False,
        description="Enable debug mode with verbose checkout messages",
    )

    @field_validator("mobile_money_success_rate", "card_success_rate")
    @classmethod
    def validate_success_rate(cls, v: float) -> float:
        """Ensure success rates are probabilities."""
        if not 0.0 <= v <= 1.0:
            raise ValueError("success rates must be between 0 and 1")
        return v

    @field_validator("mobile_money_delay_seconds", "card_delay_seconds")
    @classmethod
    def validate_delay(cls, v: float) -> float:
        """Ensure simulated delays are non-negative."""
        if v < 0:
            raise ValueError("payment delays must be non-negative")
        return v

    @field_validator("delivery_fee", "tax_rate")
    @classmethod
    def validate_non_negative_amount(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("delivery_fee and tax_rate must be non-negative")
        return v

    @field_validator("currency_symbol")
    @classmethod
    def validate_currency_symbol(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("currency_symbol must not be blank")
        return v


def load_settings(env_file: str | None = None) -> Settings:
    """Load application settings from environment.

    Args:
        env_file: Optional path to .env file. If not provided,
                 uses the default .env in the current directory.

    Returns:
        Validated Settings instance.

    Raises:
        ValidationError: If settings validation fails.
    """
    if env_file:
        return Settings(_env_file=env_file)  # type: ignore[call-arg]
    return Settings()


__all__ = ["Settings", "load_settings"]
