"""
Configuration management using Pydantic

This module provides application-wide configuration using Pydantic BaseSettings
with support for environment variables and type validation.
"""

from typing import List
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """
    Application configuration settings.

    All settings can be overridden using environment variables.
    For example, STARTING_BALANCE will override starting_balance.
    """

    # API Configuration
    backend_host: str = Field(default="localhost", description="API server host")
    backend_port: int = Field(default=8000, description="API server port")
    allowed_origins: List[str] = Field(
        default=["*"],
        description="CORS allowed origins"
    )

    # Persistence
    state_file: str = Field(
        default="data/exchange_state.json",
        description="JSON file holding the complete exchange state"
    )

    # Accounts
    starting_balance: int = Field(
        default=1000,
        description="Coins granted to a user on first contact"
    )
    admin_ids: List[str] = Field(
        default=[],
        description="User ids allowed to halt and resume trading"
    )

    # Listing
    listing_price: int = Field(
        default=10,
        description="Initial tradable price of a newly listed security"
    )
    ipo_volume: int = Field(
        default=1000,
        description="Shares offered by the system when a security is listed"
    )
    ticker_max_length: int = Field(
        default=8,
        description="Maximum ticker length"
    )

    # Trading Parameters
    max_order_volume: int = Field(
        default=1_000_000,
        description="Maximum order volume"
    )
    max_price: int = Field(
        default=10_000_000,
        description="Maximum acceptable limit price"
    )

    # Activity-driven pricing
    true_price_window: int = Field(
        default=24,
        description="Number of activity samples averaged into the true price"
    )
    price_drift_weight: float = Field(
        default=0.25,
        description="Fraction of the gap to the true price closed on each drift step"
    )
    price_scale: float = Field(
        default=10.0,
        description="Coins per unit of activity score"
    )
    activity_interval_seconds: int = Field(
        default=60,
        description="Seconds between activity-to-price recomputations"
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_dir: str = Field(
        default="",
        description="Directory for log files (empty for console only)"
    )
    use_json_logs: bool = Field(
        default=False,
        description="Emit JSON formatted log lines"
    )

    class Config:
        env_file = "guild_exchange/.env"
        env_file_encoding = "utf-8"
        case_sensitive = False


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """
    Get the global settings instance.

    Returns:
        Settings instance
    """
    return settings
