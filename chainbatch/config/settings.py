"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

import re
from decimal import Decimal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from chainbatch.config.constants import (
    BLOCKCHAIN_EXECUTOR_MAX_WORKERS,
    BLOCKCHAIN_RPC_TIMEOUT,
    DEFAULT_BATCH_CONCURRENCY,
    DEFAULT_CONFIRMATION_BLOCKS,
    DEFAULT_CONFIRMATION_POLL_INTERVAL,
    DEFAULT_CONFIRMATION_TIMEOUT,
    DEFAULT_GAS_MARGIN_PERCENT,
    GWEI,
)


ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Blockchain RPC
    rpc_url: str | None = None
    rpc_timeout: float = Field(
        default=BLOCKCHAIN_RPC_TIMEOUT, gt=0, description="RPC provider HTTP timeout in seconds"
    )

    # Sender wallet
    sender_address: str | None = None
    sender_private_key: str | None = None

    # Batch dispatching
    batch_concurrency: int = Field(
        default=DEFAULT_BATCH_CONCURRENCY,
        ge=1,
        description="Maximum submissions in flight per batch"
    )
    submit_timeout: float | None = Field(
        default=None,
        description="Per-submission timeout in seconds (unset = no timeout)"
    )
    executor_max_workers: int = Field(
        default=BLOCKCHAIN_EXECUTOR_MAX_WORKERS,
        ge=1,
        description="Thread pool size for blocking submitter calls"
    )

    # Confirmation watching
    confirmation_blocks: int = Field(
        default=DEFAULT_CONFIRMATION_BLOCKS, ge=0, description="Required confirmation depth"
    )
    confirmation_timeout: float = Field(
        default=DEFAULT_CONFIRMATION_TIMEOUT,
        gt=0,
        description="Deadline for reaching the confirmation depth, in seconds"
    )
    confirmation_poll_interval: float = Field(
        default=DEFAULT_CONFIRMATION_POLL_INTERVAL,
        gt=0,
        description="Receipt polling interval in seconds"
    )

    # Gas
    gas_margin_percent: int = Field(
        default=DEFAULT_GAS_MARGIN_PERCENT, ge=0, description="Safety margin added to gas estimates"
    )
    max_gas_price_gwei: Decimal | None = Field(
        default=None,
        description="Upper bound for the padded gas price (unset = no cap)"
    )

    # Application
    log_level: str = "INFO"
    log_file: str | None = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("sender_address")
    @classmethod
    def validate_sender_address(cls, v: str | None) -> str | None:
        """Validate sender address format."""
        if v is None:
            return v
        if not ADDRESS_PATTERN.match(v):
            raise ValueError("Invalid sender address format")
        return v

    @field_validator("submit_timeout", "max_gas_price_gwei")
    @classmethod
    def validate_optional_positive(cls, v: float | Decimal | None) -> float | Decimal | None:
        """Optional limits must be positive when set."""
        if v is not None and v <= 0:
            raise ValueError("Value must be positive when set")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize log level name."""
        level = v.upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @model_validator(mode="after")
    def validate_confirmation_timing(self) -> "Settings":
        """Deadline must leave room for at least one poll."""
        if self.confirmation_poll_interval > self.confirmation_timeout:
            raise ValueError(
                "CONFIRMATION_POLL_INTERVAL must not exceed CONFIRMATION_TIMEOUT"
            )
        return self

    @property
    def max_gas_price_wei(self) -> int | None:
        """Gas price cap converted to wei."""
        if self.max_gas_price_gwei is None:
            return None
        return int(self.max_gas_price_gwei * GWEI)


# Global settings instance
settings = Settings()
