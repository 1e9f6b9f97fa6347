import os

from pathlib import Path
from typing import Any

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def model_post_init(self, __context: Any) -> None:
        """Pick up the frontend-style environment variable names as fallbacks."""

        super().model_post_init(__context)

        if not self.garden_app_id:
            fallback = os.getenv("NEXT_PUBLIC_GARDEN_APP_ID")
            if fallback:
                object.__setattr__(self, "garden_app_id", fallback)
        if not self.relay_url:
            fallback = os.getenv("NEXT_PUBLIC_RELAY_URL")
            if fallback:
                object.__setattr__(self, "relay_url", fallback)

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")

    # Garden Finance
    garden_network: str = Field(
        default="sepolia",
        description="Garden network selector (sepolia or mainnet)",
    )
    garden_app_id: str = Field(
        default="",
        description="Value sent in the garden-app-id header; empty disables Garden",
    )
    garden_testnet_url: str = Field(
        default="https://testnet.api.garden.finance/v2",
        description="Garden API base URL for sepolia",
    )
    garden_mainnet_url: str = Field(
        default="https://api.garden.finance/v2",
        description="Garden API base URL for mainnet",
    )
    garden_api_url: str = Field(
        default="",
        description="Override the per-network Garden API base URL",
    )

    # Delegated execution relay
    relay_url: str = Field(
        default="",
        description="Gas-sponsoring relay base URL; empty disables the relay",
        validation_alias=AliasChoices("relay_url", "RELAY_URL", "BRIDGEFLOW_RELAY_URL"),
    )
    relay_max_payload_bytes: int = Field(
        default=100_000,
        description="Maximum serialized relay payload size",
    )

    # Coordinator API
    api_base_url: str = Field(
        default="http://localhost:3030",
        description="Coordinator REST API base URL",
    )

    # Timeouts
    quote_timeout_seconds: float = Field(default=10.0, description="Quote and order-status request timeout")
    order_timeout_seconds: float = Field(default=30.0, description="Order creation and submission timeout")
    health_timeout_seconds: float = Field(default=5.0, description="Relay health check timeout")

    # Order lifecycle
    quote_debounce_seconds: float = Field(
        default=0.6,
        ge=0,
        description="Quiet period after the last amount edit before quoting",
    )
    poll_interval_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Order status polling interval",
    )
    quote_ttl_seconds: float = Field(
        default=60.0,
        gt=0,
        description="How long an accepted quote may be used for order creation",
    )

    # Retry queue
    retry_queue_max_size: int = Field(default=50, ge=1, description="Maximum queued requests")
    retry_queue_max_retries: int = Field(default=3, ge=1, description="Attempts per queued request")

    @property
    def has_garden_app_id(self) -> bool:
        return bool(self.garden_app_id)

    @property
    def has_relay(self) -> bool:
        return bool(self.relay_url)

    def garden_base_url(self, network: str) -> str:
        if self.garden_api_url:
            return self.garden_api_url.rstrip("/")
        if network == "mainnet":
            return self.garden_mainnet_url.rstrip("/")
        return self.garden_testnet_url.rstrip("/")


# Global settings instance
settings = Settings()
