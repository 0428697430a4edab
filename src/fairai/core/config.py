"""
Configuration management for the FairAI SDK.

Handles loading configuration from environment variables and validation.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Any

from fairai.core.constants import DEFAULT_PAGE_SIZE, PROTOCOL_VERSION, get_usdc_address
from fairai.core.logging import parse_component_levels
from fairai.core.types import Network


def _get_env_var(name: str, default: str | None = None, required: bool = False) -> str | None:
    """Get environment variable with optional default."""
    value = os.environ.get(name, default)
    if required and not value:
        raise ValueError(f"Required environment variable {name} is not set")
    return value


@dataclass(frozen=True)
class Config:
    """SDK configuration."""

    # Ledger
    graphql_url: str = "https://arweave.net/graphql"
    gateway_url: str = "https://arweave.net"
    protocol_version: str = PROTOCOL_VERSION
    page_size: int = DEFAULT_PAGE_SIZE
    # Cursor-following is off by default so results match the single-page indexer view
    follow_pagination: bool = False

    # Chain
    network: Network = Network.ARB
    rpc_url: str = "https://arb1.arbitrum.io/rpc"
    block_api_url: str = "https://coins.llama.fi/block/arbitrum"
    # Blocks scanned before the block nearest to a timestamp
    block_lookback: int = 10

    # Upload relay
    upload_url: str | None = None

    # Payments (Circle developer-controlled wallets)
    circle_api_key: str | None = None
    entity_secret: str | None = None
    wallet_id: str | None = None

    # Timeouts (seconds)
    request_timeout: float = 30.0
    transaction_poll_interval: float = 2.0
    transaction_poll_timeout: float = 120.0
    watch_poll_interval: float = 4.0

    log_level: str = "INFO"
    # Per-component overrides, e.g. "operators=DEBUG,chain=WARNING"
    log_levels: str | None = None

    def __post_init__(self) -> None:
        if self.page_size < 1:
            raise ValueError("page_size must be positive")
        if self.block_lookback < 0:
            raise ValueError("block_lookback must not be negative")
        if not self.rpc_url:
            raise ValueError("rpc_url is required")
        parse_component_levels(self.log_levels)

    @property
    def component_log_levels(self) -> dict[str, str]:
        return parse_component_levels(self.log_levels)

    @property
    def usdc_address(self) -> str:
        """USDC contract for the configured network."""
        return get_usdc_address(self.network)  # type: ignore[return-value]

    @property
    def rpc_urls(self) -> list[str]:
        """RPC endpoints in fallback order."""
        return [u.strip() for u in self.rpc_url.split(",") if u.strip()]

    @property
    def has_payment_credentials(self) -> bool:
        return bool(self.circle_api_key and self.entity_secret and self.wallet_id)

    @classmethod
    def from_env(cls, **overrides: Any) -> Config:
        """Load configuration from environment variables."""
        network_str = overrides.pop("network", None) or _get_env_var(
            "FAIRAI_NETWORK", default="ARB"
        )
        network = Network.from_string(network_str) if isinstance(network_str, str) else network_str

        env_values: dict[str, Any] = {
            "graphql_url": _get_env_var("FAIRAI_GRAPHQL_URL", default=cls.graphql_url),
            "gateway_url": _get_env_var("FAIRAI_GATEWAY_URL", default=cls.gateway_url),
            "protocol_version": _get_env_var(
                "FAIRAI_PROTOCOL_VERSION", default=cls.protocol_version
            ),
            "rpc_url": _get_env_var("FAIRAI_RPC_URL", default=cls.rpc_url),
            "block_api_url": _get_env_var("FAIRAI_BLOCK_API_URL", default=cls.block_api_url),
            "upload_url": _get_env_var("FAIRAI_UPLOAD_URL"),
            "circle_api_key": _get_env_var("CIRCLE_API_KEY"),
            "entity_secret": _get_env_var("ENTITY_SECRET"),
            "wallet_id": _get_env_var("FAIRAI_WALLET_ID"),
            "log_level": _get_env_var("FAIRAI_LOG_LEVEL", default="INFO"),
            "log_levels": _get_env_var("FAIRAI_LOG_LEVELS"),
        }

        # Explicit overrides win, but None means "not given"
        for key, value in overrides.items():
            if value is not None:
                env_values[key] = value

        return cls(network=network, **env_values)

    def with_updates(self, **updates: Any) -> Config:
        """Create a new Config with updated values."""
        current = {f.name: getattr(self, f.name) for f in fields(self)}
        current.update(updates)
        return Config(**current)

    def masked_api_key(self) -> str:
        """Return API key with most characters masked for safe logging."""
        if not self.circle_api_key or len(self.circle_api_key) <= 8:
            return "****"
        return self.circle_api_key[:4] + "..." + self.circle_api_key[-4:]
