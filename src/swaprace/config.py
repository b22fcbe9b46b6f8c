"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=False, description="Enable debug logging")
    log_level: str = Field(default="INFO", description="Log level when debug is off")

    # ======================
    # API
    # ======================
    api_host: str = Field(default="127.0.0.1", description="API server host")
    api_port: int = Field(default=8000, description="API server port")

    # ======================
    # Quote providers
    # ======================
    enabled_providers: list[str] = Field(
        default_factory=lambda: ["0x", "1inch"],
        description="Providers to register, in tie-break order",
    )
    zeroex_api_url: str = Field(default="https://api.0x.org", description="0x API base URL")
    zeroex_api_key: str = Field(default="", description="0x API key")
    oneinch_api_url: str = Field(default="https://api.1inch.dev", description="1inch API base URL")
    oneinch_api_key: str = Field(default="", description="1inch API key")
    lifi_api_url: str = Field(default="https://li.quest/v1", description="LI.FI API base URL")
    lifi_api_key: str = Field(default="", description="LI.FI API key")
    custom_providers: dict[str, str] = Field(
        default_factory=dict,
        description="Extra POST quote endpoints, name -> URL",
    )
    provider_timeout_seconds: float = Field(
        default=10.0, gt=0, description="Per-provider quote timeout"
    )

    # ======================
    # Refresh timing
    # ======================
    debounce_seconds: float = Field(default=0.6, ge=0, description="Input debounce delay")
    refresh_interval_seconds: float = Field(
        default=15.0, gt=0, description="Periodic quote refresh interval"
    )

    # ======================
    # Pricing inputs for net value ranking
    # ======================
    default_slippage_percent: float = Field(default=1.0, ge=0, le=50, description="Slippage %")
    gas_price_gwei: float = Field(default=20.0, ge=0, description="Gas price used for ranking")
    default_gas_estimate: int = Field(
        default=200_000, description="Gas units assumed when a provider omits an estimate"
    )
    native_price_usd: float = Field(default=2500.0, ge=0, description="Native asset price")
    buy_token_price_usd: float = Field(default=1.0, ge=0, description="Buy token price")

    # ======================
    # Execution
    # ======================
    gas_margin_percent: int = Field(default=10, ge=0, description="Safety margin on gas estimates")
    fallback_gas_limit: int = Field(
        default=500_000, description="Gas limit used when estimation fails"
    )
    confirmation_timeout_seconds: float = Field(
        default=120.0, description="How long to wait for a receipt"
    )
    simulated_mode: bool = Field(default=False, description="Run swaps without a wallet")
    simulated_step_seconds: float = Field(
        default=1.0, ge=0, description="Delay between simulated swap phases"
    )

    # ======================
    # Wallet
    # ======================
    wallet_private_key: Optional[str] = Field(
        default=None, description="Hex private key for the server-side wallet session"
    )
    chain_id: int = Field(default=1, description="Chain the wallet session starts on")
    rpc_urls: dict[int, str] = Field(
        default_factory=lambda: {
            1: "https://eth.llamarpc.com",
            56: "https://bsc-dataseed.binance.org",
            137: "https://polygon-rpc.com",
        },
        description="JSON-RPC endpoint per chain id",
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def has_wallet(self) -> bool:
        """Check if a signing key is configured."""
        return bool(self.wallet_private_key)

    @property
    def gas_price_wei(self) -> int:
        return int(self.gas_price_gwei * 10**9)

    def get_rpc_url(self, chain_id: int) -> str:
        """Get RPC URL for a chain id."""
        return self.rpc_urls.get(chain_id, "")

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "simulated_mode": self.simulated_mode,
            "api_host": self.api_host,
            "api_port": self.api_port,
            "providers": {
                "enabled": list(self.enabled_providers),
                "0x": {"url": self.zeroex_api_url, "api_key": self._redact(self.zeroex_api_key)},
                "1inch": {"url": self.oneinch_api_url, "api_key": self._redact(self.oneinch_api_key)},
                "lifi": {"url": self.lifi_api_url, "api_key": self._redact(self.lifi_api_key)},
                "timeout": self.provider_timeout_seconds,
            },
            "refresh": {
                "debounce": self.debounce_seconds,
                "interval": self.refresh_interval_seconds,
            },
            "wallet_configured": self.has_wallet,
            "chain_id": self.chain_id,
            "rpc_urls": {str(k): v for k, v in self.rpc_urls.items()},
        }

    @staticmethod
    def _redact(secret: str) -> str:
        return "***" if secret else "(not set)"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
