"""Application configuration using pydantic-settings.

Holds the protocol constants that both the signing and the verifying side
must agree on (chain id, verifying contract, protocol name) together with
backend selection for signing, settlement and the consumption record.
"""

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
    debug: bool = Field(default=True, description="Enable debug mode")

    # ======================
    # API
    # ======================
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=8000, description="API server port")

    # ======================
    # Quote protocol
    # ======================
    chain_id: int = Field(default=44787, description="Numeric chain id (44787 = Celo Alfajores)")
    protocol_name: str = Field(
        default="CELOFX_RATE_V1", description="Protocol name hashed into the version sentinel"
    )
    verifying_contract: str = Field(
        default="0x000000000000000000000000000000000000fE0F",
        description="Address of the contract that verifies and consumes quotes",
    )
    from_token: str = Field(
        default="0x874069Fa1Eb16D44d622F2e0Ca25eeA172369bC1",
        description="Input stablecoin (cUSD on Alfajores)",
    )
    to_token: str = Field(
        default="0xE4D517785D091D3c54818832dB6094bcc2744545",
        description="Output stablecoin (cREAL on Alfajores)",
    )
    authority_address: str = Field(
        default="", description="The single address allowed to attest rates"
    )
    freshness_window_seconds: int = Field(
        default=300, description="Maximum quote age accepted at consumption"
    )
    clock_skew_seconds: int = Field(
        default=30, description="Tolerated amount a quote timestamp may lie in the future"
    )
    default_slippage_bps: int = Field(
        default=50, description="Default slippage tolerance in basis points (0.5%)"
    )

    # ======================
    # Signing
    # ======================
    signer_backend: str = Field(default="local", description="Signer backend: local")
    authority_private_key: Optional[str] = Field(
        default=None, description="Authority private key for the local signer"
    )
    signing_timeout_seconds: float = Field(
        default=120.0, description="How long to wait for the signing authority"
    )

    # ======================
    # Settlement
    # ======================
    ledger_backend: str = Field(default="simulated", description="Ledger backend: simulated, onchain")
    rpc_url: str = Field(
        default="https://alfajores-forno.celo-testnet.org", description="JSON-RPC endpoint"
    )
    executor_private_key: Optional[str] = Field(
        default=None, description="Key of the account that approves and submits swaps on-chain"
    )
    executor_address: str = Field(
        default="", description="Account that swaps (derived from EXECUTOR_PRIVATE_KEY if unset)"
    )
    settlement_fee_bps: int = Field(
        default=0, description="Fee the simulated ledger deducts at settlement"
    )
    simulated_executor_balance: str = Field(
        default="0", description="Input-token balance credited to the executor at startup"
    )
    simulated_pool_liquidity: str = Field(
        default="0", description="Output-token liquidity credited to the pool at startup"
    )

    # ======================
    # Consumption record
    # ======================
    consumption_store: str = Field(default="memory", description="Consumption store: memory, database")
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/smartfx.db",
        description="Database connection URL",
    )

    # ======================
    # FX rate source
    # ======================
    fx_api_url: str = Field(
        default="https://api.exchangerate.host/latest", description="FX rate endpoint"
    )
    fx_base: str = Field(default="USD", description="Base currency of the rate")
    fx_symbol: str = Field(default="BRL", description="Quote currency of the rate")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "api_host": self.api_host,
            "api_port": self.api_port,
            "protocol": {
                "name": self.protocol_name,
                "chain_id": self.chain_id,
                "verifying_contract": self.verifying_contract,
                "pair": {"from": self.from_token, "to": self.to_token},
                "authority": self.authority_address or "(not set)",
                "freshness_window_seconds": self.freshness_window_seconds,
                "default_slippage_bps": self.default_slippage_bps,
            },
            "signer": {
                "backend": self.signer_backend,
                "authority_key": "***" if self.authority_private_key else "(not set)",
            },
            "ledger": {
                "backend": self.ledger_backend,
                "rpc": self.rpc_url,
                "executor_key": "***" if self.executor_private_key else "(not set)",
            },
            "consumption_store": self.consumption_store,
            "database_url": self._redact_url(self.database_url),
            "fx": {"url": self.fx_api_url, "pair": f"{self.fx_base}/{self.fx_symbol}"},
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact sensitive parts of database URL."""
        if "://" in url and "@" in url:
            proto, rest = url.split("://", 1)
            if "@" in rest:
                creds, host = rest.rsplit("@", 1)
                if ":" in creds:
                    user, _ = creds.split(":", 1)
                    return f"{proto}://{user}:***@{host}"
        return url


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
