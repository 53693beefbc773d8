"""Config package"""
from __future__ import annotations

import os
from dataclasses import dataclass, fields

from dotenv import load_dotenv

from ..constants import (
    API_TIMEOUT_SEC,
    CONFIRM_TIMEOUT_SEC,
    DEVNET_RPC_URL,
    EXPLORER_TX_URL,
    JUPITER_PRICE_API,
    JUPITER_ULTRA_API,
    MAINNET_RPC_URL,
    PENDING_INPUT_TTL_SEC,
    PRICE_TIMEOUT_SEC,
    SELL_SLIPPAGE_BPS,
    SWAP_TIMEOUT_SEC,
)
from ..exceptions import ConfigurationException

# Load environment variables
load_dotenv()


@dataclass
class Settings:
    # ============================================
    # CREDENTIALS & ENDPOINTS
    # ============================================
    TELEGRAM_BOT_TOKEN: str = ""
    TELEGRAM_POLL_TIMEOUT_SEC: int = 25
    SOLANA_NETWORK: str = "mainnet"
    RPC_URL: str = MAINNET_RPC_URL
    RPC_URL_DEVNET: str = DEVNET_RPC_URL
    JUPITER_API_URL: str = JUPITER_ULTRA_API
    JUPITER_PRICE_URL: str = JUPITER_PRICE_API
    JUPITER_API_KEY: str = ""
    # 64 hex chars (AES-256); wallets encrypted with another key cannot be read
    ENCRYPTION_KEY: str = ""

    # ============================================
    # STORAGE & LOGGING
    # ============================================
    DB_PATH: str = "wallet_bot.db"
    LOG_DIR: str = "logs"
    LOG_LEVEL: str = "INFO"

    # ============================================
    # TIMEOUTS (seconds)
    # ============================================
    API_TIMEOUT_SEC: float = API_TIMEOUT_SEC
    PRICE_TIMEOUT_SEC: float = PRICE_TIMEOUT_SEC
    SWAP_TIMEOUT_SEC: float = SWAP_TIMEOUT_SEC
    CONFIRM_TIMEOUT_SEC: float = CONFIRM_TIMEOUT_SEC

    # ============================================
    # SELL FLOW
    # ============================================
    PENDING_INPUT_TTL_SEC: float = PENDING_INPUT_TTL_SEC
    SELL_SLIPPAGE_BPS: int = SELL_SLIPPAGE_BPS
    EXPLORER_TX_URL: str = EXPLORER_TX_URL

    @property
    def active_rpc_url(self) -> str:
        if self.SOLANA_NETWORK.lower() == "devnet":
            return self.RPC_URL_DEVNET
        return self.RPC_URL

    @property
    def jupiter_headers(self) -> dict[str, str]:
        if self.JUPITER_API_KEY:
            return {"x-api-key": self.JUPITER_API_KEY}
        return {}

    def explorer_link(self, signature: str) -> str:
        return self.EXPLORER_TX_URL.format(signature=signature)

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> Settings:
        """Build settings from environment variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}
        for item in fields(cls):
            raw = env.get(item.name)
            if raw is None or raw == "":
                continue
            kind = item.type if isinstance(item.type, str) else item.type.__name__
            try:
                if kind == "int":
                    values[item.name] = int(raw)
                elif kind == "float":
                    values[item.name] = float(raw)
                else:
                    values[item.name] = raw
            except ValueError as exc:
                raise ConfigurationException(
                    f"Invalid value for {item.name}", value=raw
                ) from exc
        return cls(**values)


def get_settings() -> Settings:
    return Settings.from_env()
