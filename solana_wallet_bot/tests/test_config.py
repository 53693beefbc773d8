import pytest

from solana_wallet_bot.config import Settings
from solana_wallet_bot.exceptions import ConfigurationException


class TestSettings:

    def test_defaults(self):
        settings = Settings.from_env({})
        assert settings.SELL_SLIPPAGE_BPS == 50
        assert settings.PENDING_INPUT_TTL_SEC == 600
        assert settings.active_rpc_url == settings.RPC_URL
        assert settings.jupiter_headers == {}

    def test_typed_values(self):
        settings = Settings.from_env({
            "SELL_SLIPPAGE_BPS": "100",
            "CONFIRM_TIMEOUT_SEC": "45.5",
            "JUPITER_API_KEY": "secret",
            "DB_PATH": "",
        })
        assert settings.SELL_SLIPPAGE_BPS == 100
        assert settings.CONFIRM_TIMEOUT_SEC == 45.5
        assert settings.jupiter_headers == {"x-api-key": "secret"}
        assert settings.DB_PATH == "wallet_bot.db"

    def test_devnet_switch(self):
        settings = Settings.from_env({"SOLANA_NETWORK": "Devnet", "RPC_URL_DEVNET": "http://devnet"})
        assert settings.active_rpc_url == "http://devnet"

    def test_bad_number(self):
        with pytest.raises(ConfigurationException):
            Settings.from_env({"SELL_SLIPPAGE_BPS": "fifty"})

    def test_explorer_link(self):
        assert Settings().explorer_link("abc") == "https://solscan.io/tx/abc"
