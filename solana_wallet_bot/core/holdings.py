from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Iterable

import httpx

from solana_wallet_bot.constants import PRICE_BATCH_SIZE
from solana_wallet_bot.core.models import TokenAccount, TokenHolding
from solana_wallet_bot.exceptions import RemoteUnavailable

if TYPE_CHECKING:
    from solana_wallet_bot.config import Settings


class HoldingsGateway:
    """Wallet balances from Jupiter Ultra and USD prices from Jupiter Price v3."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None) -> None:
        self.settings = settings
        self.logger = logging.getLogger("solana_wallet_bot.holdings")
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.API_TIMEOUT_SEC, connect=5.0),
            limits=httpx.Limits(max_keepalive_connections=10),
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def fetch_holdings(self, wallet_address: str) -> dict[str, list[TokenAccount]]:
        """
        Token accounts per mint for a wallet.

        Returns {} when the wallet holds no tokens; raises RemoteUnavailable
        when the lookup itself fails, so callers can tell the two apart.
        """
        url = f"{self.settings.JUPITER_API_URL.rstrip('/')}/holdings/{wallet_address}"
        try:
            response = await self._client.get(url, headers=self.settings.jupiter_headers)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            self.logger.warning("Holdings fetch failed for %s: %s", wallet_address[:8], exc)
            raise RemoteUnavailable("Failed to load holdings", wallet=wallet_address[:8]) from exc

        if not isinstance(data, dict):
            raise RemoteUnavailable("Malformed holdings response", wallet=wallet_address[:8])

        tokens = data.get("tokens") or {}
        if not isinstance(tokens, dict):
            raise RemoteUnavailable("Malformed holdings response", wallet=wallet_address[:8])

        holdings: dict[str, list[TokenAccount]] = {}
        for mint, accounts in tokens.items():
            if accounts is None:
                continue
            if not isinstance(accounts, list):
                raise RemoteUnavailable("Malformed token account list", mint=mint[:8])
            parsed = [self._parse_account(mint, acc) for acc in accounts]
            if parsed:
                holdings[mint] = parsed
        self.logger.debug("Loaded %d mints for %s", len(holdings), wallet_address[:8])
        return holdings

    def _parse_account(self, mint: str, account: dict[str, Any]) -> TokenAccount:
        try:
            return TokenAccount(
                amount_native=int(account["amount"]),
                decimals=int(account["decimals"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise RemoteUnavailable("Malformed token account", mint=mint[:8]) from exc

    async def fetch_prices(self, mints: Iterable[str]) -> dict[str, Decimal]:
        """USD price per mint. Prices are advisory: failures give an empty/partial map."""
        ordered = list(dict.fromkeys(mints))
        prices: dict[str, Decimal] = {}
        for start in range(0, len(ordered), PRICE_BATCH_SIZE):
            batch = ordered[start:start + PRICE_BATCH_SIZE]
            data = await self._get_price_batch(batch)
            for mint, info in data.items():
                price = _parse_price(info)
                if price is not None:
                    prices[mint] = price
        return prices

    async def fetch_token_decimals(self, mint: str) -> int | None:
        data = await self._get_price_batch([mint])
        info = data.get(mint)
        if isinstance(info, dict) and info.get("decimals") is not None:
            try:
                return int(info["decimals"])
            except (TypeError, ValueError):
                return None
        return None

    async def _get_price_batch(self, mints: list[str]) -> dict[str, Any]:
        if not mints:
            return {}
        try:
            response = await self._client.get(
                self.settings.JUPITER_PRICE_URL,
                params={"ids": ",".join(mints)},
                headers=self.settings.jupiter_headers,
                timeout=self.settings.PRICE_TIMEOUT_SEC,
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            self.logger.warning("Price fetch failed for %d mints: %s", len(mints), exc)
            return {}
        return data if isinstance(data, dict) else {}

    async def load_portfolio(self, wallet_address: str) -> list[TokenHolding]:
        accounts = await self.fetch_holdings(wallet_address)
        if not accounts:
            return []
        prices = await self.fetch_prices(accounts.keys())
        holdings = aggregate_holdings(accounts, prices)
        holdings.sort(key=lambda h: (h.value_usd is None, -(h.value_usd or 0)))
        return holdings

    async def load_holding(
        self, wallet_address: str, mint: str, with_price: bool = True
    ) -> TokenHolding | None:
        """Fresh balance of one mint; None when the wallet holds none of it."""
        accounts = await self.fetch_holdings(wallet_address)
        if mint not in accounts:
            return None
        holdings = aggregate_holdings({mint: accounts[mint]}, {})
        if not holdings:
            return None
        holding = holdings[0]
        if with_price:
            holding.price_usd = (await self.fetch_prices([mint])).get(mint)
        return holding


def aggregate_holdings(
    accounts_by_mint: dict[str, list[TokenAccount]],
    prices: dict[str, Decimal],
) -> list[TokenHolding]:
    """Sum native amounts per mint; zero balances are dropped."""
    holdings: list[TokenHolding] = []
    for mint, accounts in accounts_by_mint.items():
        if not accounts:
            continue
        decimals = {acc.decimals for acc in accounts}
        if len(decimals) > 1:
            raise RemoteUnavailable("Inconsistent decimals across token accounts", mint=mint[:8])
        total = sum(acc.amount_native for acc in accounts)
        if total <= 0:
            continue
        holdings.append(
            TokenHolding(
                mint=mint,
                amount_native=total,
                decimals=decimals.pop(),
                price_usd=prices.get(mint),
            )
        )
    return holdings


def _parse_price(info: Any) -> Decimal | None:
    if not isinstance(info, dict) or info.get("usdPrice") is None:
        return None
    try:
        price = Decimal(str(info["usdPrice"]))
    except InvalidOperation:
        return None
    return price if price.is_finite() and price > 0 else None
