"""
Unit tests for HoldingsGateway

Uses httpx.MockTransport in place of the Jupiter endpoints.
"""

import asyncio
from decimal import Decimal

import httpx
import pytest

from solana_wallet_bot.config import Settings
from solana_wallet_bot.core.holdings import HoldingsGateway, aggregate_holdings
from solana_wallet_bot.core.models import TokenAccount
from solana_wallet_bot.exceptions import RemoteUnavailable

WALLET = "Wa11et1111111111111111111111111111111111111"
MINT_A = "MintAaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa"
MINT_B = "MintBbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbb"


def make_gateway(handler):
    settings = Settings()
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HoldingsGateway(settings, client=client)


def run(coro):
    return asyncio.run(coro)


class TestAggregate:

    def test_sums_accounts_per_mint(self):
        holdings = aggregate_holdings(
            {MINT_A: [TokenAccount(100, 6), TokenAccount(250, 6)]},
            {MINT_A: Decimal("2")},
        )
        assert len(holdings) == 1
        assert holdings[0].amount_native == 350
        assert holdings[0].amount_ui == Decimal("0.00035")
        assert holdings[0].value_usd == Decimal("0.00070")

    def test_zero_total_excluded(self):
        holdings = aggregate_holdings({MINT_A: [TokenAccount(0, 6)], MINT_B: []}, {})
        assert holdings == []

    def test_mixed_decimals_rejected(self):
        with pytest.raises(RemoteUnavailable):
            aggregate_holdings({MINT_A: [TokenAccount(1, 6), TokenAccount(1, 9)]}, {})


class TestFetchHoldings:

    def test_parses_tokens(self):
        def handler(request):
            assert request.url.path.endswith(f"/holdings/{WALLET}")
            return httpx.Response(200, json={
                "amount": "5000",
                "tokens": {
                    MINT_A: [{"amount": "1000", "decimals": 6, "uiAmount": 0.001}],
                    MINT_B: [{"amount": "7", "decimals": 0}, {"amount": "3", "decimals": 0}],
                },
            })

        holdings = run(make_gateway(handler).fetch_holdings(WALLET))
        assert holdings[MINT_A] == [TokenAccount(1000, 6)]
        assert sum(a.amount_native for a in holdings[MINT_B]) == 10

    def test_no_tokens_is_empty_not_error(self):
        gateway = make_gateway(lambda request: httpx.Response(200, json={"amount": "0", "tokens": {}}))
        assert run(gateway.fetch_holdings(WALLET)) == {}

    @pytest.mark.parametrize("accounts", [5, "1000", {"amount": "1000", "decimals": 6}, [5]])
    def test_malformed_account_list_raises(self, accounts):
        gateway = make_gateway(lambda request: httpx.Response(200, json={"tokens": {MINT_A: accounts}}))
        with pytest.raises(RemoteUnavailable):
            run(gateway.fetch_holdings(WALLET))

    def test_null_account_list_skipped(self):
        gateway = make_gateway(lambda request: httpx.Response(200, json={"tokens": {MINT_A: None}}))
        assert run(gateway.fetch_holdings(WALLET)) == {}

    def test_http_error_raises(self):
        gateway = make_gateway(lambda request: httpx.Response(500, text="boom"))
        with pytest.raises(RemoteUnavailable):
            run(gateway.fetch_holdings(WALLET))

    def test_non_json_raises(self):
        gateway = make_gateway(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(RemoteUnavailable):
            run(gateway.fetch_holdings(WALLET))

    def test_connection_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("down", request=request)

        with pytest.raises(RemoteUnavailable):
            run(make_gateway(handler).fetch_holdings(WALLET))


class TestFetchPrices:

    def test_batches_of_fifty(self):
        seen = []

        def handler(request):
            ids = request.url.params["ids"].split(",")
            seen.append(len(ids))
            return httpx.Response(200, json={mint: {"usdPrice": 1.5, "decimals": 6} for mint in ids})

        mints = [f"Mint{i:040d}" for i in range(120)]
        prices = run(make_gateway(handler).fetch_prices(mints))
        assert seen == [50, 50, 20]
        assert len(prices) == 120
        assert prices[mints[0]] == Decimal("1.5")

    def test_failure_gives_empty_map(self):
        gateway = make_gateway(lambda request: httpx.Response(503))
        assert run(gateway.fetch_prices([MINT_A])) == {}

    def test_missing_or_zero_price_skipped(self):
        def handler(request):
            return httpx.Response(200, json={MINT_A: {"usdPrice": 0}, MINT_B: None})

        assert run(make_gateway(handler).fetch_prices([MINT_A, MINT_B])) == {}

    def test_token_decimals(self):
        gateway = make_gateway(lambda request: httpx.Response(200, json={MINT_A: {"usdPrice": 1, "decimals": 5}}))
        assert run(gateway.fetch_token_decimals(MINT_A)) == 5
        assert run(gateway.fetch_token_decimals(MINT_B)) is None


class TestPortfolio:

    def test_sorted_by_value_unknown_last(self):
        mint_c = "MintCccccccccccccccccccccccccccccccccccccccc"

        def handler(request):
            if "/holdings/" in request.url.path:
                return httpx.Response(200, json={"tokens": {
                    MINT_A: [{"amount": "1000000", "decimals": 6}],
                    MINT_B: [{"amount": "1000000", "decimals": 6}],
                    mint_c: [{"amount": "1000000", "decimals": 6}],
                }})
            return httpx.Response(200, json={
                MINT_A: {"usdPrice": 1},
                MINT_B: {"usdPrice": 3},
            })

        holdings = run(make_gateway(handler).load_portfolio(WALLET))
        assert [h.mint for h in holdings] == [MINT_B, MINT_A, mint_c]
        assert holdings[2].price_usd is None

    def test_price_outage_still_lists_holdings(self):
        def handler(request):
            if "/holdings/" in request.url.path:
                return httpx.Response(200, json={"tokens": {MINT_A: [{"amount": "5", "decimals": 0}]}})
            return httpx.Response(502)

        holdings = run(make_gateway(handler).load_portfolio(WALLET))
        assert len(holdings) == 1
        assert holdings[0].value_usd is None

    def test_load_holding_absent_mint(self):
        gateway = make_gateway(lambda request: httpx.Response(200, json={"tokens": {}}))
        assert run(gateway.load_holding(WALLET, MINT_A)) is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
