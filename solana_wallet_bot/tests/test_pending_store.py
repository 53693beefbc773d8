"""
Unit tests for PendingActionStore
"""

import pytest

from solana_wallet_bot.core.models import AwaitingAmount, NoExpectation
from solana_wallet_bot.core.pending_store import PendingActionStore


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


MINT_A = "MintAaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa"
MINT_B = "MintBbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbb"


class TestPendingActionStore:

    def test_set_and_get(self):
        store = PendingActionStore()
        store.set_pending("1", MINT_A)
        assert store.get_pending("1") == MINT_A
        assert store.get_pending("2") is None

    def test_last_write_wins(self):
        """A second custom prompt replaces the first"""
        store = PendingActionStore()
        store.set_pending("1", MINT_A)
        store.set_pending("1", MINT_B)
        assert store.get_pending("1") == MINT_B
        assert len(store) == 1

    def test_clear(self):
        store = PendingActionStore()
        store.set_pending("1", MINT_A)
        assert store.clear_pending("1") is True
        assert store.clear_pending("1") is False
        assert store.get_pending("1") is None

    def test_users_are_independent(self):
        store = PendingActionStore()
        store.set_pending("1", MINT_A)
        store.set_pending("2", MINT_B)
        store.clear_pending("1")
        assert store.get_pending("2") == MINT_B

    def test_expired_entry_reads_as_absent(self):
        clock = FakeClock()
        store = PendingActionStore(ttl_sec=600, clock=clock)
        store.set_pending("1", MINT_A)

        clock.now += 599
        assert store.get_pending("1") == MINT_A

        clock.now += 1
        assert store.get_pending("1") is None
        assert len(store) == 0

    def test_zero_ttl_never_expires(self):
        clock = FakeClock()
        store = PendingActionStore(ttl_sec=0, clock=clock)
        store.set_pending("1", MINT_A)
        clock.now += 10**6
        assert store.get_pending("1") == MINT_A

    def test_purge_expired(self):
        clock = FakeClock()
        store = PendingActionStore(ttl_sec=10, clock=clock)
        store.set_pending("1", MINT_A)
        clock.now += 5
        store.set_pending("2", MINT_B)
        clock.now += 6

        assert store.purge_expired() == 1
        assert store.get_pending("1") is None
        assert store.get_pending("2") == MINT_B

    def test_expectation_variants(self):
        store = PendingActionStore()
        assert store.expectation("1") == NoExpectation()
        store.set_pending("1", MINT_A)
        assert store.expectation("1") == AwaitingAmount(mint=MINT_A)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
