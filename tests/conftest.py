"""Pytest configuration and fixtures for arkwallet tests."""

import logging
import os
from unittest.mock import AsyncMock, patch

import pytest

from arkwallet.config.settings import Settings
from arkwallet.utils.price_service import PriceCache

TEST_KEY = "11" * 32
ONCHAIN_ADDRESS = "tb1qw508d6qejxtdg4y5r3zarvary0c5xw7kxpjzsx"
ARK_ADDRESS = "tark1qexampleaddress0000000000000000000000"


@pytest.fixture(autouse=True, scope="session")
def mock_environment_variables(tmp_path_factory):
    """Point settings at a throwaway data dir and keep logs quiet."""
    env_vars = {
        "ARK_TEST_MODE": "1",
        "ARK_DATA_DIR": str(tmp_path_factory.mktemp("ark-data")),
        "ARK_DEFAULT_NETWORK": "mutinynet",
        "LOG_LEVEL": "ERROR",
    }
    with patch.dict(os.environ, env_vars, clear=False):
        Settings.refresh_from_env()
        yield
    Settings.refresh_from_env()


class FakeClock:
    """Millisecond clock under test control."""

    def __init__(self, start: int = 1_735_689_600_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeEngine:
    """Stand-in for the external wallet engine; every method is an AsyncMock."""

    def __init__(
        self,
        coins=None,
        vtxos=None,
        addresses=None,
        balance=None,
        txid: str = "f" * 64,
    ):
        coins = coins if coins is not None else [{"value": 1_000_000}, {"value": 2_000_000}]
        vtxos = vtxos if vtxos is not None else [{"value": 500_000}, {"value": 1_500_000}]
        if addresses is None:
            addresses = {"onchain": ONCHAIN_ADDRESS, "offchain": {"address": ARK_ADDRESS}}
        if balance is None:
            balance = {
                "onchain": {"total": sum(c["value"] for c in coins)},
                "offchain": {"total": sum(v["value"] for v in vtxos)},
            }
        self.get_coins = AsyncMock(return_value=coins)
        self.get_vtxos = AsyncMock(return_value=vtxos)
        self.get_address = AsyncMock(return_value=addresses)
        self.get_balance = AsyncMock(return_value=balance)
        self.send_bitcoin = AsyncMock(return_value=txid)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def engine_factory(engine):
    return AsyncMock(return_value=engine)


@pytest.fixture
def price_fetcher():
    return AsyncMock(return_value=50_000)


@pytest.fixture
def price_cache(price_fetcher, clock):
    return PriceCache(price_fetcher, clock=clock)


# Disable logging to reduce noise during tests
logging.getLogger().setLevel(logging.ERROR)
