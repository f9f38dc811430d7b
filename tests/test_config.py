import logging
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from arkwallet.config.settings import (
    DEFAULT_PRICE_CACHE_TTL_MS,
    DEFAULT_PRICE_FEED_URL,
    Settings,
    setup_logging,
)
from arkwallet.core.builder import build_wallet_registry
from arkwallet.wallet.state import Network


@pytest.fixture
def restore_settings():
    yield
    Settings.refresh_from_env()


class TestSettings:
    def test_settings_default_values(self, restore_settings):
        with patch.dict(os.environ, {}, clear=True):
            Settings.refresh_from_env()

            assert Settings.ARK_DATA_DIR == str(Path.home() / ".bitcoin-mcp")
            assert Settings.ARK_DEFAULT_NETWORK == "mutinynet"
            assert Settings.ARK_PRICE_FEED_URL == DEFAULT_PRICE_FEED_URL
            assert Settings.ARK_PRICE_CACHE_TTL_MS == DEFAULT_PRICE_CACHE_TTL_MS == 60_000
            assert Settings.ARK_TEST_MODE is False
            assert Settings.LOG_LEVEL == "INFO"
            assert Settings.validate() is True

    def test_settings_environment_variables(self, restore_settings):
        env = {
            "ARK_DATA_DIR": "~/wallets",
            "ARK_DEFAULT_NETWORK": "SIGNET",
            "ARK_PRICE_FEED_URL": "https://prices.test/ticker",
            "ARK_PRICE_CACHE_TTL_MS": "5000",
            "ARK_SERVER_PUBLIC_KEY": "  ",
            "ARK_TEST_MODE": "yes",
            "LOG_LEVEL": "DEBUG",
        }
        with patch.dict(os.environ, env, clear=True):
            Settings.refresh_from_env()

            assert Settings.ARK_DATA_DIR == str(Path("~/wallets").expanduser())
            assert Settings.ARK_DEFAULT_NETWORK == "signet"
            assert Settings.ARK_PRICE_FEED_URL == "https://prices.test/ticker"
            assert Settings.ARK_PRICE_CACHE_TTL_MS == 5000
            assert Settings.ARK_SERVER_PUBLIC_KEY is None
            assert Settings.ARK_TEST_MODE is True
            assert Settings.LOG_LEVEL == "DEBUG"

    def test_bad_ttl_falls_back_to_default(self, restore_settings):
        with patch.dict(os.environ, {"ARK_PRICE_CACHE_TTL_MS": "soon"}, clear=True):
            Settings.refresh_from_env()

            assert Settings.ARK_PRICE_CACHE_TTL_MS == DEFAULT_PRICE_CACHE_TTL_MS

    @pytest.mark.parametrize(
        "env, problem",
        [
            ({"ARK_DEFAULT_NETWORK": "regtest"}, "ARK_DEFAULT_NETWORK"),
            ({"ARK_PRICE_CACHE_TTL_MS": "0"}, "ARK_PRICE_CACHE_TTL_MS"),
            ({"ARK_PRICE_FEED_URL": "ftp://prices"}, "ARK_PRICE_FEED_URL"),
            ({"ARK_SERVER_URL": ""}, "ARK_SERVER_URL"),
        ],
    )
    def test_validate_reports_problems(self, restore_settings, caplog, env, problem):
        with patch.dict(os.environ, env, clear=True):
            Settings.refresh_from_env()

            with caplog.at_level(logging.ERROR, logger="arkwallet.config.settings"):
                assert Settings.validate() is False

        assert any(problem in r.getMessage() for r in caplog.records)

    def test_unknown_default_network_falls_back_in_builder(
        self, restore_settings, tmp_path, engine_factory
    ):
        with patch.dict(os.environ, {"ARK_DEFAULT_NETWORK": "regtest"}, clear=True):
            Settings.refresh_from_env()
            toolkit = build_wallet_registry(engine_factory, data_dir=tmp_path)

        assert toolkit.price_cache.ttl_ms == DEFAULT_PRICE_CACHE_TTL_MS
        wallet_tools = toolkit.registry.get("setup_wallet").handler.__self__
        assert wallet_tools.default_network == Network.MUTINYNET


class TestSetupLogging:
    @pytest.fixture(autouse=True)
    def restore_logging(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)
        logging.getLogger("arkwallet").setLevel(logging.NOTSET)

    def test_override_level(self):
        setup_logging("debug")

        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("arkwallet").level == logging.DEBUG
        assert logging.getLogger("aiohttp").level == logging.INFO

    def test_off_silences_everything(self):
        setup_logging("OFF")

        assert logging.getLogger("arkwallet").level > logging.CRITICAL

    def test_unknown_level_defaults_to_info(self):
        setup_logging("chatty")

        assert logging.getLogger().level == logging.INFO

    def test_uses_settings_level(self):
        with patch.object(Settings, "LOG_LEVEL", "WARNING"):
            setup_logging()

        assert logging.getLogger("arkwallet").level == logging.WARNING
