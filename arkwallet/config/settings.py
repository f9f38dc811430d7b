"""Application settings resolved from the environment (.env supported)."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = str(Path.home() / ".bitcoin-mcp")
DEFAULT_PRICE_FEED_URL = "https://blockchain.info/ticker"
DEFAULT_PRICE_CACHE_TTL_MS = 60_000
DEFAULT_NETWORK = "mutinynet"
KNOWN_NETWORKS = {"bitcoin", "testnet", "signet", "mutinynet"}


def _value_from_sources(key: str, default: Any = None) -> Any:
    env_val = os.getenv(key)
    if env_val is not None:
        return env_val
    return default


def _as_str(value: Any, default: str = "") -> str:
    if value is None:
        return default
    if isinstance(value, str):
        return value
    return str(value)


def _as_optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return str(value)


def _as_bool(value: Any, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return default
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        normalized = value.strip().lower()
        return normalized in {"1", "true", "yes", "on"}
    return default


def _as_int(value: Any, default: int = 0) -> int:
    if value is None:
        return default
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except (ValueError, TypeError):
        return default


class Settings:
    """Application settings resolved from the environment."""

    ARK_DATA_DIR: str = DEFAULT_DATA_DIR
    ARK_DEFAULT_NETWORK: str = DEFAULT_NETWORK

    ARK_ESPLORA_URL: str = "https://mutinynet.com/api"
    ARK_SERVER_URL: str = "https://mutinynet.arkade.sh"
    ARK_SERVER_PUBLIC_KEY: Optional[str] = (
        "fa73c6e4876ffb2dfc961d763cca9abc73d4b88efcb8f5e7ff92dc55e9aa553d"
    )

    ARK_PRICE_FEED_URL: str = DEFAULT_PRICE_FEED_URL
    ARK_PRICE_CACHE_TTL_MS: int = DEFAULT_PRICE_CACHE_TTL_MS

    ARK_TEST_MODE: bool = False
    LOG_LEVEL: str = "INFO"

    @classmethod
    def _populate(cls) -> None:
        cls.ARK_DATA_DIR = str(
            Path(_as_str(_value_from_sources("ARK_DATA_DIR"), DEFAULT_DATA_DIR)).expanduser()
        )
        cls.ARK_DEFAULT_NETWORK = _as_str(
            _value_from_sources("ARK_DEFAULT_NETWORK", DEFAULT_NETWORK), DEFAULT_NETWORK
        ).lower()

        cls.ARK_ESPLORA_URL = _as_str(
            _value_from_sources("ARK_ESPLORA_URL", "https://mutinynet.com/api")
        )
        cls.ARK_SERVER_URL = _as_str(
            _value_from_sources("ARK_SERVER_URL", "https://mutinynet.arkade.sh")
        )
        cls.ARK_SERVER_PUBLIC_KEY = _as_optional_str(
            _value_from_sources(
                "ARK_SERVER_PUBLIC_KEY",
                "fa73c6e4876ffb2dfc961d763cca9abc73d4b88efcb8f5e7ff92dc55e9aa553d",
            )
        )

        cls.ARK_PRICE_FEED_URL = _as_str(
            _value_from_sources("ARK_PRICE_FEED_URL", DEFAULT_PRICE_FEED_URL)
        )
        cls.ARK_PRICE_CACHE_TTL_MS = _as_int(
            _value_from_sources("ARK_PRICE_CACHE_TTL_MS", DEFAULT_PRICE_CACHE_TTL_MS),
            DEFAULT_PRICE_CACHE_TTL_MS,
        )

        cls.ARK_TEST_MODE = _as_bool(_value_from_sources("ARK_TEST_MODE", "false"), False)
        cls.LOG_LEVEL = _as_str(_value_from_sources("LOG_LEVEL", "INFO"), "INFO")

    @classmethod
    def refresh_from_env(cls) -> None:
        cls._populate()

    @classmethod
    def validate(cls) -> bool:
        errors = []

        if cls.ARK_DEFAULT_NETWORK not in KNOWN_NETWORKS:
            errors.append(
                f"ARK_DEFAULT_NETWORK must be one of {sorted(KNOWN_NETWORKS)}, "
                f"got '{cls.ARK_DEFAULT_NETWORK}'"
            )
        if cls.ARK_PRICE_CACHE_TTL_MS <= 0:
            errors.append("ARK_PRICE_CACHE_TTL_MS must be a positive number of milliseconds")
        if not cls.ARK_PRICE_FEED_URL.startswith(("http://", "https://")):
            errors.append("ARK_PRICE_FEED_URL must be an http(s) URL")
        if not cls.ARK_SERVER_URL:
            errors.append("ARK_SERVER_URL is required")

        if errors:
            logger.error("Configuration validation failed:")
            for error in errors:
                logger.error(f"  - {error}")
            return False

        return True

    @classmethod
    def log_config(cls) -> None:
        logger.info("Ark wallet configuration:")
        logger.info(f"  Data Dir: {cls.ARK_DATA_DIR}")
        logger.info(f"  Default Network: {cls.ARK_DEFAULT_NETWORK}")
        logger.info(f"  Esplora URL: {cls.ARK_ESPLORA_URL}")
        logger.info(f"  Ark Server: {cls.ARK_SERVER_URL}")
        logger.info(f"  Price Feed: {cls.ARK_PRICE_FEED_URL}")
        logger.info(f"  Price Cache TTL: {cls.ARK_PRICE_CACHE_TTL_MS}ms")


def setup_logging(level_override: Optional[str] = None) -> None:
    """Configure root logging using settings or override."""

    level_name = (level_override or Settings.LOG_LEVEL or "WARNING").upper()

    if level_name in {"NO", "NONE", "OFF"}:
        level = logging.CRITICAL + 10
    else:
        level = getattr(logging, level_name, logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        force=True,
    )

    logging.getLogger("arkwallet").setLevel(level)

    noisy_logger_level = max(level, logging.INFO)
    for name in ("aiohttp", "urllib3"):
        logging.getLogger(name).setLevel(noisy_logger_level)


# Populate class attributes on import
Settings.refresh_from_env()
