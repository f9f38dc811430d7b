import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Type, Union

from .middleware import LoggingMiddleware, Middleware, WalletGateMiddleware
from .tools import ToolRegistry
from ..config.settings import Settings
from ..integrations.wallet_tools import WalletTools, create_wallet_tools
from ..utils.http_client import cleanup_http_client
from ..utils.clock import now_ms
from ..utils.price_service import PriceCache
from ..wallet.engine import EngineFactory
from ..wallet.keys import KeyStore
from ..wallet.provider import WalletProvider
from ..wallet.state import DEFAULT_NETWORK, Network, WalletStateStore

logger = logging.getLogger(__name__)


@dataclass
class WalletToolkit:
    registry: ToolRegistry
    state_store: WalletStateStore
    key_store: KeyStore
    provider: WalletProvider
    price_cache: PriceCache

    async def cleanup(self) -> None:
        await cleanup_http_client()


def _default_network(settings: Type[Settings]) -> Network:
    try:
        return Network(settings.ARK_DEFAULT_NETWORK)
    except ValueError:
        logger.warning(
            f"Unknown ARK_DEFAULT_NETWORK '{settings.ARK_DEFAULT_NETWORK}', "
            f"using {DEFAULT_NETWORK.value}"
        )
        return DEFAULT_NETWORK


def build_wallet_registry(
    engine_factory: EngineFactory,
    *,
    data_dir: Optional[Union[str, Path]] = None,
    price_cache: Optional[PriceCache] = None,
    middlewares: Optional[List[Middleware]] = None,
    settings: Type[Settings] = Settings,
    clock: Callable[[], int] = now_ms,
) -> WalletToolkit:
    """Assemble the wallet tools behind a registry with the wallet gate.

    The engine factory is the seam to the external wallet engine; everything
    else is built from settings unless passed in.
    """
    root = Path(data_dir or settings.ARK_DATA_DIR).expanduser()
    state_store = WalletStateStore.in_dir(root, clock=clock)
    key_store = KeyStore.in_dir(root, clock=clock)
    provider = WalletProvider(
        key_store,
        engine_factory,
        esplora_url=settings.ARK_ESPLORA_URL,
        ark_server_url=settings.ARK_SERVER_URL,
        ark_server_public_key=settings.ARK_SERVER_PUBLIC_KEY,
    )
    if price_cache is None:
        price_cache = PriceCache(
            feed_url=settings.ARK_PRICE_FEED_URL,
            ttl_ms=settings.ARK_PRICE_CACHE_TTL_MS,
            clock=clock,
        )

    registry = ToolRegistry(
        middlewares=middlewares if middlewares is not None else [LoggingMiddleware()],
        wallet_gate=WalletGateMiddleware(state_store),
    )
    wallet_tools = WalletTools(
        state_store,
        key_store,
        provider,
        price_cache,
        default_network=_default_network(settings),
    )
    for tool in create_wallet_tools(wallet_tools):
        registry.register(tool)

    logger.info(f"Registered wallet tools: {', '.join(registry.names())} (data dir: {root})")
    return WalletToolkit(
        registry=registry,
        state_store=state_store,
        key_store=key_store,
        provider=provider,
        price_cache=price_cache,
    )
