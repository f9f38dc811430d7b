import logging
from typing import Dict, Optional, Tuple

from .engine import EngineConfig, EngineFactory, WalletEngine
from .keys import KeyStore
from .state import Network
from ..config.settings import Settings
from ..core.errors import WalletNotReadyError, upstream_call

logger = logging.getLogger(__name__)


class WalletProvider:
    """Builds wallet engines from the stored key and caches them per network."""

    def __init__(
        self,
        key_store: KeyStore,
        engine_factory: EngineFactory,
        *,
        esplora_url: Optional[str] = None,
        ark_server_url: Optional[str] = None,
        ark_server_public_key: Optional[str] = None,
    ) -> None:
        self.key_store = key_store
        self.engine_factory = engine_factory
        self.esplora_url = esplora_url or Settings.ARK_ESPLORA_URL
        self.ark_server_url = ark_server_url or Settings.ARK_SERVER_URL
        self.ark_server_public_key = ark_server_public_key or Settings.ARK_SERVER_PUBLIC_KEY
        self._engines: Dict[Tuple[Network, str], WalletEngine] = {}

    def config_for(self, network: Network, private_key_hex: str) -> EngineConfig:
        return EngineConfig(
            network=network,
            private_key_hex=private_key_hex,
            esplora_url=self.esplora_url,
            ark_server_url=self.ark_server_url,
            ark_server_public_key=self.ark_server_public_key,
        )

    async def get_engine(self, network: Network) -> WalletEngine:
        key_data = self.key_store.load()
        if key_data is None:
            raise WalletNotReadyError(
                "No wallet key found. Use the setup_wallet tool to create or restore a wallet."
            )
        return await self.engine_for_key(network, key_data.private_key_hex)

    async def engine_for_key(self, network: Network, private_key_hex: str) -> WalletEngine:
        """Build (or reuse) an engine for a key that need not be stored yet."""
        cache_key = (network, private_key_hex)
        engine = self._engines.get(cache_key)
        if engine is None:
            engine = await upstream_call(
                "initializing wallet",
                self.engine_factory(self.config_for(network, private_key_hex)),
            )
            self._engines[cache_key] = engine
            logger.info(f"Wallet engine ready on {network.value}")
        return engine
