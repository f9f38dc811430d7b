import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..core.envelope import (
    SETUP_TOOL_NAME,
    WALLET_STATUS_URI,
    ResponseEnvelope,
    SuggestedResource,
    SuggestedTool,
    TextContent,
    json_resource,
    text_response,
)
from ..core.errors import InsufficientFundsError, upstream_call
from ..core.tools import Tool, ToolSpec
from ..wallet.balance import compute_balance, format_btc, sats_to_usd
from ..wallet.engine import SendRequest, engine_total_sats, offchain_address, onchain_address
from ..wallet.keys import KeyStore, generate_private_key, normalize_private_key
from ..wallet.provider import WalletProvider
from ..wallet.state import Network, WalletState, WalletStateStore
from ..utils.price_service import PriceCache

logger = logging.getLogger(__name__)

SETUP_TOOL = SuggestedTool(name=SETUP_TOOL_NAME, description="Create or restore a Bitcoin wallet")
STATUS_RESOURCE = SuggestedResource(uri=WALLET_STATUS_URI, description="Check wallet status")
READY_TOOLS = [
    SuggestedTool(name="get_balance", description="Check wallet balance"),
    SuggestedTool(name="get_address", description="Get wallet addresses"),
    SuggestedTool(name="send_bitcoin", description="Send Bitcoin to an address"),
]


class SetupWalletInput(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    action: Literal["create", "restore"] = "create"
    private_key: Optional[str] = Field(default=None, alias="privateKey")
    network: Optional[Network] = None

    @field_validator("private_key")
    @classmethod
    def _validate_key(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v.strip() == "":
            return None
        return normalize_private_key(v)

    @model_validator(mode="after")
    def _restore_needs_key(self) -> "SetupWalletInput":
        if self.action == "restore" and not self.private_key:
            raise ValueError("privateKey is required when restoring a wallet")
        return self


class SendBitcoinInput(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    address: str = Field(..., min_length=1, description="Destination Bitcoin or Ark address")
    amount: int = Field(..., gt=0, strict=True, description="Amount in satoshis")
    fee_rate: Optional[float] = Field(default=None, gt=0, alias="feeRate")
    kind: Literal["bitcoin", "ark"] = Field(default="bitcoin", alias="type")

    @field_validator("address")
    @classmethod
    def _strip_address(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Address cannot be empty")
        return v


def _format_time(ms: Optional[int]) -> str:
    if ms is None:
        return "Unknown"
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


class WalletTools:
    """Handlers for the wallet tools, sharing one state store, key store and engine provider."""

    def __init__(
        self,
        state_store: WalletStateStore,
        key_store: KeyStore,
        provider: WalletProvider,
        price_cache: PriceCache,
        default_network: Network = Network.MUTINYNET,
    ) -> None:
        self.state_store = state_store
        self.key_store = key_store
        self.provider = provider
        self.price_cache = price_cache
        self.default_network = default_network

    def _addresses_payload(self, state: WalletState, addresses: Any) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "bitcoin": {
                "type": "bitcoin",
                "network": state.network.value,
                "address": onchain_address(addresses),
            }
        }
        ark = offchain_address(addresses)
        if ark is not None:
            payload["ark"] = {"type": "ark", "network": state.network.value, "address": ark}
        return payload

    async def setup_wallet(self, params: SetupWalletInput) -> ResponseEnvelope:
        network = params.network or self.default_network
        stored = self.key_store.load()
        generated = False
        if params.action == "restore" and params.private_key:
            private_key_hex = params.private_key
            verb = "restored"
        elif stored is not None:
            private_key_hex = stored.private_key_hex
            verb = "initialized"
        else:
            private_key_hex = generate_private_key()
            generated = True
            verb = "created"

        # Nothing is persisted until the engine accepts the key.
        engine = await self.provider.engine_for_key(network, private_key_hex)
        if stored is None or stored.private_key_hex != private_key_hex:
            self.key_store.store_key(private_key_hex)
        state = self.state_store.mark_initialized(network)
        addresses = await upstream_call("getting addresses", engine.get_address())
        payload = self._addresses_payload(state, addresses)

        lines = [f"Bitcoin wallet successfully {verb} on {network.value}!", ""]
        if generated:
            lines += [
                "IMPORTANT: Please securely backup your private key:",
                private_key_hex,
                "",
            ]
        elif verb == "initialized":
            lines += ["Using the existing wallet key.", ""]
        lines.append(f"Bitcoin Address: {payload['bitcoin']['address']}")
        if "ark" in payload:
            lines.append(f"Ark Address: {payload['ark']['address']}")

        logger.info(f"Wallet {verb} on {network.value}")
        return ResponseEnvelope(
            content=[TextContent(text="\n".join(lines)), json_resource("bitcoin://address", payload)],
            suggested_resources=[STATUS_RESOURCE],
        )

    async def get_wallet_status(self, _params: BaseModel) -> ResponseEnvelope:
        state = self.state_store.load()
        key_data = self.key_store.load()
        if not state.initialized or key_data is None:
            return text_response(
                "No wallet has been initialized yet. "
                "Use the setup_wallet tool to create or restore a wallet.",
                tools=[SETUP_TOOL],
            )

        text = (
            "Wallet is initialized and active.\n"
            f"Network: {state.network.value}\n"
            f"Created: {_format_time(key_data.created_at)}\n"
            f"Last accessed: {_format_time(state.last_accessed)}"
        )
        return ResponseEnvelope(
            content=[TextContent(text=text), json_resource(WALLET_STATUS_URI, state.to_record())],
            suggested_tools=list(READY_TOOLS),
        )

    async def get_address(self, _params: BaseModel) -> ResponseEnvelope:
        state = self.state_store.touch()
        engine = await self.provider.get_engine(state.network)
        addresses = await upstream_call("getting addresses", engine.get_address())
        payload = self._addresses_payload(state, addresses)

        text = f"Here are your wallet addresses:\n\nBitcoin Address: {payload['bitcoin']['address']}"
        if "ark" in payload:
            text += f"\nArk Address: {payload['ark']['address']}"
        return ResponseEnvelope(
            content=[TextContent(text=text), json_resource("bitcoin://address", payload)],
        )

    async def get_balance(self, _params: BaseModel) -> ResponseEnvelope:
        state = self.state_store.touch()
        engine = await self.provider.get_engine(state.network)
        balance = await compute_balance(engine, self.price_cache)

        text = f"Your wallet balance is: {format_btc(balance.total_sats)} BTC"
        if balance.fiat is not None:
            text += f" (approximately ${balance.fiat.usd:,.2f} USD)"
        text += (
            f"\n\nOnchain: {balance.onchain_sats} sats"
            f"\nOffchain: {balance.offchain_sats} sats"
            f"\nTotal: {balance.total_sats} sats"
        )
        if balance.fiat is not None:
            text += f"\nPrice updated: {_format_time(balance.fiat.timestamp_ms)}"
        return ResponseEnvelope(
            content=[TextContent(text=text), json_resource("bitcoin://balance", balance.to_wire())],
        )

    async def send_bitcoin(self, params: SendBitcoinInput) -> ResponseEnvelope:
        state = self.state_store.touch()
        engine = await self.provider.get_engine(state.network)

        balance = await upstream_call("getting balance", engine.get_balance())
        available = engine_total_sats(balance)
        if available < params.amount:
            raise InsufficientFundsError(available, params.amount)

        txid = await upstream_call(
            "sending Bitcoin",
            engine.send_bitcoin(
                SendRequest(address=params.address, amount=params.amount, fee_rate=params.fee_rate)
            ),
        )
        label = "Bitcoin" if params.kind == "bitcoin" else "Ark"
        logger.info(f"Sent {params.amount} sats to {label} address, txid={txid}")

        text = (
            f"Successfully sent {params.amount} satoshis to {label} address:\n"
            f"{params.address}\n\n"
            f"Transaction ID: {txid}"
        )
        snapshot = self.price_cache.usable_snapshot()
        if snapshot is not None:
            text += f"\n(approximately ${sats_to_usd(params.amount, snapshot.usd):,.2f} USD)"
        return ResponseEnvelope(
            content=[TextContent(text=text)],
            suggested_resources=[
                SuggestedResource(uri=f"bitcoin://tx/{txid}", description="Transaction details")
            ],
        )


def create_wallet_tools(wallet_tools: WalletTools) -> List[Tool]:
    """Create wallet tool instances."""

    return [
        Tool(
            spec=ToolSpec(
                name=SETUP_TOOL_NAME,
                description="Set up a new Bitcoin wallet or restore an existing one",
                requires_wallet=False,
            ),
            handler=wallet_tools.setup_wallet,
            input_model=SetupWalletInput,
        ),
        Tool(
            spec=ToolSpec(
                name="get_wallet_status",
                description="Check Bitcoin wallet status and initialization",
                requires_wallet=False,
            ),
            handler=wallet_tools.get_wallet_status,
        ),
        Tool(
            spec=ToolSpec(
                name="get_address",
                description="Get Bitcoin and Ark addresses from the wallet",
            ),
            handler=wallet_tools.get_address,
        ),
        Tool(
            spec=ToolSpec(
                name="get_balance",
                description="Get your wallet balance in Bitcoin and Ark, with a USD estimate when available",
            ),
            handler=wallet_tools.get_balance,
        ),
        Tool(
            spec=ToolSpec(
                name="send_bitcoin",
                description="Send Bitcoin (amount in satoshis) to a Bitcoin or Ark address",
            ),
            handler=wallet_tools.send_bitcoin,
            input_model=SendBitcoinInput,
        ),
    ]
