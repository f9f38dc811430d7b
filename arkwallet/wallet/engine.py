"""Capability surface consumed from the external wallet engine.

The engine owns key derivation, coin selection, transaction building and all
network traffic. This module only describes what the tools call on it.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Protocol, Sequence

from .state import Network


@dataclass(frozen=True)
class SendRequest:
    address: str
    amount: int  # sats
    fee_rate: Optional[float] = None


@dataclass(frozen=True)
class EngineConfig:
    network: Network
    private_key_hex: str
    esplora_url: str
    ark_server_url: str
    ark_server_public_key: Optional[str] = None


class WalletEngine(Protocol):
    async def get_coins(self) -> Sequence[Any]:  # pragma: no cover - interface
        """Onchain spendable entries, each with an integer ``value`` in sats."""
        ...

    async def get_vtxos(self) -> Sequence[Any]:  # pragma: no cover - interface
        """Offchain virtual outputs, each with an integer ``value`` in sats."""
        ...

    async def get_balance(self) -> Mapping[str, Any]:  # pragma: no cover - interface
        """``{"onchain": {"total": int}, "offchain": {"total": int} | None}``"""
        ...

    async def get_address(self) -> Mapping[str, Any]:  # pragma: no cover - interface
        """``{"onchain": str, "offchain": {"address": str} | None}``"""
        ...

    async def send_bitcoin(self, request: SendRequest) -> str:  # pragma: no cover - interface
        ...


EngineFactory = Callable[[EngineConfig], Awaitable[WalletEngine]]


def _field(entry: Any, name: str) -> Any:
    if isinstance(entry, Mapping):
        return entry.get(name)
    return getattr(entry, name, None)


def entry_value_sats(entry: Any) -> int:
    """Integer sats held by a coin or vtxo entry."""
    value = _field(entry, "value")
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Wallet entry has non-integer value: {value!r}")
    if value < 0:
        raise ValueError(f"Wallet entry has negative value: {value}")
    return value


def engine_total_sats(balance: Mapping[str, Any]) -> int:
    """Onchain plus offchain total from an engine balance report."""
    onchain = _field(balance, "onchain") or {}
    offchain = _field(balance, "offchain") or {}
    return int(_field(onchain, "total") or 0) + int(_field(offchain, "total") or 0)


def onchain_address(addresses: Mapping[str, Any]) -> str:
    address = _field(addresses, "onchain")
    if not address:
        raise ValueError("Wallet engine returned no onchain address")
    return str(address)


def offchain_address(addresses: Mapping[str, Any]) -> Optional[str]:
    """Offchain address, accepting either ``{"address": ...}`` or a bare string."""
    offchain = _field(addresses, "offchain")
    if offchain is None:
        return None
    if isinstance(offchain, str):
        return offchain or None
    address = _field(offchain, "address")
    return str(address) if address else None
