"""Onchain + offchain balance with an optional USD figure."""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .engine import WalletEngine, entry_value_sats
from ..core.errors import upstream_call
from ..utils.price_service import PriceCache

logger = logging.getLogger(__name__)

SATS_PER_BTC = 100_000_000
CENT = Decimal("0.01")


class FiatValue(BaseModel):
    usd: Decimal
    timestamp_ms: int = Field(alias="timestamp")

    model_config = ConfigDict(populate_by_name=True)


class BalanceResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    onchain_sats: int = Field(ge=0, alias="onchain")
    offchain_sats: int = Field(ge=0, alias="offchain")
    total_sats: int = Field(ge=0, alias="total")
    fiat: Optional[FiatValue] = None

    @model_validator(mode="after")
    def _check_total(self) -> "BalanceResult":
        if self.total_sats != self.onchain_sats + self.offchain_sats:
            raise ValueError("total must equal onchain + offchain")
        return self

    def to_wire(self) -> Dict[str, Any]:
        """JSON-ready dict; USD is rounded to cents for display."""
        out: Dict[str, Any] = {
            "total": self.total_sats,
            "onchain": self.onchain_sats,
            "offchain": self.offchain_sats,
        }
        if self.fiat is not None:
            out["fiat"] = {
                "usd": float(self.fiat.usd.quantize(CENT, rounding=ROUND_HALF_UP)),
                "timestamp": self.fiat.timestamp_ms,
            }
        return out


def sum_sats(entries: Iterable[Any]) -> int:
    return sum((entry_value_sats(entry) for entry in entries), 0)


def sats_to_usd(sats: int, price_usd: Decimal) -> Decimal:
    return Decimal(sats) * price_usd / SATS_PER_BTC


def format_btc(sats: int) -> str:
    sign = "-" if sats < 0 else ""
    whole, frac = divmod(abs(sats), SATS_PER_BTC)
    return f"{sign}{whole}.{frac:08d}"


async def compute_balance(engine: WalletEngine, price_cache: PriceCache) -> BalanceResult:
    """Sum holdings and attach a USD value when a price is available.

    One price lookup per call; any fallback to a cached price happens inside
    the price cache. The fiat figure carries the price's own timestamp.
    """
    coins = await upstream_call("getting onchain coins", engine.get_coins())
    onchain = sum_sats(coins)
    vtxos = await upstream_call("getting offchain vtxos", engine.get_vtxos())
    offchain = sum_sats(vtxos)
    total = onchain + offchain

    fiat: Optional[FiatValue] = None
    snapshot = await price_cache.fetch_snapshot()
    if snapshot is not None:
        fiat = FiatValue(usd=sats_to_usd(total, snapshot.usd), timestamp_ms=snapshot.timestamp_ms)
    else:
        logger.debug("No BTC price available; balance returned without fiat value")

    return BalanceResult(
        onchain_sats=onchain,
        offchain_sats=offchain,
        total_sats=total,
        fiat=fiat,
    )
