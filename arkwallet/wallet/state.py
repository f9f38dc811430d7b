"""Persisted wallet state: one small JSON record, read and written whole."""

from __future__ import annotations

import json
import logging
import os
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..utils.clock import now_ms

logger = logging.getLogger(__name__)

WALLET_STATE_FILENAME = "wallet-state.json"


class Network(str, Enum):
    BITCOIN = "bitcoin"
    TESTNET = "testnet"
    SIGNET = "signet"
    MUTINYNET = "mutinynet"


DEFAULT_NETWORK = Network.MUTINYNET


class WalletState(BaseModel):
    model_config = ConfigDict(populate_by_name=True, use_enum_values=False)

    initialized: bool = False
    network: Network = DEFAULT_NETWORK
    created_at: int = Field(alias="createdAt")
    last_accessed: Optional[int] = Field(default=None, alias="lastAccessed")

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def write_json_atomic(path: Path, payload: dict, mode: Optional[int] = None) -> None:
    """Write to a sibling temp file, then replace. ``mode`` applies before any bytes land."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(".tmp")
    if mode is None:
        fh = tmp_path.open("w", encoding="utf-8")
    else:
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
        # O_CREAT ignores mode for a leftover temp file
        os.chmod(tmp_path, mode)
        fh = os.fdopen(fd, "w", encoding="utf-8")
    with fh:
        json.dump(payload, fh, indent=2)
        fh.write("\n")
    tmp_path.replace(path)


class WalletStateStore:
    """JSON-file store for the single WalletState record.

    Callers read the full record, change fields in memory and write the full
    record back; there are no partial updates at the storage layer.
    """

    def __init__(
        self,
        path: Union[str, Path],
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.path = Path(path)
        self._clock = clock

    @classmethod
    def in_dir(cls, data_dir: Union[str, Path], **kwargs) -> "WalletStateStore":
        return cls(Path(data_dir) / WALLET_STATE_FILENAME, **kwargs)

    def default_state(self) -> WalletState:
        return WalletState(initialized=False, network=DEFAULT_NETWORK, created_at=self._clock())

    def load(self) -> WalletState:
        if not self.path.exists():
            return self.default_state()
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                payload = json.load(fh)
            return WalletState.model_validate(payload)
        except (OSError, ValueError, ValidationError) as e:
            logger.error(f"Error loading wallet state from {self.path}: {e}")
            return self.default_state()

    def save(self, state: WalletState) -> None:
        write_json_atomic(self.path, state.to_record())

    def mark_initialized(self, network: Network) -> WalletState:
        now = self._clock()
        state = WalletState(initialized=True, network=network, created_at=now, last_accessed=now)
        self.save(state)
        logger.info(f"Wallet state initialized on {network.value}")
        return state

    def touch(self) -> WalletState:
        """Refresh lastAccessed and persist the record."""
        state = self.load()
        state.last_accessed = self._clock()
        self.save(state)
        return state
