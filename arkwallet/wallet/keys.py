"""On-disk storage for the wallet's private key."""

from __future__ import annotations

import json
import logging
import secrets
from pathlib import Path
from typing import Callable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .state import write_json_atomic
from ..utils.clock import now_ms

logger = logging.getLogger(__name__)

WALLET_KEY_FILENAME = "wallet-key.json"
KEY_FILE_MODE = 0o600


def generate_private_key() -> str:
    return secrets.token_hex(32)


def normalize_private_key(value: str) -> str:
    """Return a lowercase 64-char hex key, or raise ValueError."""
    key = value.strip().lower()
    if key.startswith("0x"):
        key = key[2:]
    if len(key) != 64:
        raise ValueError("Private key must be 32 bytes (64 hex characters)")
    try:
        bytes.fromhex(key)
    except ValueError:
        raise ValueError("Private key must be hex encoded")
    return key


class KeyData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    private_key_hex: str = Field(alias="privateKeyHex")
    created_at: int = Field(alias="createdAt")

    @field_validator("private_key_hex")
    @classmethod
    def _validate_key(cls, v: str) -> str:
        return normalize_private_key(v)


class KeyStore:
    def __init__(self, path: Union[str, Path], clock: Callable[[], int] = now_ms) -> None:
        self.path = Path(path)
        self._clock = clock

    @classmethod
    def in_dir(cls, data_dir: Union[str, Path], **kwargs) -> "KeyStore":
        return cls(Path(data_dir) / WALLET_KEY_FILENAME, **kwargs)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Optional[KeyData]:
        if not self.path.exists():
            return None
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                return KeyData.model_validate(json.load(fh))
        except (OSError, ValueError, ValidationError) as e:
            logger.error(f"Error loading key from {self.path}: {e}")
            # An unreadable key file would fail on every call; drop it.
            try:
                self.path.unlink()
            except OSError as unlink_error:
                logger.error(f"Error deleting invalid key file: {unlink_error}")
            return None

    def save(self, key_data: KeyData) -> None:
        write_json_atomic(self.path, key_data.model_dump(by_alias=True), mode=KEY_FILE_MODE)

    def store_key(self, private_key_hex: str) -> KeyData:
        key_data = KeyData(private_key_hex=private_key_hex, created_at=self._clock())
        self.save(key_data)
        return key_data
