"""Failure types shared by tools, the registry and the wallet layer."""

from __future__ import annotations

from enum import Enum
from typing import Awaitable, Optional, TypeVar

T = TypeVar("T")


class ErrorCategory(Enum):
    VALIDATION = "validation"
    NOT_READY = "not_ready"
    UPSTREAM = "upstream"
    CONFIGURATION = "configuration"
    EXECUTION = "execution"
    NOT_FOUND = "not_found"


class ToolFailure(Exception):
    """A failure raised anywhere below the dispatcher.

    Every failure carries a message fit for the agent and, optionally, the
    exception that caused it. The registry renders all of them the same way.
    """

    category = ErrorCategory.EXECUTION

    def __init__(
        self,
        message: str,
        *,
        cause: Optional[BaseException] = None,
        category: Optional[ErrorCategory] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause
        if category is not None:
            self.category = category

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ToolFailure":
        if isinstance(exc, ToolFailure):
            return exc
        message = str(exc) or type(exc).__name__
        return cls(message, cause=exc)

    def to_dict(self) -> dict:
        return {"code": self.category.value, "message": self.message}


class ParameterValidationError(ToolFailure):
    category = ErrorCategory.VALIDATION


class WalletNotReadyError(ToolFailure):
    category = ErrorCategory.NOT_READY


class UpstreamError(ToolFailure):
    category = ErrorCategory.UPSTREAM


class InsufficientFundsError(UpstreamError):
    def __init__(self, available_sats: int, requested_sats: int) -> None:
        super().__init__(
            f"Insufficient balance. You have {available_sats} satoshis, "
            f"but trying to send {requested_sats} satoshis."
        )
        self.available_sats = available_sats
        self.requested_sats = requested_sats


class ToolRegistrationError(ToolFailure):
    """Raised at startup for a broken tool configuration; never sent to the agent."""

    category = ErrorCategory.CONFIGURATION


async def upstream_call(action: str, awaitable: Awaitable[T]) -> T:
    """Await a wallet engine operation, re-raising any failure as UpstreamError."""
    try:
        return await awaitable
    except ToolFailure:
        raise
    except Exception as e:
        raise UpstreamError(f"Error {action}: {str(e) or type(e).__name__}", cause=e) from e
