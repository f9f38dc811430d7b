import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol

from pydantic import BaseModel

from .envelope import ResponseEnvelope, not_initialized_response
from ..wallet.state import WalletStateStore

logger = logging.getLogger(__name__)


@dataclass
class ToolContext:
    """Context for tool calls (extensible without breaking callers)."""

    session_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


ToolCall = Callable[[BaseModel, Optional[ToolContext]], Awaitable[ResponseEnvelope]]


class Middleware(Protocol):
    """Middleware interface using wrap-style composition.

    Implement wrap(name, call_next) returning a ToolCall that may perform
    pre/post/error handling and call the next function in the chain.
    """

    def wrap(self, name: str, call_next: ToolCall) -> ToolCall:  # pragma: no cover - interface
        ...


class LoggingMiddleware:
    def __init__(
        self,
        include_args: bool = False,
        include_result: bool = False,
        only: Optional[set[str]] = None,
        exclude: Optional[set[str]] = None,
    ):
        self.include_args = include_args
        self.include_result = include_result
        self.only = only
        self.exclude = exclude

    def wrap(self, name: str, call_next: ToolCall) -> ToolCall:
        async def _call(params: BaseModel, ctx: Optional[ToolContext]) -> ResponseEnvelope:
            if self.only and name not in self.only:
                return await call_next(params, ctx)
            if self.exclude and name in self.exclude:
                return await call_next(params, ctx)
            start = time.monotonic()
            if self.include_args:
                logger.debug(f"Tool {name} start params={params.model_dump()}")
            else:
                logger.debug(f"Tool {name} start")
            try:
                result = await call_next(params, ctx)
                dur = time.monotonic() - start
                status = "error" if result.failed else "ok"
                if self.include_result:
                    logger.debug(f"Tool {name} {status} in {dur:.3f}s result={result.to_wire()}")
                else:
                    logger.debug(f"Tool {name} {status} in {dur:.3f}s")
                return result
            except Exception as e:
                dur = time.monotonic() - start
                logger.error(f"Tool {name} failed in {dur:.3f}s: {e}")
                raise

        return _call


class WalletGateMiddleware:
    """Short-circuits gated tools while the wallet is uninitialized.

    The gate only reads the persisted state; moving to the ready state is
    the job of the setup tool.
    """

    def __init__(self, state_store: WalletStateStore):
        self.state_store = state_store

    def is_ready(self) -> bool:
        return self.state_store.load().initialized

    def wrap(self, name: str, call_next: ToolCall) -> ToolCall:
        async def _call(params: BaseModel, ctx: Optional[ToolContext]) -> ResponseEnvelope:
            if not self.is_ready():
                logger.info(f"Tool {name} blocked: wallet not initialized")
                return not_initialized_response()
            return await call_next(params, ctx)

        return _call
