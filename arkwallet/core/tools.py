import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type

from pydantic import BaseModel

from .envelope import ResponseEnvelope, error_response
from .errors import ToolFailure, ToolRegistrationError
from .middleware import Middleware, ToolCall, ToolContext
from .validation import Err, NoParams, validate_params

logger = logging.getLogger(__name__)


class ToolSpec(BaseModel):
    name: str
    description: str
    input_schema: Dict[str, Any] = {}  # JSON schema compatible; derived from input_model if empty
    requires_wallet: bool = True


Handler = Callable[[Any], Awaitable[ResponseEnvelope]]


class Tool:
    def __init__(
        self,
        spec: ToolSpec,
        handler: Handler,
        *,
        input_model: Optional[Type[BaseModel]] = None,
    ) -> None:
        """A named tool with a parameter model and an async handler.

        The handler receives the validated input model instance. Tools that
        take no parameters may omit input_model.
        """
        self.spec = spec
        self.handler = handler
        self.input_model: Type[BaseModel] = input_model or NoParams

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def requires_wallet(self) -> bool:
        return self.spec.requires_wallet


class ToolRegistry:
    def __init__(
        self,
        middlewares: Optional[List[Middleware]] = None,
        wallet_gate: Optional[Middleware] = None,
    ):
        self._tools: Dict[str, Tool] = {}
        self._middlewares: List[Middleware] = list(middlewares or [])
        self._wallet_gate = wallet_gate

    def register(self, tool: Tool) -> None:
        if tool.name in self._tools:
            raise ToolRegistrationError(f"Tool '{tool.name}' is already registered")
        self._tools[tool.name] = tool

    def add_middleware(self, mw: Middleware) -> None:
        self._middlewares.append(mw)

    def names(self) -> List[str]:
        return list(self._tools)

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def _build_chain(self, tool: Tool) -> ToolCall:
        async def base_call(params: BaseModel, _ctx: Optional[ToolContext]) -> ResponseEnvelope:
            return await tool.handler(params)

        call_chain: ToolCall = base_call
        if tool.requires_wallet and self._wallet_gate is not None:
            call_chain = self._wallet_gate.wrap(tool.name, call_chain)
        for mw in reversed(self._middlewares):
            call_chain = mw.wrap(tool.name, call_chain)
        return call_chain

    async def dispatch(
        self, name: str, raw_params: Any = None, context: Optional[ToolContext] = None
    ) -> ResponseEnvelope:
        """Run a tool by name. Always returns an envelope; never raises."""
        tool = self._tools.get(name)
        if tool is None:
            return error_response(f"Tool '{name}' not found")

        outcome = validate_params(tool.input_model, raw_params)
        if isinstance(outcome, Err):
            logger.info(f"Rejected parameters for {name}: {outcome.violation}")
            return error_response(f"Invalid parameters for '{name}': {outcome.violation}")

        try:
            result = await self._build_chain(tool)(outcome.value, context)
        except Exception as e:
            failure = ToolFailure.from_exception(e)
            logger.warning(f"Tool {name} failed ({failure.category.value}): {failure.message}")
            return error_response(failure.message)

        if not isinstance(result, ResponseEnvelope):
            logger.error(f"Tool {name} returned {type(result).__name__}, expected ResponseEnvelope")
            return error_response(f"Tool '{name}' returned an invalid response")
        return result

    async def call(
        self, name: str, args: Any = None, context: Optional[ToolContext] = None
    ) -> Dict[str, Any]:
        """Dispatch and return the JSON-ready envelope."""
        envelope = await self.dispatch(name, args, context)
        return envelope.to_wire()

    def _derive_parameters_from_model(self, model_cls: Type[BaseModel]) -> Dict[str, Any]:
        """Derive JSON schema parameters from a Pydantic model."""
        schema = model_cls.model_json_schema(by_alias=True)
        props = schema.get("properties", {}) or {}
        required = schema.get("required", []) or []
        return {"type": "object", "properties": props, "required": required}

    def list_specs(self) -> List[Dict[str, Any]]:
        specs: List[Dict[str, Any]] = []
        for t in self._tools.values():
            spec = t.spec.model_dump()
            if not spec.get("input_schema"):
                spec["input_schema"] = self._derive_parameters_from_model(t.input_model)
            specs.append(spec)
        return specs
