"""Parameter validation as a tagged result instead of exceptions inside handlers."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Generic, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

M = TypeVar("M", bound=BaseModel)


@dataclass(frozen=True)
class Ok(Generic[M]):
    value: M


@dataclass(frozen=True)
class Err:
    violation: str


ValidationResult = Union[Ok[M], Err]


class NoParams(BaseModel):
    """Input model for tools that accept no parameters (unknown keys are ignored)."""


def describe_first_error(error: ValidationError) -> str:
    errors = error.errors()
    if not errors:
        return str(error)
    first = errors[0]
    loc = ".".join(str(part) for part in first.get("loc", ()))
    msg = first.get("msg", "invalid value")
    return f"{loc}: {msg}" if loc else msg


def validate_params(model: Type[M], raw: Any) -> ValidationResult:
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        return Err(f"parameters must be an object, got {type(raw).__name__}")
    try:
        return Ok(model.model_validate(dict(raw)))
    except ValidationError as ve:
        return Err(describe_first_error(ve))
