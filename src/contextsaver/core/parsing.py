"""Defensive parsing of planner text into structured models."""

import json
import re
from dataclasses import dataclass
from typing import Generic, TypeVar

from pydantic import BaseModel, ValidationError

T = TypeVar("T", bound=BaseModel)

_FENCE = re.compile(r"^```[a-zA-Z0-9_-]*\s*\n(?P<body>.*)\n\s*```$", re.DOTALL)


@dataclass(frozen=True)
class ParseResult(Generic[T]):
    """Tagged outcome of parsing planner output: a value or an error, never both."""

    ok: bool
    value: T | None = None
    error: str | None = None

    @classmethod
    def success(cls, value: T) -> "ParseResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> "ParseResult[T]":
        return cls(ok=False, error=error)

    def unwrap(self) -> T:
        if not self.ok or self.value is None:
            raise ValueError(self.error or "empty parse result")
        return self.value


def _strip_fence(text: str) -> str:
    match = _FENCE.match(text)
    return match.group("body") if match else text


def parse_structured_response(text: str | None, model: type[T]) -> ParseResult[T]:
    """
    Parse ``text`` as a JSON document matching ``model``.

    Accepts a bare JSON object, optionally wrapped in a single markdown code
    fence. Anything else (prose, truncated JSON, a top-level array, a
    document of the wrong shape) is reported as a failure, never raised.
    """
    if text is None or not text.strip():
        return ParseResult.failure("empty response")

    body = _strip_fence(text.strip())
    try:
        data = json.loads(body)
    except json.JSONDecodeError as e:
        return ParseResult.failure(f"response is not valid JSON: {e.msg} (line {e.lineno} column {e.colno})")

    if not isinstance(data, dict):
        return ParseResult.failure(f"expected a JSON object, got {type(data).__name__}")

    try:
        return ParseResult.success(model.model_validate(data))
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}" for err in e.errors()
        )
        return ParseResult.failure(f"response does not match {model.__name__}: {problems}")
