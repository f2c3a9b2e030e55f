"""Tool schema — pydantic-based parameter validation."""

from __future__ import annotations

import inspect
from collections.abc import Callable
from typing import Any, get_type_hints

from pydantic import BaseModel, ConfigDict, create_model


class PydanticSchema:
    """ToolSchema implementation backed by a pydantic model."""

    def __init__(self, model: type[BaseModel]) -> None:
        self._model = model

    @property
    def model(self) -> type[BaseModel]:
        return self._model

    def parse(self, raw: Any) -> Any:
        if isinstance(raw, str):
            return self._model.model_validate_json(raw)
        return self._model.model_validate(raw)

    def to_json_schema(self) -> dict:
        return self._model.model_json_schema()


def schema_from_signature(func: Callable[..., Any], skip: frozenset[str] = frozenset()) -> PydanticSchema:
    """Build a strict pydantic model from a function's parameters."""
    try:
        hints = get_type_hints(func)
    except NameError:
        hints = {}
    fields: dict[str, Any] = {}
    for name, param in inspect.signature(func).parameters.items():
        if name in skip or name in ("self", "cls"):
            continue
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            continue
        annotation = hints.get(name, param.annotation)
        if annotation is inspect.Parameter.empty or isinstance(annotation, str):
            annotation = Any
        default = ... if param.default is inspect.Parameter.empty else param.default
        fields[name] = (annotation, default)
    model = create_model(
        f"{func.__name__}_params",
        __config__=ConfigDict(extra="forbid"),
        **fields,
    )
    return PydanticSchema(model)
