"""Tool registry and the define_tool / @tool helpers."""

from __future__ import annotations

import functools
import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from pydantic import BaseModel

from ..types import AuthConfig, ToolDefinition
from .schema import PydanticSchema, schema_from_signature

logger = logging.getLogger(__name__)

TOOL_CONTEXT_PARAM = "tool_context"


def define_tool(
    name: str,
    description: str,
    parameters: type[BaseModel] | PydanticSchema,
    execute: Callable[..., Any | Awaitable[Any]],
    **options: Any,
) -> ToolDefinition:
    schema = parameters if isinstance(parameters, PydanticSchema) else PydanticSchema(parameters)
    return ToolDefinition(name=name, description=description, parameters=schema, execute=execute, **options)


def tool(
    func: Callable[..., Any] | None = None,
    *,
    name: str | None = None,
    description: str | None = None,
    is_long_running: bool = False,
    sequential: bool = False,
    require_confirmation: Any = False,
    auth_config: AuthConfig | None = None,
) -> Any:
    """Turn a plain function into a ToolDefinition.

    Parameters are validated against a model built from the signature; a
    ``tool_context`` parameter, if declared, receives the ToolContext.
    """

    def wrap(fn: Callable[..., Any]) -> ToolDefinition:
        wants_context = TOOL_CONTEXT_PARAM in inspect.signature(fn).parameters
        schema = schema_from_signature(fn, skip=frozenset({TOOL_CONTEXT_PARAM}))

        @functools.wraps(fn)
        def execute(params: BaseModel, tool_context: Any) -> Any:
            kwargs = {field: getattr(params, field) for field in type(params).model_fields}
            if wants_context:
                kwargs[TOOL_CONTEXT_PARAM] = tool_context
            return fn(**kwargs)

        return ToolDefinition(
            name=name or fn.__name__,
            description=description or inspect.getdoc(fn) or "",
            parameters=schema,
            execute=execute,
            is_long_running=is_long_running,
            sequential=sequential,
            require_confirmation=require_confirmation,
            auth_config=auth_config,
        )

    if func is not None:
        return wrap(func)
    return wrap


class ToolRegistry:
    def __init__(self, tools: Iterable[ToolDefinition] = ()) -> None:
        self._tools: dict[str, ToolDefinition] = {}
        for t in tools:
            self.register(t)

    def register(self, tool: ToolDefinition) -> None:
        if tool.name in self._tools:
            logger.warning("Tool %s registered twice; keeping the latest", tool.name)
        self._tools[tool.name] = tool

    def get(self, name: str) -> ToolDefinition | None:
        return self._tools.get(name)

    def list(self) -> list[ToolDefinition]:
        return list(self._tools.values())

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
