"""Ordered interceptor chains at fixed extension points."""

from __future__ import annotations

import inspect
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

Callback = Callable[..., Any]


class CallbackChain:
    """Runs callbacks in registration order; the first non-None result wins."""

    def __init__(self, callbacks: Iterable[Callback] = ()) -> None:
        self._callbacks: list[Callback] = list(callbacks)

    def use(self, callback: Callback) -> None:
        self._callbacks.append(callback)

    async def run(self, *args: Any) -> Any:
        for callback in self._callbacks:
            result = callback(*args)
            if inspect.isawaitable(result):
                result = await result
            if result is not None:
                return result
        return None

    def __bool__(self) -> bool:
        return bool(self._callbacks)

    def __len__(self) -> int:
        return len(self._callbacks)


def _chain(value: CallbackChain | Iterable[Callback] | Callback | None) -> CallbackChain:
    if value is None:
        return CallbackChain()
    if isinstance(value, CallbackChain):
        return value
    if callable(value):
        return CallbackChain([value])
    return CallbackChain(value)


@dataclass
class AgentCallbacks:
    """Extension points of one agent.

    Signatures (each may be sync or async, and returns None to continue):

    - ``before_agent(ctx) -> Content``: skip the agent and reply with this content
    - ``after_agent(ctx) -> Content``: append a reply after the agent ran
    - ``before_model(ctx, request) -> LlmResponse``: skip the model call
    - ``after_model(ctx, response) -> LlmResponse``: replace the response
    - ``on_model_error(ctx, request, error) -> LlmResponse``: recover from a model fault
    - ``before_tool(tool, args, tool_ctx) -> dict``: skip the tool with this result
    - ``after_tool(tool, args, tool_ctx, result) -> dict``: replace a successful result
    - ``on_tool_error(tool, args, tool_ctx, error) -> dict``: recover from a tool fault
    """

    before_agent: CallbackChain = field(default_factory=CallbackChain)
    after_agent: CallbackChain = field(default_factory=CallbackChain)
    before_model: CallbackChain = field(default_factory=CallbackChain)
    after_model: CallbackChain = field(default_factory=CallbackChain)
    on_model_error: CallbackChain = field(default_factory=CallbackChain)
    before_tool: CallbackChain = field(default_factory=CallbackChain)
    after_tool: CallbackChain = field(default_factory=CallbackChain)
    on_tool_error: CallbackChain = field(default_factory=CallbackChain)

    def __post_init__(self) -> None:
        for name in self.__dataclass_fields__:
            setattr(self, name, _chain(getattr(self, name)))
