"""
Scripted provider for tests and examples.

Replays a queue of canned responses and records every request it receives,
so tests can assert on what the request stages assembled.
"""

from __future__ import annotations

from collections import deque
from collections.abc import AsyncGenerator, Callable, Iterable
from typing import Any

from ..errors import ModelFault
from ..types import Content, FunctionCall, LlmRequest, LlmResponse, Part, TokenUsage
from .base import BaseLLMProvider, RetryConfig

ScriptItem = LlmResponse | str | Callable[[LlmRequest], LlmResponse]


class ScriptedLLMProvider(BaseLLMProvider):
    name = "scripted"

    def __init__(self, responses: Iterable[ScriptItem] = ()) -> None:
        super().__init__(retry=RetryConfig(max_retries=0))
        self._script: deque[ScriptItem] = deque(responses)
        self.requests: list[LlmRequest] = []

    # -- Script builders --

    @staticmethod
    def text(text: str, *, thought: str | None = None) -> LlmResponse:
        parts = [Part.from_text(thought, thought=True)] if thought else []
        parts.append(Part.from_text(text))
        return LlmResponse(content=Content(role="model", parts=parts), turn_complete=True, finish_reason="stop")

    @staticmethod
    def call(name: str, args: dict[str, Any] | None = None, id: str | None = None) -> LlmResponse:
        return ScriptedLLMProvider.calls((name, args or {}, id))

    @staticmethod
    def calls(*calls: tuple[str, dict[str, Any], str | None]) -> LlmResponse:
        parts = [Part.from_function_call(name, args, id) for name, args, id in calls]
        return LlmResponse(content=Content(role="model", parts=parts), finish_reason="tool_calls")

    @staticmethod
    def error(code: str = "MODEL_FAULT", message: str = "backend unavailable") -> LlmResponse:
        return LlmResponse(error_code=code, error_message=message, finish_reason="error")

    def add(self, *responses: ScriptItem) -> None:
        self._script.extend(responses)

    @property
    def remaining(self) -> int:
        return len(self._script)

    @property
    def call_count(self) -> int:
        return len(self.requests)

    # -- BaseLLMProvider --

    async def _do_complete(self, request: LlmRequest) -> LlmResponse:
        self.requests.append(request)
        if not self._script:
            raise ModelFault(self.name, f"No scripted response left for call {len(self.requests)}")
        item = self._script.popleft()
        if callable(item):
            item = item(request)
        if isinstance(item, str):
            item = self.text(item)
        if item.usage is None and item.content is not None:
            tokens = len(item.content.text.split())
            item.usage = TokenUsage(completion_tokens=tokens, total_tokens=tokens)
        if item.cache_metadata is None:
            item.cache_metadata = self.cache_metadata_for(request)
        return item

    async def _do_stream(self, request: LlmRequest) -> AsyncGenerator[LlmResponse, None]:
        response = await self._do_complete(request)
        if response.content is not None and not _has_calls(response.content):
            for word in _chunks(response.content.text):
                yield LlmResponse(content=Content.from_text("model", word), partial=True)
        response.turn_complete = True
        yield response


def _has_calls(content: Content) -> bool:
    return any(isinstance(p.function_call, FunctionCall) for p in content.parts)


def _chunks(text: str) -> list[str]:
    words = text.split(" ")
    return [w + " " for w in words[:-1]] + [words[-1]] if text else []
