"""LLM provider types."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol, runtime_checkable

from ..config import GenerationConfig
from .content import Content
from .events import CacheMetadata, TokenUsage
from .tools import ToolDefinition

FinishReason = Literal["stop", "tool_calls", "length", "error"]


@dataclass
class CacheDirective:
    fingerprint: str
    ttl_seconds: int
    cache_name: str | None = None
    invocations_used: int = 0


@dataclass
class LlmRequest:
    """Accumulator the request stages build up, in stage order."""

    model: str = ""
    config: GenerationConfig = field(default_factory=GenerationConfig)
    system_instruction: list[str] = field(default_factory=list)
    contents: list[Content] = field(default_factory=list)
    tools: dict[str, ToolDefinition] = field(default_factory=dict)
    builtin_tools: list[str] = field(default_factory=list)
    cache_directive: CacheDirective | None = None
    # Dynamic instruction held back until history is assembled.
    deferred_instruction: str | None = None
    applied_stages: list[str] = field(default_factory=list)

    def append_instructions(self, texts: list[str]) -> None:
        self.system_instruction.extend(t for t in texts if t)

    def append_tools(self, tools: list[ToolDefinition]) -> None:
        for tool in tools:
            if tool.name in self.tools:
                continue
            self.tools[tool.name] = tool

    def tool_declarations(self) -> list[dict[str, Any]]:
        return [t.to_declaration() for t in self.tools.values()]

    @property
    def system_text(self) -> str:
        return "\n\n".join(self.system_instruction)


@dataclass
class LlmResponse:
    content: Content | None = None
    partial: bool = False
    turn_complete: bool = False
    finish_reason: FinishReason | None = None
    error_code: str | None = None
    error_message: str | None = None
    usage: TokenUsage | None = None
    cache_metadata: CacheMetadata | None = None


@runtime_checkable
class LLMProvider(Protocol):
    async def complete(self, request: LlmRequest) -> LlmResponse: ...
    def stream(self, request: LlmRequest) -> AsyncGenerator[LlmResponse, None]: ...
