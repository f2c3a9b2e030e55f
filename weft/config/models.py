"""
Configuration models

pydantic models for everything an invocation can be tuned with. Loading them
from files is left to the embedding application.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


class WeftBaseConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", validate_assignment=True)


class StreamingMode(StrEnum):
    NONE = "none"
    SSE = "sse"


class GenerationConfig(WeftBaseConfig):
    """Sampling parameters forwarded to the model backend."""

    temperature: float | None = Field(None, ge=0.0, le=2.0, description="Sampling temperature")
    top_p: float | None = Field(None, ge=0.0, le=1.0, description="Nucleus sampling mass")
    max_output_tokens: int | None = Field(None, gt=0, description="Cap on generated tokens")
    stop_sequences: list[str] = Field(default_factory=list, description="Stop sequences")
    response_mime_type: str | None = Field(None, description="Requested output MIME type")
    response_schema: dict[str, Any] | None = Field(None, description="JSON schema for structured output")
    thinking_budget: int | None = Field(None, description="Token budget for built-in reasoning")
    include_thoughts: bool = Field(False, description="Return reasoning parts to the caller")


class ContextCacheConfig(WeftBaseConfig):
    cache_intervals: int = Field(10, ge=1, description="Invocations a cache entry may be reused for")
    ttl_seconds: int = Field(1800, gt=0, description="Cache lifetime")
    min_tokens: int = Field(0, ge=0, description="Skip caching below this estimated prompt size")


class ToolExecutionConfig(WeftBaseConfig):
    max_concurrency: int = Field(8, ge=1, description="Concurrent tool calls per model turn")
    timeout_seconds: float | None = Field(None, gt=0, description="Per-call timeout; None waits forever")


class RunConfig(WeftBaseConfig):
    """Per-invocation settings."""

    max_llm_calls: int = Field(
        500, description="Model call budget for one invocation; <= 0 disables the limit"
    )
    streaming_mode: StreamingMode = Field(StreamingMode.NONE, description="Partial event streaming")
    resumable: bool = Field(False, description="Record checkpoints as events so the invocation can resume")
    context_cache: ContextCacheConfig | None = Field(None, description="Default context cache settings")
    tools: ToolExecutionConfig = Field(default_factory=ToolExecutionConfig)

    @field_validator("max_llm_calls")
    @classmethod
    def _warn_unlimited(cls, value: int) -> int:
        if value <= 0:
            logger.warning("max_llm_calls is %d: model calls are unbounded for this run", value)
        return value
