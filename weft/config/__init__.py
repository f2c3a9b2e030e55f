"""Configuration exports."""

from weft.config.models import (
    ContextCacheConfig,
    GenerationConfig,
    RunConfig,
    StreamingMode,
    ToolExecutionConfig,
    WeftBaseConfig,
)

__all__ = [
    "WeftBaseConfig",
    "RunConfig",
    "StreamingMode",
    "GenerationConfig",
    "ContextCacheConfig",
    "ToolExecutionConfig",
]
