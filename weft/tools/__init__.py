"""Tool definitions, schemas and the execution pipeline."""

from __future__ import annotations

from .builtin import (
    EXIT_LOOP,
    SET_MODEL_RESPONSE,
    TRANSFER_TO_AGENT,
    exit_loop_tool,
    set_model_response_tool,
    transfer_tool,
)
from .context import CREDENTIAL_STATE_PREFIX, ToolContext
from .executor import ToolBatch, ToolExecutor, error_response, normalize_result
from .registry import ToolRegistry, define_tool, tool
from .schema import PydanticSchema, schema_from_signature

__all__ = [
    "ToolContext",
    "CREDENTIAL_STATE_PREFIX",
    "ToolRegistry",
    "define_tool",
    "tool",
    "PydanticSchema",
    "schema_from_signature",
    "ToolExecutor",
    "ToolBatch",
    "error_response",
    "normalize_result",
    "TRANSFER_TO_AGENT",
    "EXIT_LOOP",
    "SET_MODEL_RESPONSE",
    "transfer_tool",
    "exit_loop_tool",
    "set_model_response_tool",
]
