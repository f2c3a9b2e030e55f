"""Core type definitions, re-exported from the sub-modules."""

from .content import (
    CodeExecutionResult, Content, ExecutableCode, FunctionCall, FunctionResponse, Part, Role,
    new_call_id,
)
from .tools import AuthConfig, ToolConfirmation, ToolDefinition, ToolResult, ToolSchema
from .state import AgentState, LoopAgentState, SequentialAgentState
from .events import (
    REQUEST_CONFIRMATION_FUNCTION, REQUEST_CREDENTIAL_FUNCTION, SIDE_CHANNEL_FUNCTIONS,
    CacheMetadata, Event, EventActions, TokenUsage,
)
from .llm import CacheDirective, FinishReason, LLMProvider, LlmRequest, LlmResponse

__all__ = [
    "Content", "Part", "Role", "FunctionCall", "FunctionResponse", "ExecutableCode",
    "CodeExecutionResult", "new_call_id",
    "ToolSchema", "ToolDefinition", "ToolResult", "AuthConfig", "ToolConfirmation",
    "AgentState", "SequentialAgentState", "LoopAgentState",
    "Event", "EventActions", "TokenUsage", "CacheMetadata",
    "REQUEST_CREDENTIAL_FUNCTION", "REQUEST_CONFIRMATION_FUNCTION", "SIDE_CHANNEL_FUNCTIONS",
    "LlmRequest", "LlmResponse", "LLMProvider", "CacheDirective", "FinishReason",
]
