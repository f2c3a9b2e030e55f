"""Flows — the processor chain behind every LLM agent."""

from .flow import Flow
from .functions import handle_function_calls
from .processors import (
    RequestProcessor,
    ResponseProcessor,
    build_contents,
    default_request_processors,
    default_response_processors,
    inject_session_state,
)

__all__ = [
    "Flow",
    "handle_function_calls",
    "RequestProcessor",
    "ResponseProcessor",
    "default_request_processors",
    "default_response_processors",
    "build_contents",
    "inject_session_state",
]
