"""Event types — the immutable records an invocation produces."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field, replace
from typing import Any

from .content import Content, FunctionCall, FunctionResponse
from .state import AgentState
from .tools import AuthConfig, ToolConfirmation

REQUEST_CREDENTIAL_FUNCTION = "request_credential"
REQUEST_CONFIRMATION_FUNCTION = "request_confirmation"
SIDE_CHANNEL_FUNCTIONS = frozenset({REQUEST_CREDENTIAL_FUNCTION, REQUEST_CONFIRMATION_FUNCTION})


@dataclass
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    cached_tokens: int = 0


@dataclass
class EventActions:
    state_delta: dict[str, Any] = field(default_factory=dict)
    transfer_to_agent: str | None = None
    escalate: bool = False
    skip_summarization: bool = False
    agent_state: AgentState | None = None
    end_of_agent: bool = False
    reset_sub_agent_states: bool = False
    requested_auth_configs: dict[str, AuthConfig] = field(default_factory=dict)
    requested_tool_confirmations: dict[str, ToolConfirmation] = field(default_factory=dict)

    def merge(self, other: EventActions) -> None:
        self.state_delta.update(other.state_delta)
        if other.transfer_to_agent:
            self.transfer_to_agent = other.transfer_to_agent
        self.escalate = self.escalate or other.escalate
        self.skip_summarization = self.skip_summarization or other.skip_summarization
        self.requested_auth_configs.update(other.requested_auth_configs)
        self.requested_tool_confirmations.update(other.requested_tool_confirmations)

    @property
    def is_empty(self) -> bool:
        return self == EventActions()


@dataclass
class CacheMetadata:
    cache_name: str
    fingerprint: str
    invocations_used: int = 0
    expire_time: float = 0.0

    def is_expired(self, now: float | None = None) -> bool:
        return (now or time.time()) >= self.expire_time


def new_event_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Event:
    author: str
    invocation_id: str = ""
    branch: str = ""
    content: Content | None = None
    actions: EventActions = field(default_factory=EventActions)
    partial: bool = False
    turn_complete: bool = False
    # Ends the execution that produced it (failures only).
    terminal: bool = False
    error_code: str | None = None
    error_message: str | None = None
    long_running_tool_ids: frozenset[str] = frozenset()
    usage: TokenUsage | None = None
    cache_metadata: CacheMetadata | None = None
    sequence: int | None = None
    id: str = field(default_factory=new_event_id)
    timestamp: float = field(default_factory=time.time)

    @property
    def text(self) -> str:
        return self.content.text if self.content else ""

    @property
    def type(self) -> str:
        if self.partial:
            return "partial"
        if self.error_code:
            return "error"
        if self.get_function_calls():
            return "function_call"
        if self.get_function_responses():
            return "function_response"
        if self.content is None and (self.actions.agent_state or self.actions.end_of_agent):
            return "checkpoint"
        return "message"

    def get_function_calls(self) -> list[FunctionCall]:
        if not self.content:
            return []
        return [p.function_call for p in self.content.parts if p.function_call]

    def get_function_responses(self) -> list[FunctionResponse]:
        if not self.content:
            return []
        return [p.function_response for p in self.content.parts if p.function_response]

    def has_trailing_code_execution_result(self) -> bool:
        if not self.content or not self.content.parts:
            return False
        return self.content.parts[-1].code_execution_result is not None

    def is_final_response(self) -> bool:
        if self.actions.skip_summarization or self.long_running_tool_ids:
            return True
        return (
            not self.get_function_calls()
            and not self.get_function_responses()
            and not self.partial
            and not self.has_trailing_code_execution_result()
        )

    def requests_external_input(self) -> bool:
        """True for the side-channel credential/confirmation request events."""
        return any(
            c.name in SIDE_CHANNEL_FUNCTIONS and c.id in self.long_running_tool_ids
            for c in self.get_function_calls()
        )

    def with_state_delta(self, delta: dict[str, Any]) -> Event:
        actions = replace(self.actions, state_delta={**self.actions.state_delta, **delta})
        return replace(self, actions=actions)
