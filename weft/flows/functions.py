"""
Function-call handling shared by the flow loop and the resume stages.

A batch of calls produces at most one function-response event (responses in
call order), followed by one side-channel request event per kind of external
input the batch is waiting for.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncGenerator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..tools import SET_MODEL_RESPONSE, ToolBatch, ToolExecutor
from ..types import (
    REQUEST_CONFIRMATION_FUNCTION,
    REQUEST_CREDENTIAL_FUNCTION,
    Content,
    Event,
    EventActions,
    FunctionCall,
    Part,
    ToolConfirmation,
    ToolDefinition,
)

if TYPE_CHECKING:
    from ..runtime.context import InvocationContext

logger = logging.getLogger(__name__)


async def handle_function_calls(
    ctx: InvocationContext,
    calls: list[FunctionCall],
    tools: dict[str, ToolDefinition],
    confirmations: dict[str, ToolConfirmation] | None = None,
) -> AsyncGenerator[Event, None]:
    executor = ToolExecutor(ctx.run_config.tools)
    batch = await executor.execute(ctx, calls, tools, ctx.agent.callbacks, confirmations)
    event = response_event(ctx, batch)
    if event is not None:
        yield event
    for request in request_events(ctx, calls, batch.actions):
        yield request


def response_event(ctx: InvocationContext, batch: ToolBatch) -> Event | None:
    if not batch.responses and batch.actions.is_empty:
        return None
    parts = [Part(function_response=r) for r in batch.responses]
    return Event(
        author=ctx.agent.name,
        invocation_id=ctx.invocation_id,
        branch=ctx.branch,
        content=Content(role="user", parts=parts) if parts else None,
        actions=batch.actions,
    )


def request_events(ctx: InvocationContext, calls: list[FunctionCall], actions: EventActions) -> list[Event]:
    """Side-channel events asking the client for credentials or confirmations."""
    by_id = {c.id: c for c in calls}
    events = []

    auth_calls = [
        FunctionCall(
            name=REQUEST_CREDENTIAL_FUNCTION,
            args={"function_call_id": call_id, "auth_config": auth_config.to_dict()},
        )
        for call_id, auth_config in actions.requested_auth_configs.items()
    ]
    if auth_calls:
        events.append(_request_event(ctx, auth_calls))

    confirm_calls = []
    for call_id, confirmation in actions.requested_tool_confirmations.items():
        args: dict[str, Any] = {
            "function_call_id": call_id,
            "tool_confirmation": confirmation.to_dict(),
        }
        if call_id in by_id:
            args["original_function_call"] = by_id[call_id].to_dict()
        confirm_calls.append(FunctionCall(name=REQUEST_CONFIRMATION_FUNCTION, args=args))
    if confirm_calls:
        events.append(_request_event(ctx, confirm_calls))
    return events


def _request_event(ctx: InvocationContext, calls: list[FunctionCall]) -> Event:
    logger.info(
        "Agent %s waiting on %s for %d call(s)", ctx.agent.name, calls[0].name, len(calls)
    )
    return Event(
        author=ctx.agent.name,
        invocation_id=ctx.invocation_id,
        branch=ctx.branch,
        content=Content(role="model", parts=[Part(function_call=c) for c in calls]),
        long_running_tool_ids=frozenset(c.id for c in calls),
    )


def structured_output_event(ctx: InvocationContext, event: Event) -> Event | None:
    """Turn a successful set_model_response result into the agent's final text."""
    for response in event.get_function_responses():
        if response.name == SET_MODEL_RESPONSE and "error_code" not in response.response:
            return Event(
                author=ctx.agent.name,
                invocation_id=ctx.invocation_id,
                branch=ctx.branch,
                content=Content.from_text("model", json.dumps(response.response)),
            )
    return None


@dataclass
class AnsweredRequest:
    """A client answer to one side-channel request."""

    original_call_id: str
    request_call: FunctionCall
    response: dict[str, Any]


def answered_requests(ctx: InvocationContext, function_name: str) -> list[AnsweredRequest]:
    """Answers to ``function_name`` requests in the latest user event not yet acted on."""
    events = ctx.session.events.visible_to(ctx.branch)
    user_index = next(
        (i for i in range(len(events) - 1, -1, -1) if events[i].author == "user"), None
    )
    if user_index is None:
        return []
    answers = [r for r in events[user_index].get_function_responses() if r.name == function_name]
    if not answers:
        return []

    handled = {r.id for e in events[user_index + 1:] for r in e.get_function_responses()}
    found = []
    for answer in answers:
        request_event = ctx.session.events.find_function_call(answer.id)
        if request_event is None:
            logger.warning("No %s call found for response %s", function_name, answer.id)
            continue
        if request_event.author != ctx.agent.name:
            continue
        request_call = next(c for c in request_event.get_function_calls() if c.id == answer.id)
        original_id = request_call.args.get("function_call_id")
        if not original_id or original_id in handled:
            continue
        found.append(AnsweredRequest(original_id, request_call, answer.response))
    return found


def find_calls(ctx: InvocationContext, call_ids: list[str]) -> list[FunctionCall]:
    """Look up the original calls by id, in the given order."""
    calls = []
    for call_id in call_ids:
        event = ctx.session.events.find_function_call(call_id)
        if event is None:
            logger.warning("Original call %s is missing from the log", call_id)
            continue
        calls.extend(c for c in event.get_function_calls() if c.id == call_id)
    return calls
