"""
Stage 6: conversation history.

History is the branch-filtered event log with:

- partial events, thought parts and side-channel request traffic removed
- other agents' turns rewritten as user-role context
- every function response moved directly after the call it answers
  (by id; the latest response for an id wins), unanswered calls dropped
- the deferred dynamic instruction appended last
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from ...types import SIDE_CHANNEL_FUNCTIONS, Content, Event, LlmRequest, Part
from .base import RequestProcessor

if TYPE_CHECKING:
    from ...runtime.context import InvocationContext

logger = logging.getLogger(__name__)


def build_contents(events: list[Event], agent_name: str) -> list[Content]:
    contents = []
    for event in events:
        content = _clean(event)
        if content is None:
            continue
        if _is_foreign(event, agent_name):
            content = _as_context(event.author, content)
        contents.append(content)
    return _pair_function_responses(contents)


def current_turn(events: list[Event], agent_name: str) -> list[Event]:
    """Events from the latest user message or other agent's reply onwards."""
    for i in range(len(events) - 1, -1, -1):
        event = events[i]
        if event.content is None:
            continue
        if event.author == "user" or _is_foreign(event, agent_name):
            return events[i:]
    return events


def _is_foreign(event: Event, agent_name: str) -> bool:
    return event.author not in (agent_name, "user")


def _is_side_channel(part: Part) -> bool:
    if part.function_call is not None:
        return part.function_call.name in SIDE_CHANNEL_FUNCTIONS
    if part.function_response is not None:
        return part.function_response.name in SIDE_CHANNEL_FUNCTIONS
    return False


def _clean(event: Event) -> Content | None:
    if event.partial or event.content is None:
        return None
    parts = [
        p for p in event.content.parts
        if not p.thought and not _is_side_channel(p) and _has_payload(p)
    ]
    if not parts:
        return None
    return Content(role=event.content.role, parts=parts)


def _has_payload(part: Part) -> bool:
    return bool(
        part.text
        or part.function_call
        or part.function_response
        or part.executable_code
        or part.code_execution_result
    )


def _dump(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=str)


def _as_context(author: str, content: Content) -> Content:
    parts = [Part.from_text("For context:")]
    for part in content.parts:
        if part.text:
            parts.append(Part.from_text(f"[{author}] said: {part.text}"))
        elif part.function_call:
            call = part.function_call
            parts.append(Part.from_text(
                f"[{author}] called tool `{call.name}` with parameters: {_dump(call.args)}"
            ))
        elif part.function_response:
            response = part.function_response
            parts.append(Part.from_text(
                f"[{author}] `{response.name}` tool returned result: {_dump(response.response)}"
            ))
        elif part.executable_code:
            parts.append(Part.from_text(f"[{author}] ran code:\n{part.executable_code.code}"))
        elif part.code_execution_result:
            parts.append(Part.from_text(
                f"[{author}] code execution output: {part.code_execution_result.output}"
            ))
    return Content(role="user", parts=parts)


def _pair_function_responses(contents: list[Content]) -> list[Content]:
    latest: dict[str, Part] = {}
    for content in contents:
        for part in content.parts:
            if part.function_response:
                latest[part.function_response.id] = part

    paired: list[Content] = []
    for content in contents:
        calls = [p.function_call for p in content.parts if p.function_call]
        if not calls:
            rest = [p for p in content.parts if not p.function_response]
            if rest:
                paired.append(content if len(rest) == len(content.parts) else Content(content.role, rest))
            continue

        unanswered = {c.id for c in calls if c.id not in latest}
        if unanswered:
            logger.debug("Dropping %d unanswered call(s) from history", len(unanswered))
        kept = [p for p in content.parts if not (p.function_call and p.function_call.id in unanswered)]
        if kept:
            paired.append(Content(content.role, kept))
        answers = [latest[c.id] for c in calls if c.id in latest]
        if answers:
            paired.append(Content(role="user", parts=answers))
    return paired


class ContentsRequestProcessor(RequestProcessor):
    name = "contents"

    async def apply(self, ctx: InvocationContext, request: LlmRequest) -> None:
        agent = ctx.agent
        events = ctx.session.events.visible_to(ctx.branch)
        if agent.include_contents == "none":
            events = current_turn(events, agent.name)
        request.contents.extend(build_contents(events, agent.name))
        if request.deferred_instruction:
            request.contents.append(Content.from_text("user", request.deferred_instruction))
