"""
Stage 4: instruction resolution.

Order is global (from the root agent), then static, then dynamic. Template
strings get ``{key}`` / ``{key?}`` substitution from session state; text
returned by an instruction callable is used as-is. When a static
instruction exists the dynamic text is held back so the cacheable prefix of
the request stays stable; the contents stage appends it after the history.
"""

from __future__ import annotations

import inspect
import logging
import re
from typing import TYPE_CHECKING, Any

from ...errors import InstructionError
from ...runtime.callback_context import CallbackContext
from ...types import LlmRequest
from .base import RequestProcessor

if TYPE_CHECKING:
    from ...runtime.context import InvocationContext

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"{+[^{}]*}+")


def inject_session_state(template: str, ctx: CallbackContext) -> str:
    """Fill ``{key}`` placeholders from state; ``{key?}`` may be missing.

    Placeholders that are not identifiers (JSON snippets and the like) are
    left untouched. A missing required key raises InstructionError.
    """

    def substitute(match: re.Match) -> str:
        raw = match.group()
        key = raw.lstrip("{").rstrip("}").strip()
        optional = key.endswith("?")
        if optional:
            key = key[:-1]
        if not key.isidentifier():
            return raw
        if key in ctx.state:
            return str(ctx.state[key])
        if optional:
            return ""
        raise InstructionError(key)

    return _PLACEHOLDER.sub(substitute, template)


async def resolve_instruction(instruction: Any, ctx: CallbackContext) -> str:
    if callable(instruction):
        text = instruction(ctx)
        if inspect.isawaitable(text):
            text = await text
        return text or ""
    return inject_session_state(instruction, ctx)


class InstructionsRequestProcessor(RequestProcessor):
    name = "instructions"

    async def apply(self, ctx: InvocationContext, request: LlmRequest) -> None:
        agent = ctx.agent
        callback_ctx = CallbackContext(ctx)

        global_instruction = getattr(agent.root_agent, "global_instruction", None)
        if global_instruction:
            request.append_instructions([await resolve_instruction(global_instruction, callback_ctx)])

        if agent.static_instruction:
            request.append_instructions([agent.static_instruction])

        if agent.instruction:
            text = await resolve_instruction(agent.instruction, callback_ctx)
            if agent.static_instruction:
                request.deferred_instruction = text
            else:
                request.append_instructions([text])
