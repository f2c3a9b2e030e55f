"""Stage 8 and the first response stage: planner hooks."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ...planners import BuiltInPlanner
from ...runtime.callback_context import CallbackContext
from ...types import LlmRequest, LlmResponse
from .base import RequestProcessor, ResponseProcessor

if TYPE_CHECKING:
    from ...runtime.context import InvocationContext


class PlanningRequestProcessor(RequestProcessor):
    name = "planning"

    async def apply(self, ctx: InvocationContext, request: LlmRequest) -> None:
        planner = ctx.agent.planner
        if planner is None:
            return
        if isinstance(planner, BuiltInPlanner):
            planner.apply_thinking_config(request)
        instruction = planner.build_planning_instruction(CallbackContext(ctx), request)
        if instruction:
            request.append_instructions([instruction])


class PlanningResponseProcessor(ResponseProcessor):
    name = "planning"

    async def apply(self, ctx: InvocationContext, request: LlmRequest, response: LlmResponse) -> None:
        planner = ctx.agent.planner
        if planner is None or response.partial or not response.content or not response.content.parts:
            return
        parts = planner.process_planning_response(CallbackContext(ctx), response.content.parts)
        if parts is not None:
            response.content.parts = parts
