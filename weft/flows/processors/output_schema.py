"""Stage 10: structured output for agents that also use tools."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ...tools import SET_MODEL_RESPONSE, set_model_response_tool
from ...types import LlmRequest
from .base import RequestProcessor

if TYPE_CHECKING:
    from ...runtime.context import InvocationContext


class OutputSchemaRequestProcessor(RequestProcessor):
    name = "output_schema"

    async def apply(self, ctx: InvocationContext, request: LlmRequest) -> None:
        agent = ctx.agent
        if agent.output_schema is None or not agent.canonical_tools():
            return
        request.append_tools([set_model_response_tool(agent.output_schema)])
        request.append_instructions([
            f"When you have the final answer, call `{SET_MODEL_RESPONSE}` with it "
            "instead of replying in text."
        ])
