"""Stage 1: model, generation config and declared tools."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ...tools import transfer_tool
from ...types import LlmRequest
from .base import RequestProcessor

if TYPE_CHECKING:
    from ...runtime.context import InvocationContext


class BasicRequestProcessor(RequestProcessor):
    name = "basic"

    async def apply(self, ctx: InvocationContext, request: LlmRequest) -> None:
        agent = ctx.agent
        request.model = agent.canonical_model
        request.config = agent.generate_config.model_copy(deep=True)

        tools = agent.canonical_tools()
        # With tools present the schema is enforced through set_model_response instead.
        if agent.output_schema is not None and not tools:
            request.config.response_schema = agent.output_schema.model_json_schema()
            request.config.response_mime_type = "application/json"

        request.append_tools(tools)
        targets = agent.transfer_targets()
        if targets:
            request.append_tools([transfer_tool([(a.name, a.description) for a in targets])])
