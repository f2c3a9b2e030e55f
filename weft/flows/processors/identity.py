"""Stage 5: tell the model which agent it is."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ...types import LlmRequest
from .base import RequestProcessor

if TYPE_CHECKING:
    from ...runtime.context import InvocationContext


class IdentityRequestProcessor(RequestProcessor):
    name = "identity"

    async def apply(self, ctx: InvocationContext, request: LlmRequest) -> None:
        agent = ctx.agent
        lines = [f'You are an agent. Your internal name is "{agent.name}".']
        if agent.description:
            lines.append(f'The description about you is "{agent.description}".')
        request.append_instructions([" ".join(lines)])
