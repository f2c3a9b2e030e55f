"""Processor interfaces for the request and response stages of a flow."""

from __future__ import annotations

from abc import ABC
from collections.abc import AsyncGenerator
from typing import TYPE_CHECKING

from ...types import Event, LlmRequest, LlmResponse

if TYPE_CHECKING:
    from ...runtime.context import InvocationContext


class RequestProcessor(ABC):
    """One request stage; ``name`` is recorded in ``LlmRequest.applied_stages``.

    Stages that only shape the request implement ``apply``; stages that
    produce events of their own override ``run``.
    """

    name: str = ""

    async def run(self, ctx: InvocationContext, request: LlmRequest) -> AsyncGenerator[Event, None]:
        await self.apply(ctx, request)
        return
        yield

    async def apply(self, ctx: InvocationContext, request: LlmRequest) -> None:
        pass


class ResponseProcessor(ABC):
    name: str = ""

    async def run(
        self, ctx: InvocationContext, request: LlmRequest, response: LlmResponse
    ) -> AsyncGenerator[Event, None]:
        await self.apply(ctx, request, response)
        return
        yield

    async def apply(self, ctx: InvocationContext, request: LlmRequest, response: LlmResponse) -> None:
        pass
