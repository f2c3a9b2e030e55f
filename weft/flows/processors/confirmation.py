"""Stage 3: retry calls the client approved or rejected."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import TYPE_CHECKING

from ...types import REQUEST_CONFIRMATION_FUNCTION, Event, LlmRequest, ToolConfirmation
from ..functions import answered_requests, find_calls, handle_function_calls
from .base import RequestProcessor

if TYPE_CHECKING:
    from ...runtime.context import InvocationContext

logger = logging.getLogger(__name__)


class ConfirmationRequestProcessor(RequestProcessor):
    name = "confirmation"

    async def run(self, ctx: InvocationContext, request: LlmRequest) -> AsyncGenerator[Event, None]:
        answered = answered_requests(ctx, REQUEST_CONFIRMATION_FUNCTION)
        if not answered:
            return

        confirmations: dict[str, ToolConfirmation] = {}
        for answer in answered:
            asked = answer.request_call.args.get("tool_confirmation") or {}
            confirmations[answer.original_call_id] = ToolConfirmation(
                hint=asked.get("hint", ""),
                confirmed=bool(answer.response.get("confirmed", False)),
                payload=answer.response.get("payload", asked.get("payload")),
            )

        calls = find_calls(ctx, list(confirmations))
        logger.debug("Retrying %d confirmed or rejected call(s)", len(calls))
        async for event in handle_function_calls(ctx, calls, request.tools, confirmations):
            yield event
