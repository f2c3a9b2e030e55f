"""Stage 2: store credentials the client supplied and retry the calls that asked for them."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import TYPE_CHECKING

from ...tools import CREDENTIAL_STATE_PREFIX
from ...types import REQUEST_CREDENTIAL_FUNCTION, AuthConfig, Event, EventActions, LlmRequest
from ..functions import answered_requests, find_calls, handle_function_calls
from .base import RequestProcessor

if TYPE_CHECKING:
    from ...runtime.context import InvocationContext

logger = logging.getLogger(__name__)


class AuthRequestProcessor(RequestProcessor):
    name = "auth"

    async def run(self, ctx: InvocationContext, request: LlmRequest) -> AsyncGenerator[Event, None]:
        answered = answered_requests(ctx, REQUEST_CREDENTIAL_FUNCTION)
        if not answered:
            return

        delta = {}
        for answer in answered:
            auth_config = AuthConfig.from_dict(answer.request_call.args.get("auth_config") or {})
            credential = answer.response.get("credential")
            if credential is None:
                logger.warning("Credential response for %s carried no credential", answer.original_call_id)
                continue
            delta[CREDENTIAL_STATE_PREFIX + auth_config.credential_key] = credential
        if delta:
            # Must land in session state before the retried calls look it up.
            yield Event(
                author=ctx.agent.name,
                invocation_id=ctx.invocation_id,
                branch=ctx.branch,
                actions=EventActions(state_delta=delta),
            )

        calls = find_calls(ctx, [a.original_call_id for a in answered])
        logger.debug("Retrying %d call(s) after credentials were supplied", len(calls))
        async for event in handle_function_calls(ctx, calls, request.tools):
            yield event
