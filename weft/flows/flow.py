"""
Flow — the processor chain that runs one LLM agent's turns.

Each step builds a request through the request stages, calls the model
(cost check and model callbacks around it), passes the response through the
response stages, yields the model event and executes any function calls.
Steps repeat until the agent produces a final response, transfers, pauses
for external input, fails, or the invocation ends.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import aclosing
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..config import StreamingMode
from ..errors import CostLimitExceeded, ModelFault, WeftError
from ..runtime.callback_context import CallbackContext
from ..runtime.event_log import child_branch
from ..types import Event, EventActions, LlmRequest, LlmResponse
from ..types.events import new_event_id
from .functions import handle_function_calls, structured_output_event
from .processors import (
    RequestProcessor,
    ResponseProcessor,
    default_request_processors,
    default_response_processors,
)

if TYPE_CHECKING:
    from ..agents.llm_agent import LlmAgent
    from ..runtime.context import InvocationContext

logger = logging.getLogger(__name__)


@dataclass
class _Step:
    """Set by a step that ends the flow."""

    stop: bool = False


class Flow:
    def __init__(
        self,
        request_processors: list[RequestProcessor] | None = None,
        response_processors: list[ResponseProcessor] | None = None,
    ) -> None:
        self.request_processors = (
            request_processors if request_processors is not None else default_request_processors()
        )
        self.response_processors = (
            response_processors if response_processors is not None else default_response_processors()
        )

    async def run(self, ctx: InvocationContext) -> AsyncGenerator[Event, None]:
        while not ctx.is_ended:
            step = _Step()
            last: Event | None = None
            async with aclosing(self.run_one_step(ctx, step)) as events:
                async for event in events:
                    last = event
                    yield event
            if step.stop or ctx.is_ended or last is None:
                break
            if last.partial or last.terminal or last.is_final_response():
                break

    async def run_one_step(self, ctx: InvocationContext, step: _Step) -> AsyncGenerator[Event, None]:
        request = LlmRequest()

        for processor in self.request_processors:
            async with aclosing(processor.run(ctx, request)) as events:
                async for event in events:
                    yield event
                    async for follow_up in self._after_event(ctx, event, step):
                        yield follow_up
            request.applied_stages.append(processor.name)
            if step.stop or ctx.is_ended:
                return
        logger.debug("Request for %s built: %s", ctx.agent.name, request.applied_stages)

        event_id = new_event_id()
        callback_ctx = CallbackContext(ctx)
        try:
            async with aclosing(self._call_model(ctx, request, callback_ctx)) as responses:
                async for response in responses:
                    async for event in self._handle_response(ctx, request, response, event_id, callback_ctx, step):
                        yield event
                    if step.stop:
                        return
        except CostLimitExceeded as e:
            logger.warning("Invocation %s: %s", ctx.invocation_id, e.message)
            ctx.end_invocation()
            step.stop = True
            yield self._error_event(ctx, e)
        except ModelFault as e:
            logger.error("Model call for %s failed: [%s] %s", ctx.agent.name, e.code, e.message)
            step.stop = True
            yield self._error_event(ctx, e)

    async def _call_model(
        self, ctx: InvocationContext, request: LlmRequest, callback_ctx: CallbackContext
    ) -> AsyncGenerator[LlmResponse, None]:
        agent = ctx.agent
        ctx.cost.increment_and_enforce()

        response = await agent.callbacks.before_model.run(callback_ctx, request)
        if response is not None:
            yield await self._after_model(agent, callback_ctx, response)
            return

        provider = agent.canonical_provider
        try:
            if ctx.run_config.streaming_mode == StreamingMode.SSE:
                async with aclosing(provider.stream(request)) as chunks:
                    async for chunk in chunks:
                        self._raise_for_error(agent, chunk)
                        yield await self._after_model(agent, callback_ctx, chunk)
            else:
                response = await provider.complete(request)
                self._raise_for_error(agent, response)
                yield await self._after_model(agent, callback_ctx, response)
        except ModelFault as e:
            recovered = await agent.callbacks.on_model_error.run(callback_ctx, request, e)
            if recovered is None:
                raise
            logger.warning("Model fault for %s recovered by callback: %s", agent.name, e.message)
            yield await self._after_model(agent, callback_ctx, recovered)

    @staticmethod
    def _raise_for_error(agent: LlmAgent, response: LlmResponse) -> None:
        if response.error_code:
            raise ModelFault(
                type(agent.canonical_provider).__name__,
                f"[{response.error_code}] {response.error_message or 'model returned an error'}",
            )

    @staticmethod
    async def _after_model(agent: LlmAgent, callback_ctx: CallbackContext, response: LlmResponse) -> LlmResponse:
        altered = await agent.callbacks.after_model.run(callback_ctx, response)
        return altered if altered is not None else response

    async def _handle_response(
        self,
        ctx: InvocationContext,
        request: LlmRequest,
        response: LlmResponse,
        event_id: str,
        callback_ctx: CallbackContext,
        step: _Step,
    ) -> AsyncGenerator[Event, None]:
        for processor in self.response_processors:
            async with aclosing(processor.run(ctx, request, response)) as events:
                async for event in events:
                    yield event
        if response.content is None:
            return

        event = self._model_event(ctx, request, response, event_id, callback_ctx)
        yield event
        if event.partial:
            return

        calls = event.get_function_calls()
        if not calls:
            return
        answered: set[str] = set()
        async with aclosing(handle_function_calls(ctx, calls, request.tools)) as events:
            async for tool_event in events:
                answered.update(r.id for r in tool_event.get_function_responses())
                yield tool_event
                async for follow_up in self._after_event(ctx, tool_event, step):
                    yield follow_up
        # Long-running calls still open: the client answers them in a later turn.
        if event.long_running_tool_ids - answered:
            step.stop = True

    async def _after_event(self, ctx: InvocationContext, event: Event, step: _Step) -> AsyncGenerator[Event, None]:
        """React to a function-response or request event: structured output, transfer, pause."""
        if ctx.should_pause(event):
            step.stop = True
            return

        final = structured_output_event(ctx, event)
        if final is not None:
            step.stop = True
            yield final
            return

        target_name = event.actions.transfer_to_agent
        if not target_name:
            return
        step.stop = True
        target = ctx.agent.resolve_transfer_target(target_name)
        logger.info("Transferring from %s to %s", ctx.agent.name, target.name)
        async with aclosing(target.execute(ctx, branch=child_branch(ctx.branch, target.name))) as events:
            async for transferred in events:
                yield transferred

    @staticmethod
    def _model_event(
        ctx: InvocationContext,
        request: LlmRequest,
        response: LlmResponse,
        event_id: str,
        callback_ctx: CallbackContext,
    ) -> Event:
        long_running = frozenset(
            p.function_call.id
            for p in response.content.parts
            if p.function_call
            and p.function_call.name in request.tools
            and request.tools[p.function_call.name].is_long_running
        )
        return Event(
            id=event_id,
            author=ctx.agent.name,
            invocation_id=ctx.invocation_id,
            branch=ctx.branch,
            content=response.content,
            actions=EventActions() if response.partial else callback_ctx.actions,
            partial=response.partial,
            turn_complete=response.turn_complete,
            usage=response.usage,
            cache_metadata=response.cache_metadata,
            long_running_tool_ids=long_running,
        )

    @staticmethod
    def _error_event(ctx: InvocationContext, error: WeftError) -> Event:
        return Event(
            author=ctx.agent.name,
            invocation_id=ctx.invocation_id,
            branch=ctx.branch,
            terminal=True,
            error_code=error.code,
            error_message=error.message,
        )
