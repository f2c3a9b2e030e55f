"""
Tool executor — runs the function calls of one model turn.

Per call, in order:
1. unknown tool → error result
2. unmet credential / confirmation requirement → pending request
3. before-tool callbacks (a result skips execution)
4. argument validation against the tool schema
5. execution (timeout optional)
6. after-tool callbacks on success; on-tool-error callbacks on failure

Nothing raised by a tool escapes this module: every fault is converted into
an error result the model can read.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import pydantic

from ..config import ToolExecutionConfig
from ..errors import (
    AuthRequired,
    ConfirmationRequired,
    ToolFault,
    ToolNotFoundError,
    ToolTimeoutError,
    ValidationError,
    WeftError,
)
from ..types import (
    EventActions,
    FunctionCall,
    FunctionResponse,
    ToolConfirmation,
    ToolDefinition,
    ToolResult,
)
from .context import ToolContext

if TYPE_CHECKING:
    from ..agents.callbacks import AgentCallbacks
    from ..runtime.context import InvocationContext

logger = logging.getLogger(__name__)


def error_response(err: WeftError) -> dict[str, Any]:
    return {"error": err.message, "error_code": err.code}


def normalize_result(result: Any) -> dict[str, Any]:
    if isinstance(result, dict):
        return result
    if isinstance(result, pydantic.BaseModel):
        return result.model_dump(mode="json")
    return {"result": result}


@dataclass
class ToolBatch:
    """Outcome of one turn's calls; responses are in call order, pending calls omitted."""

    results: list[ToolResult] = field(default_factory=list)
    actions: EventActions = field(default_factory=EventActions)
    # Long-running calls that returned nothing yet; answered later by the client.
    deferred: list[str] = field(default_factory=list)

    @property
    def responses(self) -> list[FunctionResponse]:
        return [FunctionResponse(name=r.name, response=r.response, id=r.call_id) for r in self.results]


@dataclass
class _Outcome:
    call: FunctionCall
    response: dict[str, Any] | None
    actions: EventActions
    deferred: bool = False


class ToolExecutor:
    def __init__(self, config: ToolExecutionConfig | None = None) -> None:
        self.config = config or ToolExecutionConfig()

    async def execute(
        self,
        ctx: InvocationContext,
        calls: list[FunctionCall],
        tools: dict[str, ToolDefinition],
        callbacks: AgentCallbacks | None = None,
        confirmations: dict[str, ToolConfirmation] | None = None,
    ) -> ToolBatch:
        if not calls:
            return ToolBatch()
        confirmations = confirmations or {}
        semaphore = asyncio.Semaphore(self.config.max_concurrency)
        outcomes: dict[str, _Outcome] = {}

        async def run(call: FunctionCall) -> None:
            async with semaphore:
                outcomes[call.id] = await self._run_one(
                    ctx, call, tools, callbacks, confirmations.get(call.id)
                )

        for group in self._plan(calls, tools):
            if len(group) > 1:
                await asyncio.gather(*(run(c) for c in group))
            else:
                await run(group[0])

        # Pair by id, in the order the model issued the calls.
        batch = ToolBatch()
        for call in calls:
            outcome = outcomes[call.id]
            batch.actions.merge(outcome.actions)
            if outcome.deferred:
                batch.deferred.append(call.id)
                continue
            if outcome.response is None:
                # Waiting on a credential or confirmation; see batch.actions.
                continue
            batch.results.append(ToolResult(
                call_id=call.id,
                name=call.name,
                response=outcome.response,
                error_code=outcome.response.get("error_code"),
            ))
        return batch

    @staticmethod
    def _plan(calls: list[FunctionCall], tools: dict[str, ToolDefinition]) -> list[list[FunctionCall]]:
        """Group consecutive independent calls; sequential tools run alone, in order."""
        groups: list[list[FunctionCall]] = []
        current: list[FunctionCall] = []
        for call in calls:
            tool = tools.get(call.name)
            if tool is not None and tool.sequential:
                if current:
                    groups.append(current)
                    current = []
                groups.append([call])
            else:
                current.append(call)
        if current:
            groups.append(current)
        return groups

    async def _run_one(
        self,
        ctx: InvocationContext,
        call: FunctionCall,
        tools: dict[str, ToolDefinition],
        callbacks: AgentCallbacks | None,
        confirmation: ToolConfirmation | None,
    ) -> _Outcome:
        tool_ctx = ToolContext(ctx, call.id, tool_confirmation=confirmation)
        outcome = _Outcome(call=call, response=None, actions=tool_ctx.actions)
        args = dict(call.args)

        tool = tools.get(call.name)
        if tool is None:
            logger.warning("Model called unknown tool %s", call.name)
            outcome.response = error_response(ToolNotFoundError(call.name))
            return outcome

        if tool.auth_config is not None and tool_ctx.get_credential(tool.auth_config) is None:
            tool_ctx.request_credential(tool.auth_config)
            return outcome

        try:
            needs_confirmation = await self._needs_confirmation(tool, args, tool_ctx)
        except Exception as e:
            outcome.response = await self._fault_response(tool, args, tool_ctx, callbacks, e)
            return outcome
        if needs_confirmation:
            if confirmation is None:
                tool_ctx.request_confirmation(hint=f'Please approve or reject the call to "{tool.name}".')
                return outcome
            if not confirmation.confirmed:
                outcome.response = {"error": "This tool call was rejected.", "error_code": "CONFIRMATION_REJECTED"}
                return outcome

        if callbacks and callbacks.before_tool:
            try:
                substituted = await callbacks.before_tool.run(tool, args, tool_ctx)
            except Exception as e:
                outcome.response = await self._fault_response(tool, args, tool_ctx, callbacks, e)
                return outcome
            if substituted is not None:
                outcome.response = normalize_result(substituted)
                return outcome

        try:
            params = tool.parameters.parse(args)
        except pydantic.ValidationError as e:
            err = ValidationError(tool.name, _summarize(e), e)
            logger.info("Rejected arguments for %s: %s", tool.name, err.message)
            outcome.response = error_response(err)
            return outcome

        try:
            result = await self._invoke(tool, params, tool_ctx)
        except AuthRequired as e:
            tool_ctx.request_credential(e.auth_config)
            return outcome
        except ConfirmationRequired as e:
            if confirmation is not None and confirmation.confirmed:
                outcome.response = {"error": e.message, "error_code": e.code}
            else:
                tool_ctx.request_confirmation(hint=e.hint, payload=e.payload)
            return outcome
        except Exception as e:
            outcome.response = await self._fault_response(tool, args, tool_ctx, callbacks, e)
            return outcome

        if result is None and tool.is_long_running:
            outcome.deferred = True
            return outcome

        response = normalize_result(result)
        if callbacks and callbacks.after_tool:
            try:
                altered = await callbacks.after_tool.run(tool, args, tool_ctx, response)
            except Exception as e:
                altered = await self._fault_response(tool, args, tool_ctx, callbacks, e)
            if altered is not None:
                response = normalize_result(altered)
        outcome.response = response
        return outcome

    @staticmethod
    async def _fault_response(
        tool: ToolDefinition,
        args: dict[str, Any],
        tool_ctx: ToolContext,
        callbacks: AgentCallbacks | None,
        err: Exception,
    ) -> dict[str, Any]:
        """Error result for a failure in the tool body, its confirmation predicate or its hooks."""
        if callbacks and callbacks.on_tool_error:
            recovered = await callbacks.on_tool_error.run(tool, args, tool_ctx, err)
            if recovered is not None:
                logger.warning("Tool %s failed and was recovered by a callback: %s", tool.name, err)
                return normalize_result(recovered)
        if isinstance(err, WeftError):
            # Structured failures (timeouts, bad transfer targets) keep their own code.
            logger.warning("Tool %s failed: [%s] %s", tool.name, err.code, err.message)
            return error_response(err)
        logger.exception("Tool execution error: %s", tool.name)
        return error_response(ToolFault(tool.name, str(err) or type(err).__name__, err))

    async def _invoke(self, tool: ToolDefinition, params: Any, tool_ctx: ToolContext) -> Any:
        async def call() -> Any:
            result = tool.execute(params, tool_ctx)
            if inspect.isawaitable(result):
                result = await result
            return result

        timeout = self.config.timeout_seconds
        if timeout is None:
            return await call()
        try:
            return await asyncio.wait_for(call(), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise ToolTimeoutError(tool.name, timeout) from e

    @staticmethod
    async def _needs_confirmation(tool: ToolDefinition, args: dict[str, Any], tool_ctx: ToolContext) -> bool:
        needed = tool.require_confirmation
        if callable(needed):
            needed = needed(args, tool_ctx)
            if inspect.isawaitable(needed):
                needed = await needed
        return bool(needed)


def _summarize(err: pydantic.ValidationError) -> str:
    parts = []
    for item in err.errors():
        loc = ".".join(str(p) for p in item.get("loc", ())) or "arguments"
        parts.append(f"{loc}: {item.get('msg', 'invalid')}")
    return "; ".join(parts)
