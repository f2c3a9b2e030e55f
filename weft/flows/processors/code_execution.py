"""Stage 9 and the second response stage: code execution."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import TYPE_CHECKING

from ...code_executors import BUILTIN_CODE_EXECUTION_TOOL, BuiltInCodeExecutor, CodeExecutionInput
from ...code_executors.base import BaseCodeExecutor
from ...runtime.callback_context import CallbackContext
from ...types import Content, Event, ExecutableCode, LlmRequest, LlmResponse, Part
from .base import RequestProcessor, ResponseProcessor

if TYPE_CHECKING:
    from ...runtime.context import InvocationContext

logger = logging.getLogger(__name__)

ERROR_COUNT_STATE_PREFIX = "code_execution_errors:"


def _as_text(executor: BaseCodeExecutor, content: Content) -> Content:
    parts = []
    for part in content.parts:
        if part.executable_code:
            parts.append(Part.from_text(executor.format_code(part.executable_code.code)))
        elif part.code_execution_result:
            parts.append(Part.from_text(executor.format_result(part.code_execution_result)))
        else:
            parts.append(part)
    return Content(role=content.role, parts=parts)


class CodeExecutionRequestProcessor(RequestProcessor):
    name = "code_execution"

    async def apply(self, ctx: InvocationContext, request: LlmRequest) -> None:
        executor = ctx.agent.code_executor
        if executor is None:
            return
        if isinstance(executor, BuiltInCodeExecutor):
            if BUILTIN_CODE_EXECUTION_TOOL not in request.builtin_tools:
                request.builtin_tools.append(BUILTIN_CODE_EXECUTION_TOOL)
            return
        for i, content in enumerate(request.contents):
            if any(p.executable_code or p.code_execution_result for p in content.parts):
                request.contents[i] = _as_text(executor, content)


class CodeExecutionResponseProcessor(ResponseProcessor):
    """Runs the first code block of a response and reports the result as two events."""

    name = "code_execution"

    async def run(
        self, ctx: InvocationContext, request: LlmRequest, response: LlmResponse
    ) -> AsyncGenerator[Event, None]:
        executor = ctx.agent.code_executor
        if executor is None or isinstance(executor, BuiltInCodeExecutor):
            return
        if response.partial or not response.content:
            return
        extracted = executor.extract_code(response.content.text)
        if extracted is None:
            return

        callback_ctx = CallbackContext(ctx)
        error_key = ERROR_COUNT_STATE_PREFIX + ctx.agent.name
        errors = callback_ctx.state.get(error_key, 0)
        if errors >= executor.error_retry_attempts:
            logger.warning("Not running code for %s after %d failed attempts", ctx.agent.name, errors)
            return

        prefix, code = extracted
        parts = [Part.from_text(prefix)] if prefix.strip() else []
        parts.append(Part(executable_code=ExecutableCode(code=code)))
        yield Event(
            author=ctx.agent.name,
            invocation_id=ctx.invocation_id,
            branch=ctx.branch,
            content=Content(role="model", parts=parts),
        )

        result = await executor.execute_code(callback_ctx, CodeExecutionInput(code=code))
        callback_ctx.state[error_key] = errors + 1 if result.outcome == "failed" else 0
        yield Event(
            author=ctx.agent.name,
            invocation_id=ctx.invocation_id,
            branch=ctx.branch,
            content=Content(role="model", parts=[Part(code_execution_result=result)]),
            actions=callback_ctx.actions,
        )
        # Consumed: the flow asks the model again with the result in history.
        response.content = None
