"""Executor for models that run code server-side."""

from __future__ import annotations

from ..runtime.callback_context import CallbackContext
from ..types import CodeExecutionResult
from .base import BaseCodeExecutor, CodeExecutionInput

BUILTIN_CODE_EXECUTION_TOOL = "code_execution"


class BuiltInCodeExecutor(BaseCodeExecutor):
    """Declares the backend's code tool; the model's own results pass through untouched."""

    async def execute_code(self, ctx: CallbackContext, code_input: CodeExecutionInput) -> CodeExecutionResult:
        raise NotImplementedError("Built-in code execution happens inside the model backend")
