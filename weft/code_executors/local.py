"""In-process code executor. Only for trusted code: there is no sandbox."""

from __future__ import annotations

import asyncio
import io
import logging
import traceback
from typing import Any

from ..runtime.callback_context import CallbackContext
from ..types import CodeExecutionResult
from .base import BaseCodeExecutor, CodeExecutionInput

logger = logging.getLogger(__name__)


def _run(code: str) -> CodeExecutionResult:
    # print() is rebound per run; sys.stdout is process-wide and runs share it.
    stdout = io.StringIO()

    def _print(*args: Any, **kwargs: Any) -> None:
        if kwargs.get("file") is None:
            kwargs["file"] = stdout
        print(*args, **kwargs)

    try:
        exec(code, {"__name__": "__weft_exec__", "print": _print})
    except Exception:
        output = stdout.getvalue() + traceback.format_exc(limit=1)
        return CodeExecutionResult(outcome="failed", output=output)
    return CodeExecutionResult(outcome="ok", output=stdout.getvalue())


class LocalCodeExecutor(BaseCodeExecutor):
    """Runs code in a worker thread and captures what it prints.

    Only ``print`` output is captured; writes to ``sys.stdout`` go to the process.
    """

    async def execute_code(self, ctx: CallbackContext, code_input: CodeExecutionInput) -> CodeExecutionResult:
        logger.debug("Executing %d chars of code for %s", len(code_input.code), ctx.agent_name)
        return await asyncio.to_thread(_run, code_input.code)
