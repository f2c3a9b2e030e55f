"""Code executor collaborator interface."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass

from ..runtime.callback_context import CallbackContext
from ..types import CodeExecutionResult


@dataclass
class CodeExecutionInput:
    code: str
    execution_id: str | None = None


class BaseCodeExecutor(ABC):
    """Runs code the model writes in its responses.

    Code is recognised between one of ``code_block_delimiters``; results are
    shown back to the model between ``execution_result_delimiters``. After
    ``error_retry_attempts`` consecutive failures the executor stops running
    further code for that agent.
    """

    code_block_delimiters: list[tuple[str, str]] = [
        ("```tool_code\n", "\n```"),
        ("```python\n", "\n```"),
    ]
    execution_result_delimiters: tuple[str, str] = ("```tool_output\n", "\n```")

    def __init__(self, error_retry_attempts: int = 2) -> None:
        self.error_retry_attempts = error_retry_attempts

    def extract_code(self, text: str) -> tuple[str, str] | None:
        """Split ``text`` at the first code block: (text before it, code)."""
        best: re.Match | None = None
        for start, end in self.code_block_delimiters:
            match = re.search(re.escape(start) + r"(.*?)" + re.escape(end), text, re.DOTALL)
            if match and (best is None or match.start() < best.start()):
                best = match
        if best is None:
            return None
        return text[: best.start()], best.group(1)

    def format_code(self, code: str) -> str:
        start, end = self.code_block_delimiters[0]
        return f"{start}{code}{end}"

    def format_result(self, result: CodeExecutionResult) -> str:
        start, end = self.execution_result_delimiters
        return f"{start}{result.output}{end}"

    @abstractmethod
    async def execute_code(self, ctx: CallbackContext, code_input: CodeExecutionInput) -> CodeExecutionResult:
        ...
