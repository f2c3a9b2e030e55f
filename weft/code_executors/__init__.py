"""Code executors."""

from .base import BaseCodeExecutor, CodeExecutionInput
from .built_in import BUILTIN_CODE_EXECUTION_TOOL, BuiltInCodeExecutor
from .local import LocalCodeExecutor

__all__ = [
    "BaseCodeExecutor",
    "CodeExecutionInput",
    "BuiltInCodeExecutor",
    "BUILTIN_CODE_EXECUTION_TOOL",
    "LocalCodeExecutor",
]
