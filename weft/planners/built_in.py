"""Planner that relies on the model's native reasoning."""

from __future__ import annotations

from ..runtime.callback_context import CallbackContext
from ..types import LlmRequest, Part
from .base import BasePlanner


class BuiltInPlanner(BasePlanner):
    def __init__(self, thinking_budget: int | None = None, include_thoughts: bool = True) -> None:
        self.thinking_budget = thinking_budget
        self.include_thoughts = include_thoughts

    def apply_thinking_config(self, request: LlmRequest) -> None:
        request.config.thinking_budget = self.thinking_budget
        request.config.include_thoughts = self.include_thoughts

    def build_planning_instruction(self, ctx: CallbackContext, request: LlmRequest) -> str | None:
        return None

    def process_planning_response(self, ctx: CallbackContext, parts: list[Part]) -> list[Part] | None:
        return None
