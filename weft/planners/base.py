"""Planner collaborator interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..runtime.callback_context import CallbackContext
from ..types import LlmRequest, Part


class BasePlanner(ABC):
    """Guides the model to plan before acting.

    A planner contributes an instruction to the request and may post-process
    the parts of each non-partial response.
    """

    @abstractmethod
    def build_planning_instruction(self, ctx: CallbackContext, request: LlmRequest) -> str | None:
        """Instruction text appended to the system instruction, or None."""

    @abstractmethod
    def process_planning_response(self, ctx: CallbackContext, parts: list[Part]) -> list[Part] | None:
        """Rewritten response parts, or None to keep them unchanged."""
