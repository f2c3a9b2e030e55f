"""Plan-Re-Act planner — plan, act with tools, reason, then answer."""

from __future__ import annotations

from ..runtime.callback_context import CallbackContext
from ..types import LlmRequest, Part
from .base import BasePlanner

PLANNING_TAG = "/*PLANNING*/"
REPLANNING_TAG = "/*REPLANNING*/"
REASONING_TAG = "/*REASONING*/"
ACTION_TAG = "/*ACTION*/"
FINAL_ANSWER_TAG = "/*FINAL_ANSWER*/"

_THOUGHT_TAGS = (PLANNING_TAG, REPLANNING_TAG, REASONING_TAG, ACTION_TAG)


class PlanReActPlanner(BasePlanner):
    """Asks for tagged sections and marks everything before the final answer as thought."""

    def build_planning_instruction(self, ctx: CallbackContext, request: LlmRequest) -> str | None:
        return "\n".join([
            "When answering, first write a plan under "
            f"{PLANNING_TAG}, listing the steps and the tools each step needs.",
            f"Put tool calls and their rationale under {ACTION_TAG}, and your "
            f"reflection on their results under {REASONING_TAG}.",
            f"If the plan no longer fits, write a revised one under {REPLANNING_TAG}.",
            f"Give the answer to the user under {FINAL_ANSWER_TAG}.",
        ])

    def process_planning_response(self, ctx: CallbackContext, parts: list[Part]) -> list[Part] | None:
        if not parts:
            return None
        processed: list[Part] = []
        seen_call = False
        for part in parts:
            if part.function_call:
                if not part.function_call.name:
                    continue
                processed.append(part)
                seen_call = True
                continue
            # Text after the first batch of calls is speculation about their results.
            if seen_call:
                break
            if not part.text:
                processed.append(part)
                continue
            processed.extend(self._split_text(part))
        return processed

    @staticmethod
    def _split_text(part: Part) -> list[Part]:
        text = part.text or ""
        if FINAL_ANSWER_TAG in text:
            reasoning, answer = text.split(FINAL_ANSWER_TAG, 1)
            split = []
            if reasoning.strip():
                split.append(Part.from_text(reasoning, thought=True))
            if answer.strip():
                split.append(Part.from_text(answer.strip()))
            return split
        if text.lstrip().startswith(_THOUGHT_TAGS):
            return [Part.from_text(text, thought=True)]
        return [part]
