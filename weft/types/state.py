"""Checkpoint payloads owned by composite agents."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SequentialAgentState:
    # Index of the next child to run; children before it have completed.
    current_index: int = 0


@dataclass(frozen=True)
class LoopAgentState:
    iteration: int = 0
    current_index: int = 0


AgentState = SequentialAgentState | LoopAgentState
