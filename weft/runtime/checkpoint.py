"""
Checkpoint store — per-agent resumability snapshots for one invocation.

Each composite agent owns the key equal to its name and is the only writer of
it. When an invocation is resumable, every write is mirrored into the event
log, so the store can be rebuilt by replaying the invocation's events.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, TypeVar

from ..types import AgentState, Event

if TYPE_CHECKING:
    from ..agents.base import BaseAgent

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=AgentState)


class CheckpointStore:
    def __init__(self) -> None:
        self._states: dict[str, AgentState] = {}
        self._completed: set[str] = set()

    def get(self, agent_name: str, state_type: type[S]) -> S | None:
        state = self._states.get(agent_name)
        if state is None:
            return None
        if not isinstance(state, state_type):
            logger.warning(
                "Checkpoint for %s is %s, expected %s; ignoring",
                agent_name, type(state).__name__, state_type.__name__,
            )
            return None
        return state

    def save(self, agent_name: str, state: AgentState) -> None:
        self._states[agent_name] = state
        self._completed.discard(agent_name)
        logger.debug("Checkpoint saved: %s %s", agent_name, state)

    def mark_completed(self, agent_name: str) -> None:
        self._states.pop(agent_name, None)
        self._completed.add(agent_name)

    def is_completed(self, agent_name: str) -> bool:
        return agent_name in self._completed

    def reset(self, agent_names: Iterable[str]) -> None:
        for name in agent_names:
            self._states.pop(name, None)
            self._completed.discard(name)

    def reset_sub_agents(self, agent: BaseAgent) -> None:
        self.reset(a.name for a in agent.iter_descendants())

    def snapshot(self) -> dict[str, AgentState | None]:
        data: dict[str, AgentState | None] = dict(self._states)
        data.update({name: None for name in self._completed})
        return data

    def apply(self, event: Event, root_agent: BaseAgent | None = None) -> None:
        actions = event.actions
        if actions.reset_sub_agent_states and root_agent is not None:
            owner = root_agent.find_agent(event.author)
            if owner is not None:
                self.reset_sub_agents(owner)
        if actions.agent_state is not None:
            self.save(event.author, actions.agent_state)
        if actions.end_of_agent:
            self.mark_completed(event.author)

    @classmethod
    def from_events(cls, events: Iterable[Event], root_agent: BaseAgent | None = None) -> CheckpointStore:
        store = cls()
        for event in events:
            store.apply(event, root_agent)
        return store
