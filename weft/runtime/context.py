"""Execution state shared by the whole agent tree for one request."""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from ..config import RunConfig
from ..errors import CostLimitExceeded
from ..types import AgentState, Content, Event, EventActions
from .checkpoint import CheckpointStore
from .session import BaseSessionService, Session

if TYPE_CHECKING:
    from ..agents.base import BaseAgent

logger = logging.getLogger(__name__)


def new_invocation_id() -> str:
    return f"inv-{uuid.uuid4().hex[:16]}"


class CostCounter:
    """Model-call budget for one invocation.

    The check and the increment happen without a suspension point in between,
    so concurrent branches on one event loop never overshoot the limit.
    """

    def __init__(self, max_llm_calls: int = 0) -> None:
        self.max_llm_calls = max_llm_calls
        self.llm_calls = 0

    def increment_and_enforce(self) -> None:
        if self.max_llm_calls > 0 and self.llm_calls >= self.max_llm_calls:
            raise CostLimitExceeded(self.max_llm_calls)
        self.llm_calls += 1

    @property
    def remaining(self) -> int | None:
        if self.max_llm_calls <= 0:
            return None
        return max(self.max_llm_calls - self.llm_calls, 0)


@dataclass
class InvocationContext:
    """Per-request state; ``derive`` copies it for a child while sharing the mutable parts."""

    invocation_id: str
    agent: BaseAgent
    root_agent: BaseAgent
    session: Session
    session_service: BaseSessionService
    run_config: RunConfig = field(default_factory=RunConfig)
    user_content: Content | None = None
    branch: str = ""
    cost: CostCounter = field(default_factory=CostCounter)
    checkpoints: CheckpointStore = field(default_factory=CheckpointStore)
    end_signal: asyncio.Event = field(default_factory=asyncio.Event)

    @classmethod
    def create(
        cls,
        *,
        agent: BaseAgent,
        session: Session,
        session_service: BaseSessionService,
        run_config: RunConfig | None = None,
        user_content: Content | None = None,
        invocation_id: str | None = None,
        branch: str = "",
        checkpoints: CheckpointStore | None = None,
    ) -> InvocationContext:
        run_config = run_config or RunConfig()
        return cls(
            invocation_id=invocation_id or new_invocation_id(),
            agent=agent,
            root_agent=agent.root_agent,
            session=session,
            session_service=session_service,
            run_config=run_config,
            user_content=user_content,
            branch=branch,
            cost=CostCounter(run_config.max_llm_calls),
            checkpoints=checkpoints or CheckpointStore(),
        )

    def derive(self, agent: BaseAgent, branch: str | None = None) -> InvocationContext:
        return replace(self, agent=agent, branch=self.branch if branch is None else branch)

    async def emit(self, event: Event) -> Event:
        return await self.session_service.append_event(self.session, event)

    def end_invocation(self) -> None:
        if not self.end_signal.is_set():
            logger.info("Ending invocation %s", self.invocation_id)
        self.end_signal.set()

    @property
    def is_ended(self) -> bool:
        return self.end_signal.is_set()

    @property
    def is_resumable(self) -> bool:
        return self.run_config.resumable

    def should_pause(self, event: Event) -> bool:
        return event.requests_external_input()

    def save_checkpoint(self, agent: BaseAgent, state: AgentState, reset_sub_agents: bool = False) -> Event | None:
        """Record ``state`` for ``agent``; returns the event to emit when resumable."""
        if reset_sub_agents:
            self.checkpoints.reset_sub_agents(agent)
        self.checkpoints.save(agent.name, state)
        if not self.is_resumable:
            return None
        return Event(
            author=agent.name,
            invocation_id=self.invocation_id,
            branch=self.branch,
            actions=EventActions(agent_state=state, reset_sub_agent_states=reset_sub_agents),
        )

    def mark_completed(self, agent: BaseAgent) -> Event | None:
        self.checkpoints.mark_completed(agent.name)
        if not self.is_resumable:
            return None
        return Event(
            author=agent.name,
            invocation_id=self.invocation_id,
            branch=self.branch,
            actions=EventActions(end_of_agent=True),
        )
