"""LoopAgent — repeats its children until one escalates or the iteration cap is hit."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, Sequence
from contextlib import aclosing

from ..runtime.context import InvocationContext
from ..types import Event, LoopAgentState
from .base import BaseAgent
from .callbacks import AgentCallbacks

logger = logging.getLogger(__name__)


class LoopAgent(BaseAgent):
    """Sequential in each iteration; ``max_iterations=None`` loops until escalation.

    Descendant checkpoints are reset at every iteration boundary so the next
    pass starts its children afresh.
    """

    def __init__(
        self,
        name: str,
        *,
        description: str = "",
        sub_agents: Sequence[BaseAgent] = (),
        max_iterations: int | None = None,
        callbacks: AgentCallbacks | None = None,
    ) -> None:
        super().__init__(name, description=description, sub_agents=sub_agents, callbacks=callbacks)
        self.max_iterations = max_iterations

    def _more_iterations(self, iteration: int) -> bool:
        return self.max_iterations is None or iteration < self.max_iterations

    async def _run(self, ctx: InvocationContext) -> AsyncGenerator[Event, None]:
        if not self.sub_agents:
            return
        state = ctx.checkpoints.get(self.name, LoopAgentState)
        iteration = state.iteration if state else 0
        start = state.current_index if state else 0
        if state:
            logger.info("Resuming %s at iteration %d, child %d", self.name, iteration, start)

        while self._more_iterations(iteration):
            for index in range(start, len(self.sub_agents)):
                child = self.sub_agents[index]
                halted = escalated = False
                async with aclosing(child.execute(ctx)) as events:
                    async for event in events:
                        yield event
                        if event.actions.escalate:
                            escalated = True
                        if ctx.should_pause(event) or (event.terminal and event.branch == ctx.branch):
                            halted = True
                if halted or ctx.is_ended:
                    return
                if escalated:
                    logger.debug("%s stopped by %s in iteration %d", self.name, child.name, iteration)
                    marker = ctx.mark_completed(self)
                    if marker is not None:
                        yield marker
                    return
                if index + 1 < len(self.sub_agents):
                    checkpoint = ctx.save_checkpoint(self, LoopAgentState(iteration, index + 1))
                    if checkpoint is not None:
                        yield checkpoint

            iteration += 1
            start = 0
            if self._more_iterations(iteration):
                checkpoint = ctx.save_checkpoint(self, LoopAgentState(iteration, 0), reset_sub_agents=True)
                if checkpoint is not None:
                    yield checkpoint

        marker = ctx.mark_completed(self)
        if marker is not None:
            yield marker
