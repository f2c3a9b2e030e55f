"""SequentialAgent — runs its children one after another."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import aclosing

from ..runtime.context import InvocationContext
from ..types import Event, SequentialAgentState
from .base import BaseAgent

logger = logging.getLogger(__name__)


class SequentialAgent(BaseAgent):
    """Children share this agent's branch, so each sees what the previous ones said.

    Checkpoint: ``SequentialAgentState(current_index)`` after each child.
    """

    async def _run(self, ctx: InvocationContext) -> AsyncGenerator[Event, None]:
        state = ctx.checkpoints.get(self.name, SequentialAgentState)
        start = state.current_index if state else 0
        if start:
            logger.info("Resuming %s at child %d of %d", self.name, start, len(self.sub_agents))

        for index in range(start, len(self.sub_agents)):
            child = self.sub_agents[index]
            halted = False
            async with aclosing(child.execute(ctx)) as events:
                async for event in events:
                    yield event
                    if ctx.should_pause(event) or (event.terminal and event.branch == ctx.branch):
                        halted = True
            if halted or ctx.is_ended:
                return
            checkpoint = ctx.save_checkpoint(self, SequentialAgentState(current_index=index + 1))
            if checkpoint is not None:
                yield checkpoint

        marker = ctx.mark_completed(self)
        if marker is not None:
            yield marker
