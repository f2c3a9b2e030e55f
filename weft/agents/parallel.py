"""ParallelAgent — runs its children concurrently, each on its own branch."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import aclosing

from ..errors import WeftError
from ..runtime.channel import merge_streams
from ..runtime.context import InvocationContext
from ..runtime.event_log import child_branch
from ..types import Event
from .base import BaseAgent

logger = logging.getLogger(__name__)


class ParallelAgent(BaseAgent):
    """Fan out to every child; a failing child is reported and its siblings keep running.

    Children cannot see each other's events. Each child's events keep their
    order; interleaving between children is whatever order they are produced in.
    """

    async def _run(self, ctx: InvocationContext) -> AsyncGenerator[Event, None]:
        children = list(self.sub_agents)
        branches = [child_branch(ctx.branch, child.name) for child in children]
        streams = [child.execute(ctx, branch=b) for child, b in zip(children, branches)]

        async def report(index: int, exc: Exception) -> Event:
            err = WeftError.wrap(exc)
            logger.error("%s: child %s failed: [%s] %s", self.name, children[index].name, err.code, err.message)
            return Event(
                author=children[index].name,
                invocation_id=ctx.invocation_id,
                branch=branches[index],
                terminal=True,
                error_code=err.code,
                error_message=err.message,
            )

        halted = failed = False
        async with aclosing(merge_streams(streams, on_error=report)) as events:
            async for event in events:
                yield event
                if ctx.should_pause(event):
                    halted = True
                if event.terminal:
                    failed = True
        if halted or failed or ctx.is_ended:
            return
        marker = ctx.mark_completed(self)
        if marker is not None:
            yield marker
