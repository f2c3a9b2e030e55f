"""BaseAgent — the uniform execute() contract every composition variant implements."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator, Iterator, Sequence

from ..errors import AgentTreeError
from ..runtime.callback_context import CallbackContext
from ..runtime.context import InvocationContext
from ..types import Content, Event
from .callbacks import AgentCallbacks

logger = logging.getLogger(__name__)

RESERVED_NAMES = frozenset({"user"})


class BaseAgent(ABC):
    """A node of the statically defined agent tree."""

    def __init__(
        self,
        name: str,
        *,
        description: str = "",
        sub_agents: Sequence[BaseAgent] = (),
        callbacks: AgentCallbacks | None = None,
    ) -> None:
        if not name.isidentifier():
            raise AgentTreeError(f'Agent name "{name}" must be a Python identifier')
        if name in RESERVED_NAMES:
            raise AgentTreeError(f'Agent name "{name}" is reserved')
        self.name = name
        self.description = description
        self.callbacks = callbacks or AgentCallbacks()
        self.parent_agent: BaseAgent | None = None
        self.sub_agents: list[BaseAgent] = []
        for agent in sub_agents:
            self._adopt(agent)

    def _adopt(self, agent: BaseAgent) -> None:
        if agent.parent_agent is not None:
            raise AgentTreeError(
                f'Agent "{agent.name}" already has parent "{agent.parent_agent.name}"'
            )
        taken = {a.name for a in self.root_agent.iter_tree()}
        clashes = taken & {a.name for a in agent.iter_tree()}
        if clashes:
            raise AgentTreeError(f"Duplicate agent names in tree: {sorted(clashes)}")
        agent.parent_agent = self
        self.sub_agents.append(agent)

    # -- Tree navigation --

    @property
    def root_agent(self) -> BaseAgent:
        agent = self
        while agent.parent_agent is not None:
            agent = agent.parent_agent
        return agent

    def iter_tree(self) -> Iterator[BaseAgent]:
        yield self
        yield from self.iter_descendants()

    def iter_descendants(self) -> Iterator[BaseAgent]:
        for agent in self.sub_agents:
            yield agent
            yield from agent.iter_descendants()

    def iter_ancestors(self) -> Iterator[BaseAgent]:
        agent = self.parent_agent
        while agent is not None:
            yield agent
            agent = agent.parent_agent

    def find_agent(self, name: str) -> BaseAgent | None:
        """Search this agent and its descendants by name."""
        for agent in self.iter_tree():
            if agent.name == name:
                return agent
        return None

    def find_sub_agent(self, name: str) -> BaseAgent | None:
        for agent in self.iter_descendants():
            if agent.name == name:
                return agent
        return None

    # -- Execution --

    async def execute(self, ctx: InvocationContext, branch: str | None = None) -> AsyncGenerator[Event, None]:
        """Run this agent, yielding its events as they are produced.

        Events first produced here (or by this agent's own machinery) are
        appended to the session log before they are yielded; events forwarded
        from children already carry a sequence number and are passed through.
        """
        ctx = ctx.derive(agent=self, branch=branch)
        if ctx.checkpoints.is_completed(self.name):
            logger.debug("Skipping %s: already completed in %s", self.name, ctx.invocation_id)
            return

        event = await self._run_callback(ctx, "before_agent")
        if event is not None:
            yield await ctx.emit(event)
            if event.content is not None:
                return

        async for event in self._run(ctx):
            if event.sequence is None and not event.partial:
                event = await ctx.emit(event)
            yield event

        if ctx.is_ended:
            return
        event = await self._run_callback(ctx, "after_agent")
        if event is not None:
            yield await ctx.emit(event)

    async def _run_callback(self, ctx: InvocationContext, point: str) -> Event | None:
        chain = getattr(self.callbacks, point)
        if not chain:
            return None
        callback_ctx = CallbackContext(ctx)
        content = await chain.run(callback_ctx)
        if isinstance(content, str):
            content = Content.from_text("model", content)
        if content is None and not callback_ctx.actions.state_delta:
            return None
        return Event(
            author=self.name,
            invocation_id=ctx.invocation_id,
            branch=ctx.branch,
            content=content,
            actions=callback_ctx.actions,
        )

    @abstractmethod
    def _run(self, ctx: InvocationContext) -> AsyncGenerator[Event, None]:
        """Variant-specific execution; ``ctx.agent`` is this agent."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
