"""LlmAgent — a leaf driven by a Flow, optionally delegating through transfer_to_agent."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, Callable, Iterator, Sequence
from typing import Any, Literal

import pydantic
from pydantic import BaseModel

from ..code_executors import BaseCodeExecutor
from ..config import ContextCacheConfig, GenerationConfig
from ..errors import AgentTreeError, TransferError
from ..flows import Flow
from ..planners import BasePlanner
from ..runtime.context import InvocationContext
from ..tools import ToolRegistry, tool as make_tool
from ..types import Event, LLMProvider, ToolDefinition
from .base import BaseAgent
from .callbacks import AgentCallbacks

logger = logging.getLogger(__name__)

Instruction = str | Callable[..., Any]


class LlmAgent(BaseAgent):
    """An agent whose turns are model calls.

    ``provider`` and ``model`` are inherited from the nearest ancestor
    LlmAgent that sets them. ``instruction`` is dynamic (templated with
    session state, or a callable); ``static_instruction`` is sent verbatim
    and keeps the request prefix cacheable.
    """

    def __init__(
        self,
        name: str,
        *,
        description: str = "",
        provider: LLMProvider | None = None,
        model: str = "",
        instruction: Instruction = "",
        static_instruction: str = "",
        global_instruction: Instruction = "",
        tools: Sequence[ToolDefinition | Callable[..., Any]] = (),
        generate_config: GenerationConfig | None = None,
        include_contents: Literal["default", "none"] = "default",
        output_key: str | None = None,
        output_schema: type[BaseModel] | None = None,
        planner: BasePlanner | None = None,
        code_executor: BaseCodeExecutor | None = None,
        context_cache: ContextCacheConfig | None = None,
        disallow_transfer_to_parent: bool = False,
        disallow_transfer_to_peers: bool = False,
        sub_agents: Sequence[BaseAgent] = (),
        callbacks: AgentCallbacks | None = None,
        flow: Flow | None = None,
    ) -> None:
        super().__init__(name, description=description, sub_agents=sub_agents, callbacks=callbacks)
        self.provider = provider
        self.model = model
        self.instruction = instruction
        self.static_instruction = static_instruction
        self.global_instruction = global_instruction
        self.tool_registry = ToolRegistry(t if isinstance(t, ToolDefinition) else make_tool(t) for t in tools)
        self.generate_config = generate_config or GenerationConfig()
        self.include_contents = include_contents
        self.output_key = output_key
        self.output_schema = output_schema
        self.planner = planner
        self.code_executor = code_executor
        self.context_cache = context_cache
        self.disallow_transfer_to_parent = disallow_transfer_to_parent
        self.disallow_transfer_to_peers = disallow_transfer_to_peers
        self.flow = flow or Flow()

    # -- Inherited settings --

    @property
    def canonical_provider(self) -> LLMProvider:
        for agent in self._self_and_llm_ancestors():
            if agent.provider is not None:
                return agent.provider
        raise AgentTreeError(f'No model provider configured for agent "{self.name}"')

    @property
    def canonical_model(self) -> str:
        for agent in self._self_and_llm_ancestors():
            if agent.model:
                return agent.model
        return ""

    def _self_and_llm_ancestors(self) -> Iterator[LlmAgent]:
        yield self
        for agent in self.iter_ancestors():
            if isinstance(agent, LlmAgent):
                yield agent

    @property
    def tools(self) -> list[ToolDefinition]:
        return self.tool_registry.list()

    def canonical_tools(self) -> list[ToolDefinition]:
        return self.tool_registry.list()

    # -- Delegation --

    def _delegates_upward(self) -> bool:
        # Children of workflow agents follow the workflow; only LLM parents take work back.
        return isinstance(self.parent_agent, LlmAgent)

    def transfer_targets(self) -> list[BaseAgent]:
        """Agents offered to the model by name in the transfer tool."""
        targets: list[BaseAgent] = list(self.sub_agents)
        parent = self.parent_agent
        if parent is not None and self._delegates_upward():
            if not self.disallow_transfer_to_parent:
                targets.append(parent)
            if not self.disallow_transfer_to_peers:
                targets.extend(a for a in parent.sub_agents if a is not self)
        return targets

    def _reachable(self) -> Iterator[BaseAgent]:
        yield from self.iter_descendants()
        if not self._delegates_upward():
            return
        if not self.disallow_transfer_to_parent:
            yield from (a for a in self.iter_ancestors() if isinstance(a, LlmAgent))
        if not self.disallow_transfer_to_peers:
            yield from (a for a in self.parent_agent.sub_agents if a is not self)

    def resolve_transfer_target(self, name: str) -> BaseAgent:
        """Look a transfer target up by name: descendants, LLM ancestors or siblings."""
        for agent in self._reachable():
            if agent.name == name:
                return agent
        raise TransferError(name, [a.name for a in self.transfer_targets()])

    # -- Execution --

    async def _run(self, ctx: InvocationContext) -> AsyncGenerator[Event, None]:
        last: Event | None = None
        async for event in self.flow.run(ctx):
            event = self._save_output(event)
            last = event
            yield event

        if ctx.is_resumable and self._finished(ctx, last):
            marker = ctx.mark_completed(self)
            if marker is not None:
                yield marker

    def _finished(self, ctx: InvocationContext, last: Event | None) -> bool:
        if last is None or ctx.is_ended or last.terminal:
            return False
        return not ctx.should_pause(last) and not last.long_running_tool_ids

    def _save_output(self, event: Event) -> Event:
        if not self.output_key or event.author != self.name or event.partial:
            return event
        if not event.is_final_response() or not event.content:
            return event
        text = "".join(p.text for p in event.content.parts if p.text and not p.thought)
        if not text.strip():
            return event
        value: Any = text
        if self.output_schema is not None:
            try:
                value = self.output_schema.model_validate_json(text).model_dump(mode="json")
            except pydantic.ValidationError as e:
                logger.warning("Output of %s does not match %s: %s", self.name, self.output_schema.__name__, e)
        return event.with_state_delta({self.output_key: value})
