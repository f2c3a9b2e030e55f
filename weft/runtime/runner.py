"""
Runner — entry point that turns a user message into an invocation.

It records the user's message, decides which agent should answer it, runs
that agent and publishes every event it yields to the event bus. Resumable
invocations are continued by replaying their checkpoint events.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator

from ..agents.base import BaseAgent
from ..agents.llm_agent import LlmAgent
from ..config import RunConfig
from ..errors import SessionNotFoundError, WeftError
from ..events import EventBus
from ..types import Content, Event
from .checkpoint import CheckpointStore
from .context import InvocationContext
from .session import BaseSessionService, InMemorySessionService, Session

logger = logging.getLogger(__name__)


class Runner:
    def __init__(
        self,
        *,
        app_name: str,
        agent: BaseAgent,
        session_service: BaseSessionService,
        event_bus: EventBus | None = None,
    ) -> None:
        self.app_name = app_name
        self.agent = agent
        self.session_service = session_service
        self.event_bus = event_bus or EventBus()

    async def run(
        self,
        *,
        user_id: str,
        session_id: str,
        new_message: Content | str,
        run_config: RunConfig | None = None,
    ) -> AsyncGenerator[Event, None]:
        """Answer ``new_message`` in the given session, streaming events as they happen."""
        session = await self._get_session(user_id, session_id)
        message = Content.from_text("user", new_message) if isinstance(new_message, str) else new_message
        run_config = run_config or RunConfig()

        ctx = self._resumed_context(session, message, run_config)
        if ctx is not None:
            agent, branch = self.agent, ""
        else:
            agent, branch = self._find_agent_to_run(session, message)
            ctx = InvocationContext.create(
                agent=agent,
                session=session,
                session_service=self.session_service,
                run_config=run_config,
                user_content=message,
                branch=branch,
            )
            logger.info("Invocation %s started with %s", ctx.invocation_id, agent.name)

        async for event in self._execute(ctx, agent, branch, message):
            yield event

    async def resume(
        self,
        *,
        user_id: str,
        session_id: str,
        invocation_id: str,
        new_message: Content | str | None = None,
        run_config: RunConfig | None = None,
    ) -> AsyncGenerator[Event, None]:
        """Continue an interrupted resumable invocation from its checkpoints.

        The model call budget starts afresh for the resumed run.
        """
        session = await self._get_session(user_id, session_id)
        events = session.events.for_invocation(invocation_id)
        if not events:
            raise WeftError("INVOCATION_NOT_FOUND", f"No events recorded for invocation {invocation_id}")
        if isinstance(new_message, str):
            new_message = Content.from_text("user", new_message)
        run_config = (run_config or RunConfig()).model_copy(update={"resumable": True})

        original = next((e.content for e in events if e.author == "user"), None)
        ctx = InvocationContext.create(
            agent=self.agent,
            session=session,
            session_service=self.session_service,
            run_config=run_config,
            user_content=new_message or original,
            invocation_id=invocation_id,
            checkpoints=CheckpointStore.from_events(events, self.agent),
        )
        logger.info("Resuming invocation %s", invocation_id)
        async for event in self._execute(ctx, self.agent, "", new_message):
            yield event

    async def _execute(
        self, ctx: InvocationContext, agent: BaseAgent, branch: str, message: Content | None
    ) -> AsyncGenerator[Event, None]:
        if message is not None:
            user_event = await ctx.emit(Event(author="user", invocation_id=ctx.invocation_id, content=message))
            await self.event_bus.emit(user_event)
            yield user_event
        async for event in agent.execute(ctx, branch=branch):
            await self.event_bus.emit(event)
            yield event

    async def _get_session(self, user_id: str, session_id: str) -> Session:
        session = await self.session_service.get_session(
            app_name=self.app_name, user_id=user_id, session_id=session_id
        )
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def _resumed_context(
        self, session: Session, message: Content, run_config: RunConfig
    ) -> InvocationContext | None:
        """Context continuing the invocation a function-response message answers, if resumable."""
        if not run_config.resumable:
            return None
        call_event = self._answered_call_event(session, message)
        if call_event is None:
            return None
        invocation_id = call_event.invocation_id
        logger.info("Message answers %s; resuming invocation %s", call_event.author, invocation_id)
        return InvocationContext.create(
            agent=self.agent,
            session=session,
            session_service=self.session_service,
            run_config=run_config,
            user_content=message,
            invocation_id=invocation_id,
            checkpoints=CheckpointStore.from_events(session.events.for_invocation(invocation_id), self.agent),
        )

    @staticmethod
    def _answered_call_event(session: Session, message: Content) -> Event | None:
        for part in message.parts:
            if part.function_response:
                return session.events.find_function_call(part.function_response.id)
        return None

    def _find_agent_to_run(self, session: Session, message: Content) -> tuple[BaseAgent, str]:
        root = self.agent
        call_event = self._answered_call_event(session, message)
        if call_event is not None:
            agent = root.find_agent(call_event.author)
            if agent is not None:
                return agent, call_event.branch
            logger.warning("Agent %s from the answered call is not in the tree", call_event.author)

        # The last agent that spoke keeps the conversation if it can hand it back up.
        for event in reversed(list(session.events)):
            if event.author == "user" or event.content is None:
                continue
            if event.author == root.name:
                return root, ""
            agent = root.find_sub_agent(event.author)
            if agent is None:
                logger.warning("Event from unknown agent %s; skipping", event.author)
                continue
            if self._transferable_across_tree(agent):
                return agent, event.branch
        return root, ""

    @staticmethod
    def _transferable_across_tree(agent: BaseAgent) -> bool:
        current: BaseAgent | None = agent
        while current is not None:
            if not isinstance(current, LlmAgent):
                return False
            if current.parent_agent is not None and current.disallow_transfer_to_parent:
                return False
            current = current.parent_agent
        return True


class InMemoryRunner(Runner):
    """Runner backed by an in-memory session service; for tests and local use."""

    def __init__(self, agent: BaseAgent, *, app_name: str = "weft", event_bus: EventBus | None = None) -> None:
        super().__init__(
            app_name=app_name,
            agent=agent,
            session_service=InMemorySessionService(),
            event_bus=event_bus,
        )
