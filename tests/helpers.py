"""
Test helpers

Shortcuts for driving a runner or a bare invocation context in tests.
"""

from typing import Any

from weft import Content, Event, InMemoryRunner, RunConfig
from weft.agents import BaseAgent
from weft.runtime import CheckpointStore, InMemorySessionService, InvocationContext, Session


async def collect(stream) -> list[Event]:
    return [event async for event in stream]


async def start(agent: BaseAgent, state: dict[str, Any] | None = None) -> tuple[InMemoryRunner, Session]:
    """Runner for ``agent`` plus a new session in it."""
    runner = InMemoryRunner(agent)
    session = await runner.session_service.create_session(app_name="weft", user_id="u1", state=state)
    return runner, session


async def send(
    runner: InMemoryRunner,
    session: Session,
    message: Content | str,
    run_config: RunConfig | None = None,
) -> list[Event]:
    return await collect(
        runner.run(user_id=session.user_id, session_id=session.id, new_message=message, run_config=run_config)
    )


async def make_ctx(
    agent: BaseAgent,
    *,
    state: dict[str, Any] | None = None,
    run_config: RunConfig | None = None,
    checkpoints: CheckpointStore | None = None,
) -> InvocationContext:
    service = InMemorySessionService()
    session = await service.create_session(app_name="weft", user_id="u1", state=state)
    return InvocationContext.create(
        agent=agent,
        session=session,
        session_service=service,
        run_config=run_config,
        checkpoints=checkpoints,
    )


def texts(events: list[Event]) -> list[str]:
    """Final text of every non-partial event that has some."""
    return [e.text for e in events if e.text and not e.partial]


def responses(events: list[Event], name: str) -> list[dict[str, Any]]:
    return [r.response for e in events for r in e.get_function_responses() if r.name == name]


def request_texts(request) -> list[str]:
    """Text of every content sent to the model, in order."""
    return [p.text for c in request.contents for p in c.parts if p.text]
