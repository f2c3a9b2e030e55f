"""Context handed to callbacks, instruction providers and tools."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..types import Content, EventActions
from .session import State

if TYPE_CHECKING:
    from .context import InvocationContext


class CallbackContext:
    """Read access to the invocation plus a state view whose writes land in ``actions``."""

    def __init__(self, ctx: InvocationContext, actions: EventActions | None = None) -> None:
        self._ctx = ctx
        self.actions = actions or EventActions()
        self.state = State(ctx.session.state, self.actions.state_delta)

    @property
    def invocation_context(self) -> InvocationContext:
        return self._ctx

    @property
    def agent_name(self) -> str:
        return self._ctx.agent.name

    @property
    def invocation_id(self) -> str:
        return self._ctx.invocation_id

    @property
    def branch(self) -> str:
        return self._ctx.branch

    @property
    def user_content(self) -> Content | None:
        return self._ctx.user_content

    def get(self, key: str, default: Any = None) -> Any:
        return self.state.get(key, default)
