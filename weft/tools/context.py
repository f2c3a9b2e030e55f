"""ToolContext — what a tool body sees of the invocation."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..runtime.callback_context import CallbackContext
from ..types import AuthConfig, EventActions, ToolConfirmation

if TYPE_CHECKING:
    from ..runtime.context import InvocationContext

CREDENTIAL_STATE_PREFIX = "credential:"


class ToolContext(CallbackContext):
    def __init__(
        self,
        ctx: InvocationContext,
        function_call_id: str,
        actions: EventActions | None = None,
        tool_confirmation: ToolConfirmation | None = None,
    ) -> None:
        super().__init__(ctx, actions)
        self.function_call_id = function_call_id
        self.tool_confirmation = tool_confirmation

    @property
    def agent(self):
        return self._ctx.agent

    @property
    def signal(self):
        """Set when the invocation is asked to end; long tools may poll it."""
        return self._ctx.end_signal

    def get_credential(self, auth_config: AuthConfig) -> Any | None:
        return self._ctx.session.state.get(CREDENTIAL_STATE_PREFIX + auth_config.credential_key)

    def request_credential(self, auth_config: AuthConfig) -> None:
        self.actions.requested_auth_configs[self.function_call_id] = auth_config

    def request_confirmation(self, hint: str = "", payload: Any = None) -> None:
        self.actions.requested_tool_confirmations[self.function_call_id] = ToolConfirmation(
            hint=hint, payload=payload
        )
