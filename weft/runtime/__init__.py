"""Event log, sessions, invocation context, checkpoints and stream merging.

The Runner lives in ``weft.runtime.runner`` and is imported from there; it
depends on the agent tree, which itself builds on this package.
"""

from .callback_context import CallbackContext
from .channel import merge_streams
from .checkpoint import CheckpointStore
from .context import CostCounter, InvocationContext, new_invocation_id
from .event_log import EventLog, child_branch, is_visible
from .session import BaseSessionService, InMemorySessionService, Session, State
from .state_store import MemoryStateStore, StateStore

__all__ = [
    "EventLog",
    "child_branch",
    "is_visible",
    "Session",
    "State",
    "BaseSessionService",
    "InMemorySessionService",
    "StateStore",
    "MemoryStateStore",
    "CheckpointStore",
    "InvocationContext",
    "CostCounter",
    "new_invocation_id",
    "CallbackContext",
    "merge_streams",
]
