"""
Sessions: the append-log side of persistence.

A session owns the event log every invocation in it appends to, plus the
key-value state that events' ``state_delta`` actions update.
"""

from __future__ import annotations

import logging
import time
import uuid
from abc import ABC, abstractmethod
from collections.abc import Iterator, MutableMapping
from dataclasses import dataclass, field
from typing import Any

from ..errors import SessionNotFoundError
from ..types import Event
from .event_log import EventLog
from .state_store import MemoryStateStore, StateStore

logger = logging.getLogger(__name__)


@dataclass
class Session:
    id: str
    app_name: str
    user_id: str
    state: dict[str, Any] = field(default_factory=dict)
    events: EventLog = field(default_factory=EventLog)
    last_update_time: float = field(default_factory=time.time)


class State(MutableMapping):
    """Session state view that records writes as a pending delta."""

    def __init__(self, value: dict[str, Any], delta: dict[str, Any]) -> None:
        self._value = value
        self._delta = delta

    def __getitem__(self, key: str) -> Any:
        if key in self._delta:
            return self._delta[key]
        return self._value[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._delta[key] = value

    def __delitem__(self, key: str) -> None:
        raise TypeError("State keys cannot be deleted; set them to None instead")

    def __iter__(self) -> Iterator[str]:
        return iter({**self._value, **self._delta})

    def __len__(self) -> int:
        return len({**self._value, **self._delta})

    @property
    def delta(self) -> dict[str, Any]:
        return self._delta

    def to_dict(self) -> dict[str, Any]:
        return {**self._value, **self._delta}


class BaseSessionService(ABC):
    """Append-log persistence collaborator."""

    @abstractmethod
    async def create_session(
        self,
        *,
        app_name: str,
        user_id: str,
        state: dict[str, Any] | None = None,
        session_id: str | None = None,
    ) -> Session: ...

    @abstractmethod
    async def get_session(self, *, app_name: str, user_id: str, session_id: str) -> Session | None: ...

    @abstractmethod
    async def list_sessions(self, *, app_name: str, user_id: str) -> list[Session]: ...

    @abstractmethod
    async def delete_session(self, *, app_name: str, user_id: str, session_id: str) -> None: ...

    async def append_event(self, session: Session, event: Event) -> Event:
        """Apply the event's state delta and append it; partial events are not recorded."""
        if event.partial:
            return event
        if event.actions.state_delta:
            session.state.update(event.actions.state_delta)
        stored = session.events.append(event)
        session.last_update_time = stored.timestamp
        return stored


class InMemorySessionService(BaseSessionService):
    KEY_PREFIX = "session"

    def __init__(self, store: StateStore | None = None) -> None:
        self._store = store or MemoryStateStore()

    def _key(self, app_name: str, user_id: str, session_id: str = "") -> str:
        return f"{self.KEY_PREFIX}:{app_name}:{user_id}:{session_id}"

    async def create_session(
        self,
        *,
        app_name: str,
        user_id: str,
        state: dict[str, Any] | None = None,
        session_id: str | None = None,
    ) -> Session:
        session = Session(
            id=session_id or uuid.uuid4().hex,
            app_name=app_name,
            user_id=user_id,
            state=dict(state or {}),
        )
        await self._store.save(self._key(app_name, user_id, session.id), session)
        logger.debug("Session created: %s", session.id)
        return session

    async def get_session(self, *, app_name: str, user_id: str, session_id: str) -> Session | None:
        return await self._store.get(self._key(app_name, user_id, session_id))

    async def list_sessions(self, *, app_name: str, user_id: str) -> list[Session]:
        keys = await self._store.list_keys(self._key(app_name, user_id))
        sessions = [await self._store.get(k) for k in keys]
        return [s for s in sessions if s is not None]

    async def delete_session(self, *, app_name: str, user_id: str, session_id: str) -> None:
        key = self._key(app_name, user_id, session_id)
        if await self._store.get(key) is None:
            raise SessionNotFoundError(session_id)
        await self._store.delete(key)
