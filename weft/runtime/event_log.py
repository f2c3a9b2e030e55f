"""Append-only event log and branch visibility."""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator
from dataclasses import replace

from ..types import Event


def child_branch(parent: str, name: str) -> str:
    return f"{parent}.{name}" if parent else name


def is_visible(event_branch: str, consumer_branch: str) -> bool:
    """An event is visible iff its branch is a path prefix of the consumer's."""
    if not event_branch or event_branch == consumer_branch:
        return True
    return consumer_branch.startswith(event_branch + ".")


class EventLog:
    """Totally ordered record of a session's events; entries are never mutated or removed."""

    def __init__(self, events: Iterable[Event] = ()) -> None:
        self._lock = threading.Lock()
        self._events: list[Event] = []
        for event in events:
            self.append(event)

    def append(self, event: Event) -> Event:
        with self._lock:
            stored = replace(event, sequence=len(self._events))
            self._events.append(stored)
        return stored

    def visible_to(self, branch: str) -> list[Event]:
        return [e for e in self._snapshot() if is_visible(e.branch, branch)]

    def for_invocation(self, invocation_id: str) -> list[Event]:
        return [e for e in self._snapshot() if e.invocation_id == invocation_id]

    def find_function_call(self, call_id: str) -> Event | None:
        for event in reversed(self._snapshot()):
            if any(c.id == call_id for c in event.get_function_calls()):
                return event
        return None

    def last(self) -> Event | None:
        with self._lock:
            return self._events[-1] if self._events else None

    def _snapshot(self) -> list[Event]:
        with self._lock:
            return list(self._events)

    def __iter__(self) -> Iterator[Event]:
        return iter(self._snapshot())

    def __len__(self) -> int:
        return len(self._events)

    def __getitem__(self, index: int) -> Event:
        return self._events[index]
