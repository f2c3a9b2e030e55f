"""Publish/subscribe for observers of an invocation's event stream.

Handlers subscribe by ``Event.type`` (``message``, ``function_call``,
``function_response``, ``checkpoint``, ``error``, ``partial``), by prefix
pattern (``function_*``), by branch subtree, or to everything. Handler
failures are logged and never reach the publisher.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from ..types import Event

logger = logging.getLogger(__name__)

Handler = Callable[[Event], Awaitable[None]]


@dataclass
class _Subscription:
    handler: Handler
    label: str
    branch: str | None = None

    def accepts(self, event: Event) -> bool:
        if self.branch is None:
            return True
        return event.branch == self.branch or event.branch.startswith(self.branch + ".")


class EventBus:
    """Fan-out of runner events to observers, bubbling up to a parent bus."""

    def __init__(self, node_id: str | None = None, parent: EventBus | None = None) -> None:
        self.node_id = node_id
        self._parent = parent
        self._by_type: dict[str, list[_Subscription]] = defaultdict(list)
        self._by_prefix: dict[str, list[_Subscription]] = defaultdict(list)
        self._everything: list[_Subscription] = []

    def create_child(self, node_id: str) -> EventBus:
        return EventBus(node_id=node_id, parent=self)

    def on(self, event_type: str, handler: Handler, *, branch: str | None = None) -> None:
        self._by_type[event_type].append(_Subscription(handler, event_type, branch))

    def on_pattern(self, pattern: str, handler: Handler, *, branch: str | None = None) -> None:
        if not pattern.endswith("*"):
            raise ValueError(f"Pattern must end with '*': {pattern}")
        self._by_prefix[pattern[:-1]].append(_Subscription(handler, pattern, branch))

    def on_all(self, handler: Handler, *, branch: str | None = None) -> None:
        self._everything.append(_Subscription(handler, "*", branch))

    def off(self, event_type: str, handler: Handler) -> None:
        """Drop ``handler`` from ``event_type`` (a type or a ``prefix*`` pattern) and from the catch-all list."""
        if event_type.endswith("*"):
            scoped = self._by_prefix.get(event_type[:-1], [])
        else:
            scoped = self._by_type.get(event_type, [])
        for subs in (scoped, self._everything):
            subs[:] = [s for s in subs if s.handler is not handler]

    def _matching(self, event: Event) -> list[_Subscription]:
        matched = list(self._by_type.get(event.type, []))
        matched.extend(self._everything)
        for prefix, subs in self._by_prefix.items():
            if event.type.startswith(prefix):
                matched.extend(subs)
        return [s for s in matched if s.accepts(event)]

    async def emit(self, event: Event) -> None:
        for sub in self._matching(event):
            try:
                await sub.handler(event)
            except Exception:
                logger.exception("Handler %r failed on %s event %s", sub.label, event.type, event.id)
        if self._parent is not None:
            await self._parent.emit(event)
