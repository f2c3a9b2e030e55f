"""Unit tests for the event bus."""

import logging

import pytest

from weft.events import EventBus
from weft.types import Content, Event, Part


def _message(text="hi"):
    return Event(author="a", content=Content.from_text("model", text))


def _call():
    return Event(author="a", content=Content(role="model", parts=[Part.from_function_call("f", id="c1")]))


def _response():
    return Event(author="a", content=Content(role="user", parts=[Part.from_function_response("f", {}, "c1")]))


class TestEventBus:
    async def test_exact_type(self):
        bus = EventBus()
        received = []

        async def handler(event):
            received.append(event.type)

        bus.on("message", handler)
        await bus.emit(_message())
        await bus.emit(_call())
        assert received == ["message"]

    async def test_pattern(self):
        bus = EventBus()
        received = []

        async def handler(event):
            received.append(event.type)

        bus.on_pattern("function_*", handler)
        for event in (_message(), _call(), _response()):
            await bus.emit(event)
        assert received == ["function_call", "function_response"]

    def test_pattern_must_end_with_star(self):
        with pytest.raises(ValueError):
            EventBus().on_pattern("function", lambda e: None)

    async def test_on_all_and_off(self):
        bus = EventBus()
        received = []

        async def handler(event):
            received.append(event.text)

        bus.on_all(handler)
        await bus.emit(_message("one"))
        bus.off("message", handler)
        await bus.emit(_message("two"))
        assert received == ["one"]

    async def test_handler_errors_are_logged(self, caplog):
        bus = EventBus()
        received = []

        async def broken(event):
            raise RuntimeError("handler bug")

        async def healthy(event):
            received.append(event)

        bus.on("message", broken)
        bus.on("message", healthy)
        with caplog.at_level(logging.ERROR, logger="weft.events.bus"):
            await bus.emit(_message())
        assert len(received) == 1
        assert "handler bug" in caplog.text

    async def test_child_propagates_to_parent(self):
        parent = EventBus()
        child = parent.create_child("worker")
        received = []

        async def handler(event):
            received.append(event.text)

        parent.on("message", handler)
        await child.emit(_message("from child"))
        assert received == ["from child"]
        assert child.node_id == "worker"

    async def test_branch_scoped_subscription(self):
        bus = EventBus()
        received = []

        async def handler(event):
            received.append(event.branch)

        bus.on_all(handler, branch="fanout.alpha")
        for branch in ("fanout", "fanout.alpha", "fanout.alpha.inner", "fanout.alphabet"):
            await bus.emit(Event(author="a", branch=branch, content=Content.from_text("model", "x")))
        assert received == ["fanout.alpha", "fanout.alpha.inner"]

    async def test_off_removes_pattern_handler(self):
        bus = EventBus()
        received = []

        async def handler(event):
            received.append(event.type)

        bus.on_pattern("function_*", handler)
        await bus.emit(_call())
        bus.off("function_*", handler)
        await bus.emit(_call())
        assert received == ["function_call"]
