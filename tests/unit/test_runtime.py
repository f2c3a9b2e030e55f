"""Unit tests for the event log, checkpoints, sessions and stream merging."""

import asyncio

import pytest

from weft import LlmAgent, LoopAgent, RunConfig
from weft.errors import CostLimitExceeded, SessionNotFoundError
from weft.runtime import (
    CheckpointStore,
    CostCounter,
    EventLog,
    State,
    child_branch,
    is_visible,
    merge_streams,
)
from weft.types import (
    Content,
    Event,
    EventActions,
    LoopAgentState,
    Part,
    SequentialAgentState,
)

from tests.helpers import make_ctx


def _text(author, text, branch="", invocation_id="inv-1"):
    return Event(author=author, branch=branch, invocation_id=invocation_id, content=Content.from_text("model", text))


class TestBranches:
    def test_child_branch(self):
        assert child_branch("", "a") == "a"
        assert child_branch("a", "b") == "a.b"

    def test_visibility_is_path_prefix(self):
        assert is_visible("", "a.b")
        assert is_visible("a", "a.b")
        assert is_visible("a.b", "a.b")
        assert not is_visible("a.b", "a")
        assert not is_visible("a", "ab")
        assert not is_visible("a.c", "a.b")


class TestEventLog:
    def test_append_assigns_sequence(self):
        log = EventLog()
        original = _text("a", "one")
        stored = log.append(original)
        log.append(_text("a", "two"))
        assert stored.sequence == 0
        assert original.sequence is None
        assert [e.sequence for e in log] == [0, 1]
        assert log.last().text == "two"

    def test_visible_to(self):
        log = EventLog([
            _text("user", "hello"),
            _text("root", "r", branch="root"),
            _text("a", "a", branch="root.a"),
            _text("b", "b", branch="root.a.b"),
            _text("c", "c", branch="root.c"),
        ])
        assert [e.text for e in log.visible_to("root")] == ["hello", "r"]
        assert [e.text for e in log.visible_to("root.a")] == ["hello", "r", "a"]
        assert [e.text for e in log.visible_to("root.a.b")] == ["hello", "r", "a", "b"]
        assert [e.text for e in log.visible_to("root.c")] == ["hello", "r", "c"]

    def test_for_invocation(self):
        log = EventLog([_text("a", "1", invocation_id="x"), _text("a", "2", invocation_id="y")])
        assert [e.text for e in log.for_invocation("y")] == ["2"]

    def test_find_function_call(self):
        call = Event(author="a", content=Content(role="model", parts=[Part.from_function_call("f", id="c9")]))
        log = EventLog([_text("a", "x"), call, _text("a", "y")])
        assert log.find_function_call("c9").sequence == 1
        assert log.find_function_call("missing") is None


class TestCheckpointStore:
    def test_save_and_get(self):
        store = CheckpointStore()
        store.save("seq", SequentialAgentState(2))
        assert store.get("seq", SequentialAgentState) == SequentialAgentState(2)

    def test_wrong_state_type_is_ignored(self):
        store = CheckpointStore()
        store.save("seq", SequentialAgentState(2))
        assert store.get("seq", LoopAgentState) is None

    def test_mark_completed(self):
        store = CheckpointStore()
        store.save("seq", SequentialAgentState(1))
        store.mark_completed("seq")
        assert store.is_completed("seq")
        assert store.get("seq", SequentialAgentState) is None
        assert store.snapshot() == {"seq": None}

    def test_replay_from_events(self):
        loop = LoopAgent("loop", sub_agents=[LlmAgent("a"), LlmAgent("b")])
        events = [
            Event(author="a", actions=EventActions(end_of_agent=True)),
            Event(author="loop", actions=EventActions(agent_state=LoopAgentState(0, 1))),
            Event(author="b", actions=EventActions(end_of_agent=True)),
            Event(
                author="loop",
                actions=EventActions(agent_state=LoopAgentState(1, 0), reset_sub_agent_states=True),
            ),
        ]
        store = CheckpointStore.from_events(events, loop)
        assert store.get("loop", LoopAgentState) == LoopAgentState(1, 0)
        assert not store.is_completed("a")
        assert not store.is_completed("b")

    def test_replay_without_reset(self):
        events = [
            Event(author="a", actions=EventActions(end_of_agent=True)),
            Event(author="seq", actions=EventActions(agent_state=SequentialAgentState(1))),
        ]
        store = CheckpointStore.from_events(events)
        assert store.is_completed("a")
        assert store.get("seq", SequentialAgentState).current_index == 1


class TestInvocationContext:
    async def test_checkpoint_event_only_when_resumable(self):
        agent = LlmAgent("a")
        ctx = await make_ctx(agent)
        assert ctx.save_checkpoint(agent, SequentialAgentState(1)) is None
        assert ctx.checkpoints.get("a", SequentialAgentState) == SequentialAgentState(1)

        ctx = await make_ctx(agent, run_config=RunConfig(resumable=True))
        event = ctx.save_checkpoint(agent, SequentialAgentState(1))
        assert event.actions.agent_state == SequentialAgentState(1)
        assert event.author == "a"
        assert ctx.mark_completed(agent).actions.end_of_agent

    async def test_derive_shares_mutable_state(self):
        parent, child = LlmAgent("p"), LlmAgent("c")
        ctx = await make_ctx(parent)
        derived = ctx.derive(child, branch="c")
        assert derived.agent is child
        assert derived.branch == "c"
        assert derived.cost is ctx.cost
        derived.end_invocation()
        assert ctx.is_ended

    def test_cost_counter(self):
        counter = CostCounter(max_llm_calls=2)
        counter.increment_and_enforce()
        counter.increment_and_enforce()
        assert counter.remaining == 0
        with pytest.raises(CostLimitExceeded):
            counter.increment_and_enforce()
        assert counter.llm_calls == 2

    def test_unlimited_cost_counter(self):
        counter = CostCounter(max_llm_calls=0)
        for _ in range(1000):
            counter.increment_and_enforce()
        assert counter.remaining is None


class TestSessions:
    async def test_create_get_list_delete(self, session_service):
        created = await session_service.create_session(app_name="weft", user_id="u1", session_id="s1")
        await session_service.create_session(app_name="weft", user_id="u1", session_id="s2")
        await session_service.create_session(app_name="weft", user_id="u2", session_id="s3")

        assert await session_service.get_session(app_name="weft", user_id="u1", session_id="s1") is created
        listed = await session_service.list_sessions(app_name="weft", user_id="u1")
        assert sorted(s.id for s in listed) == ["s1", "s2"]

        await session_service.delete_session(app_name="weft", user_id="u1", session_id="s1")
        assert await session_service.get_session(app_name="weft", user_id="u1", session_id="s1") is None
        with pytest.raises(SessionNotFoundError):
            await session_service.delete_session(app_name="weft", user_id="u1", session_id="s1")

    async def test_append_applies_state_delta(self, session_service, session):
        event = Event(author="a", actions=EventActions(state_delta={"topic": "tides"}))
        stored = await session_service.append_event(session, event)
        assert stored.sequence == 0
        assert session.state == {"topic": "tides"}

    async def test_partial_events_are_not_recorded(self, session_service, session):
        event = Event(author="a", content=Content.from_text("model", "par"), partial=True)
        returned = await session_service.append_event(session, event)
        assert returned is event
        assert len(session.events) == 0

    def test_state_writes_go_to_delta(self):
        value, delta = {"a": 1}, {}
        state = State(value, delta)
        state["b"] = 2
        assert state["a"] == 1
        assert state["b"] == 2
        assert "b" not in value
        assert delta == {"b": 2}
        assert state.to_dict() == {"a": 1, "b": 2}
        with pytest.raises(TypeError):
            del state["a"]


class TestMergeStreams:
    async def test_keeps_per_producer_order(self):
        async def producer(tag, delays):
            for i, delay in enumerate(delays):
                await asyncio.sleep(delay)
                yield f"{tag}{i}"

        merged = [
            item async for item in merge_streams([
                producer("a", [0.01, 0, 0.02]),
                producer("b", [0, 0.02, 0]),
            ])
        ]
        assert sorted(merged) == ["a0", "a1", "a2", "b0", "b1", "b2"]
        assert [x for x in merged if x.startswith("a")] == ["a0", "a1", "a2"]
        assert [x for x in merged if x.startswith("b")] == ["b0", "b1", "b2"]

    async def test_producer_waits_for_consumer(self):
        log = []

        async def producer():
            for i in range(4):
                log.append(("produced", i))
                yield i

        async for item in merge_streams([producer()]):
            log.append(("consumed", item))
            await asyncio.sleep(0.001)

        expected = [entry for i in range(4) for entry in (("produced", i), ("consumed", i))]
        assert log == expected

    async def test_error_reported_and_siblings_continue(self):
        async def ok():
            yield "ok-1"
            await asyncio.sleep(0.01)
            yield "ok-2"

        async def failing():
            yield "bad-1"
            raise RuntimeError("boom")

        async def report(index, exc):
            return f"error-{index}: {exc}"

        merged = [item async for item in merge_streams([ok(), failing()], on_error=report)]
        assert "error-1: boom" in merged
        assert [x for x in merged if x.startswith("ok")] == ["ok-1", "ok-2"]

    async def test_error_without_handler_propagates(self):
        async def failing():
            raise RuntimeError("boom")
            yield

        with pytest.raises(RuntimeError, match="boom"):
            async for _ in merge_streams([failing()]):
                pass
