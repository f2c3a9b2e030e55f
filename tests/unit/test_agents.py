"""Unit tests for the agent tree and the workflow agents."""

import pytest

from weft import BaseAgent, LlmAgent, LoopAgent, ParallelAgent, RunConfig, SequentialAgent
from weft.errors import AgentTreeError, TransferError
from weft.providers import ScriptedLLMProvider
from weft.runtime import CheckpointStore
from weft.tools import exit_loop_tool
from weft.types import LoopAgentState, SequentialAgentState

from tests.helpers import collect, make_ctx, request_texts, responses, send, start, texts


class Exploding(BaseAgent):
    async def _run(self, ctx):
        raise RuntimeError("boom")
        yield


def scripted(name, *replies, **kwargs):
    return LlmAgent(name, provider=ScriptedLLMProvider(replies), **kwargs)


def checkpoints(events, author):
    return [e.actions.agent_state for e in events if e.author == author and e.actions.agent_state]


def completions(events):
    return [e.author for e in events if e.actions.end_of_agent]


class TestAgentTree:
    def test_parent_links(self):
        a, b = LlmAgent("a"), LlmAgent("b")
        root = SequentialAgent("root", sub_agents=[a, b])
        assert a.parent_agent is root
        assert b.root_agent is root
        assert root.find_agent("b") is b
        assert root.find_sub_agent("root") is None
        assert [x.name for x in root.iter_tree()] == ["root", "a", "b"]

    def test_duplicate_names_rejected(self):
        with pytest.raises(AgentTreeError):
            SequentialAgent("root", sub_agents=[LlmAgent("a"), SequentialAgent("s", sub_agents=[LlmAgent("a")])])

    def test_agent_has_one_parent(self):
        shared = LlmAgent("shared")
        SequentialAgent("first", sub_agents=[shared])
        with pytest.raises(AgentTreeError):
            SequentialAgent("second", sub_agents=[shared])

    def test_reserved_and_invalid_names(self):
        with pytest.raises(AgentTreeError):
            LlmAgent("user")
        with pytest.raises(AgentTreeError):
            LlmAgent("not valid")


class TestSequentialAgent:
    async def test_children_run_in_order_on_shared_branch(self):
        research = scripted("research", "Tides follow the moon.")
        writer = scripted("writer", "Poem about the moon.")
        runner, session = await start(SequentialAgent("pipeline", sub_agents=[research, writer]))
        events = await send(runner, session, "write about tides")

        assert texts(events)[1:] == ["Tides follow the moon.", "Poem about the moon."]
        assert {e.branch for e in events} == {""}
        assert "[research] said: Tides follow the moon." in request_texts(writer.provider.requests[0])

    async def test_resume_skips_finished_children(self):
        children = [scripted("first", "unused"), scripted("second", "second ran"), scripted("third", "third ran")]
        pipeline = SequentialAgent("pipeline", sub_agents=children)
        store = CheckpointStore()
        store.save("pipeline", SequentialAgentState(current_index=1))

        events = await collect(pipeline.execute(await make_ctx(pipeline, checkpoints=store)))
        assert texts(events) == ["second ran", "third ran"]
        assert [c.provider.call_count for c in children] == [0, 1, 1]

    async def test_checkpoints_when_resumable(self):
        pipeline = SequentialAgent("pipeline", sub_agents=[scripted("a", "A"), scripted("b", "B")])
        runner, session = await start(pipeline)
        events = await send(runner, session, "go", run_config=RunConfig(resumable=True))

        assert checkpoints(events, "pipeline") == [SequentialAgentState(1), SequentialAgentState(2)]
        assert completions(events) == ["a", "b", "pipeline"]

    async def test_no_checkpoint_events_by_default(self):
        pipeline = SequentialAgent("pipeline", sub_agents=[scripted("a", "A"), scripted("b", "B")])
        runner, session = await start(pipeline)
        events = await send(runner, session, "go")
        assert checkpoints(events, "pipeline") == []
        assert completions(events) == []

    async def test_failing_child_halts_pipeline(self):
        broken = scripted("broken", ScriptedLLMProvider.error("UPSTREAM", "down"))
        after = scripted("after", "never")
        runner, session = await start(SequentialAgent("pipeline", sub_agents=[broken, after]))
        events = await send(runner, session, "go")
        assert events[-1].error_code == "MODEL_FAULT"
        assert after.provider.call_count == 0


class TestLoopAgent:
    async def test_escalation_stops_loop(self):
        worker = scripted("worker", "draft 1", "draft 2", "draft 3")
        checker = scripted(
            "checker",
            "needs work",
            ScriptedLLMProvider.call("exit_loop", id="done"),
            "unused",
            tools=[exit_loop_tool],
        )
        loop = LoopAgent("refine", sub_agents=[worker, checker], max_iterations=3)
        runner, session = await start(loop)
        events = await send(runner, session, "write")

        assert worker.provider.call_count == 2
        assert checker.provider.call_count == 2
        assert events[-1].actions.escalate
        assert texts(events)[1:] == ["draft 1", "needs work", "draft 2"]

    async def test_runs_max_iterations(self):
        worker = scripted("worker", "one", "two", "three")
        runner, session = await start(LoopAgent("repeat", sub_agents=[worker], max_iterations=2))
        events = await send(runner, session, "go")
        assert texts(events)[1:] == ["one", "two"]
        assert worker.provider.remaining == 1

    async def test_iteration_checkpoints_reset_children(self):
        worker = scripted("worker", "one", "two")
        reviewer = scripted("reviewer", "ok one", "ok two")
        loop = LoopAgent("repeat", sub_agents=[worker, reviewer], max_iterations=2)
        runner, session = await start(loop)
        events = await send(runner, session, "go", run_config=RunConfig(resumable=True))

        assert checkpoints(events, "repeat") == [
            LoopAgentState(0, 1),
            LoopAgentState(1, 0),
            LoopAgentState(1, 1),
        ]
        reset = [e for e in events if e.author == "repeat" and e.actions.reset_sub_agent_states]
        assert [e.actions.agent_state for e in reset] == [LoopAgentState(1, 0)]
        assert completions(events) == ["worker", "reviewer", "worker", "reviewer", "repeat"]

    async def test_resume_mid_iteration(self):
        worker = scripted("worker", "unused")
        reviewer = scripted("reviewer", "reviewed")
        loop = LoopAgent("repeat", sub_agents=[worker, reviewer], max_iterations=1)
        store = CheckpointStore()
        store.save("repeat", LoopAgentState(iteration=0, current_index=1))

        events = await collect(loop.execute(await make_ctx(loop, checkpoints=store)))
        assert texts(events) == ["reviewed"]
        assert worker.provider.call_count == 0


class TestParallelAgent:
    async def test_children_run_on_own_branches(self):
        agents = [scripted(name, f"from {name}") for name in ("alpha", "beta", "gamma")]
        runner, session = await start(ParallelAgent("fanout", sub_agents=agents))
        events = await send(runner, session, "go", run_config=RunConfig(resumable=True))

        for agent in agents:
            own = [e for e in events if e.author == agent.name]
            assert {e.branch for e in own} == {agent.name}
            assert own[0].text == f"from {agent.name}"
            assert own[-1].actions.end_of_agent
            for request in agent.provider.requests:
                others = {"alpha", "beta", "gamma"} - {agent.name}
                assert not any(other in text for text in request_texts(request) for other in others)
        assert events[-1].author == "fanout"
        assert events[-1].actions.end_of_agent

    async def test_failing_child_is_reported(self):
        alpha, gamma = scripted("alpha", "alpha done"), scripted("gamma", "gamma done")
        runner, session = await start(ParallelAgent("fanout", sub_agents=[alpha, Exploding("beta"), gamma]))
        events = await send(runner, session, "go", run_config=RunConfig(resumable=True))

        errors = [e for e in events if e.error_code]
        assert len(errors) == 1
        assert errors[0].author == "beta"
        assert errors[0].branch == "beta"
        assert errors[0].error_code == "UNKNOWN"
        assert errors[0].error_message == "boom"
        assert errors[0].terminal
        assert {"alpha done", "gamma done"} <= set(texts(events))
        assert "fanout" not in completions(events)

    async def test_failure_does_not_halt_enclosing_sequence(self):
        fanout = ParallelAgent("fanout", sub_agents=[Exploding("beta"), scripted("alpha", "alpha done")])
        after = scripted("after", "after ran")
        runner, session = await start(SequentialAgent("pipeline", sub_agents=[fanout, after]))
        events = await send(runner, session, "go")
        assert texts(events)[-1] == "after ran"


class TestTransfer:
    def _tree(self, coordinator_replies, billing_replies, **billing_kwargs):
        billing = scripted("billing", *billing_replies, description="Invoices and refunds", **billing_kwargs)
        support = scripted("support", "support here", description="Technical help")
        coordinator = scripted("coordinator", *coordinator_replies, sub_agents=[billing, support])
        return coordinator, billing, support

    async def test_unknown_target_then_retry(self):
        coordinator, billing, _ = self._tree(
            [
                ScriptedLLMProvider.call("transfer_to_agent", {"agent_name": "accounts"}, id="t1"),
                ScriptedLLMProvider.call("transfer_to_agent", {"agent_name": "billing"}, id="t2"),
            ],
            ["Billing here."],
        )
        runner, session = await start(coordinator)
        events = await send(runner, session, "refund please")

        failed, succeeded = responses(events, "transfer_to_agent")
        assert failed["error_code"] == "TRANSFER_ERROR"
        assert "billing" in failed["error"]
        assert succeeded == {"transferred_to": "billing"}
        assert events[-1].author == "billing"
        assert events[-1].branch == "billing"
        assert events[-1].text == "Billing here."

    async def test_next_message_goes_to_last_speaker(self):
        coordinator, billing, _ = self._tree(
            [ScriptedLLMProvider.call("transfer_to_agent", {"agent_name": "billing"})],
            ["Billing here.", "Refund issued."],
        )
        runner, session = await start(coordinator)
        await send(runner, session, "refund please")
        events = await send(runner, session, "order 42")

        assert events[-1].author == "billing"
        assert events[-1].text == "Refund issued."
        assert coordinator.provider.call_count == 1

    async def test_disallowed_parent_transfer_returns_to_root(self):
        coordinator, billing, _ = self._tree(
            [ScriptedLLMProvider.call("transfer_to_agent", {"agent_name": "billing"}), "Coordinator again."],
            ["Billing here."],
            disallow_transfer_to_parent=True,
        )
        runner, session = await start(coordinator)
        await send(runner, session, "refund please")
        events = await send(runner, session, "something else")
        assert events[-1].author == "coordinator"
        assert events[-1].text == "Coordinator again."

    def test_transfer_targets(self):
        coordinator, billing, support = self._tree([], [])
        assert [a.name for a in coordinator.transfer_targets()] == ["billing", "support"]
        assert [a.name for a in billing.transfer_targets()] == ["coordinator", "support"]

        billing.disallow_transfer_to_peers = True
        assert [a.name for a in billing.transfer_targets()] == ["coordinator"]
        with pytest.raises(TransferError):
            billing.resolve_transfer_target("support")

    def test_workflow_children_do_not_delegate_upward(self):
        a, b = LlmAgent("a"), LlmAgent("b")
        SequentialAgent("pipeline", sub_agents=[a, b])
        assert a.transfer_targets() == []
        with pytest.raises(TransferError):
            a.resolve_transfer_target("b")

    def test_descendants_reachable(self):
        leaf = LlmAgent("leaf")
        middle = LlmAgent("middle", sub_agents=[leaf])
        top = LlmAgent("top", sub_agents=[middle])
        assert top.resolve_transfer_target("leaf") is leaf
        assert leaf.resolve_transfer_target("top") is top
