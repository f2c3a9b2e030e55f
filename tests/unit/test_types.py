"""Unit tests for events, content and config models."""

import pydantic
import pytest

from weft import ContextCacheConfig, GenerationConfig, RunConfig
from weft.errors import TransferError, WeftError
from weft.types import (
    REQUEST_CREDENTIAL_FUNCTION,
    Content,
    Event,
    EventActions,
    FunctionCall,
    Part,
    SequentialAgentState,
)


def _call_event(name="lookup", id="c1", long_running=False):
    content = Content(role="model", parts=[Part.from_function_call(name, {"q": 1}, id=id)])
    return Event(
        author="agent",
        content=content,
        long_running_tool_ids=frozenset({id}) if long_running else frozenset(),
    )


class TestEventType:
    def test_text_is_message(self):
        assert Event(author="a", content=Content.from_text("model", "hi")).type == "message"

    def test_function_call_and_response(self):
        assert _call_event().type == "function_call"
        response = Event(
            author="a",
            content=Content(role="user", parts=[Part.from_function_response("lookup", {"ok": 1}, "c1")]),
        )
        assert response.type == "function_response"

    def test_checkpoint_error_partial(self):
        checkpoint = Event(author="seq", actions=EventActions(agent_state=SequentialAgentState(1)))
        assert checkpoint.type == "checkpoint"
        assert Event(author="seq", actions=EventActions(end_of_agent=True)).type == "checkpoint"
        assert Event(author="a", error_code="MODEL_FAULT", terminal=True).type == "error"
        assert Event(author="a", content=Content.from_text("model", "h"), partial=True).type == "partial"


class TestFinalResponse:
    def test_text_is_final(self):
        assert Event(author="a", content=Content.from_text("model", "done")).is_final_response()

    def test_calls_are_not_final(self):
        assert not _call_event().is_final_response()

    def test_skip_summarization_is_final(self):
        event = Event(author="a", actions=EventActions(skip_summarization=True))
        assert event.is_final_response()

    def test_long_running_is_final(self):
        assert _call_event(long_running=True).is_final_response()

    def test_partial_is_not_final(self):
        assert not Event(author="a", content=Content.from_text("model", "x"), partial=True).is_final_response()


class TestExternalInput:
    def test_side_channel_request(self):
        assert _call_event(REQUEST_CREDENTIAL_FUNCTION, long_running=True).requests_external_input()

    def test_ordinary_long_running_call_does_not_pause(self):
        assert not _call_event("start_job", long_running=True).requests_external_input()


class TestEventActions:
    def test_merge(self):
        actions = EventActions(state_delta={"a": 1})
        actions.merge(EventActions(state_delta={"b": 2}, escalate=True, transfer_to_agent="x"))
        assert actions.state_delta == {"a": 1, "b": 2}
        assert actions.escalate
        assert actions.transfer_to_agent == "x"

    def test_is_empty(self):
        assert EventActions().is_empty
        assert not EventActions(escalate=True).is_empty

    def test_with_state_delta_copies(self):
        event = Event(author="a", actions=EventActions(state_delta={"a": 1}))
        updated = event.with_state_delta({"b": 2})
        assert updated.actions.state_delta == {"a": 1, "b": 2}
        assert event.actions.state_delta == {"a": 1}
        assert updated.id == event.id


class TestContent:
    def test_text_skips_thoughts(self):
        content = Content(role="model", parts=[Part.from_text("thinking", thought=True), Part.from_text("answer")])
        assert content.text == "answer"

    def test_function_call_round_trip(self):
        call = FunctionCall(name="f", args={"x": 1})
        assert call.id.startswith("wf-")
        assert FunctionCall.from_dict(call.to_dict()) == call


class TestConfig:
    def test_defaults(self):
        config = RunConfig()
        assert config.max_llm_calls == 500
        assert config.resumable is False
        assert config.tools.max_concurrency == 8

    def test_unknown_field_rejected(self):
        with pytest.raises(pydantic.ValidationError):
            RunConfig(max_calls=3)

    def test_bounds(self):
        with pytest.raises(pydantic.ValidationError):
            GenerationConfig(temperature=3.0)
        with pytest.raises(pydantic.ValidationError):
            ContextCacheConfig(cache_intervals=0)


class TestErrors:
    def test_wrap(self):
        err = WeftError.wrap(RuntimeError("boom"))
        assert err.code == "UNKNOWN"
        assert err.message == "boom"
        assert WeftError.wrap(err) is err

    def test_transfer_error_lists_targets(self):
        err = TransferError("nope", ["billing", "support"])
        assert err.code == "TRANSFER_ERROR"
        assert "billing, support" in err.message
