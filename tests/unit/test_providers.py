"""Unit tests for the provider base class and the scripted provider."""

import pytest

from weft.errors import ModelFault, ModelRateLimitError
from weft.providers import BaseLLMProvider, CircuitBreakerConfig, RetryConfig, ScriptedLLMProvider
from weft.types import CacheDirective, Content, LlmRequest, LlmResponse


class Flaky(BaseLLMProvider):
    name = "flaky"

    def __init__(self, failures, error=None, **kwargs):
        super().__init__(**kwargs)
        self.failures = failures
        self.error = error or ConnectionError("connection reset")
        self.calls = 0

    async def _do_complete(self, request):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return LlmResponse(content=Content.from_text("model", "ok"))

    async def _do_stream(self, request):
        yield LlmResponse(content=Content.from_text("model", "par"), partial=True)
        raise self.error


NO_WAIT = RetryConfig(max_retries=2, base_delay=0, max_delay=0)


class TestRetry:
    async def test_recovers_within_budget(self):
        provider = Flaky(failures=2, retry=NO_WAIT)
        response = await provider.complete(LlmRequest())
        assert response.content.text == "ok"
        assert provider.calls == 3

    async def test_wraps_final_failure(self):
        provider = Flaky(failures=5, retry=NO_WAIT)
        with pytest.raises(ModelFault) as exc:
            await provider.complete(LlmRequest())
        assert exc.value.code == "MODEL_FAULT"
        assert isinstance(exc.value.cause, ConnectionError)
        assert provider.calls == 3

    async def test_model_faults_keep_their_code(self):
        provider = Flaky(failures=5, error=ModelRateLimitError("flaky"), retry=NO_WAIT)
        with pytest.raises(ModelRateLimitError) as exc:
            await provider.complete(LlmRequest())
        assert exc.value.code == "MODEL_RATE_LIMIT"

    async def test_circuit_opens(self):
        provider = Flaky(
            failures=10,
            retry=RetryConfig(max_retries=0),
            circuit_breaker=CircuitBreakerConfig(failure_threshold=2, reset_time=60),
        )
        for _ in range(2):
            with pytest.raises(ModelFault):
                await provider.complete(LlmRequest())
        with pytest.raises(ModelFault) as exc:
            await provider.complete(LlmRequest())
        assert exc.value.code == "MODEL_CIRCUIT_OPEN"
        assert provider.calls == 2

    async def test_stream_errors_wrapped(self):
        provider = Flaky(failures=0)
        chunks = []
        with pytest.raises(ModelFault):
            async for chunk in provider.stream(LlmRequest()):
                chunks.append(chunk)
        assert [c.text for c in (chunk.content for chunk in chunks)] == ["par"]

    def test_cache_metadata_for(self):
        assert BaseLLMProvider.cache_metadata_for(LlmRequest()) is None
        request = LlmRequest(cache_directive=CacheDirective(fingerprint="ab" * 32, ttl_seconds=60, invocations_used=3))
        meta = BaseLLMProvider.cache_metadata_for(request)
        assert meta.cache_name == "cache-" + "ab" * 6
        assert meta.invocations_used == 3
        assert not meta.is_expired()


class TestScriptedProvider:
    async def test_replays_in_order_and_records_requests(self):
        provider = ScriptedLLMProvider(["one"])
        provider.add(lambda request: ScriptedLLMProvider.text(f"saw {len(request.contents)} contents"))
        first = await provider.complete(LlmRequest())
        second = await provider.complete(LlmRequest(contents=[Content.from_text("user", "hi")]))
        assert first.content.text == "one"
        assert second.content.text == "saw 1 contents"
        assert provider.call_count == 2
        assert provider.remaining == 0

    async def test_exhausted(self):
        with pytest.raises(ModelFault):
            await ScriptedLLMProvider().complete(LlmRequest())

    async def test_stream_chunks_text(self):
        provider = ScriptedLLMProvider(["a b c"])
        chunks = [c async for c in provider.stream(LlmRequest())]
        assert [c.content.text for c in chunks] == ["a ", "b ", "c", "a b c"]
        assert [c.partial for c in chunks] == [True, True, True, False]
        assert chunks[-1].turn_complete

    async def test_calls_are_not_chunked(self):
        provider = ScriptedLLMProvider([ScriptedLLMProvider.call("f", {"x": 1}, id="c1")])
        chunks = [c async for c in provider.stream(LlmRequest())]
        assert len(chunks) == 1
        assert chunks[0].content.parts[0].function_call.id == "c1"
