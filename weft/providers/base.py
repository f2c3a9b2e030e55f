"""Model backend base class: retries with backoff behind a circuit breaker."""

from __future__ import annotations

import asyncio
import logging
import random
import time
from collections.abc import AsyncGenerator, Awaitable, Callable
from dataclasses import dataclass

from ..errors import ModelFault, ModelRateLimitError, WeftError
from ..types import CacheMetadata, LlmRequest, LlmResponse

logger = logging.getLogger(__name__)


@dataclass
class RetryConfig:
    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0


@dataclass
class CircuitBreakerConfig:
    failure_threshold: int = 5
    reset_time: float = 60.0


class _CircuitBreaker:
    """Counts consecutive failures; refuses calls for ``reset_time`` once tripped."""

    def __init__(self, config: CircuitBreakerConfig) -> None:
        self.config = config
        self.failures = 0
        self.opened_at = 0.0

    def guard(self, provider: str) -> None:
        if self.failures < self.config.failure_threshold:
            return
        if time.time() - self.opened_at < self.config.reset_time:
            raise ModelFault(provider, "Circuit breaker open", code="MODEL_CIRCUIT_OPEN")
        logger.info("%s circuit half-open after %.0fs", provider, self.config.reset_time)
        self.failures = 0

    def success(self) -> None:
        self.failures = 0

    def failure(self) -> None:
        self.failures += 1
        self.opened_at = time.time()


def _fault(provider: str, err: Exception) -> ModelFault:
    return ModelFault(provider, str(err) or type(err).__name__, cause=err)


class BaseLLMProvider:
    """Subclass and implement ``_do_complete`` / ``_do_stream``.

    Every failure leaving ``complete``/``stream`` is a ModelFault. Streams are
    not retried: chunks may already have reached the caller.
    """

    name = "base"

    def __init__(
        self,
        retry: RetryConfig | None = None,
        circuit_breaker: CircuitBreakerConfig | None = None,
    ) -> None:
        self._retry = retry or RetryConfig()
        self._breaker = _CircuitBreaker(circuit_breaker or CircuitBreakerConfig())

    async def complete(self, request: LlmRequest) -> LlmResponse:
        self._breaker.guard(self.name)
        return await self._with_retry(lambda: self._do_complete(request))

    async def stream(self, request: LlmRequest) -> AsyncGenerator[LlmResponse, None]:
        self._breaker.guard(self.name)
        try:
            async for chunk in self._do_stream(request):
                yield chunk
        except WeftError:
            self._breaker.failure()
            raise
        except Exception as e:
            self._breaker.failure()
            raise _fault(self.name, e) from e
        self._breaker.success()

    # -- Override these --

    async def _do_complete(self, request: LlmRequest) -> LlmResponse:
        raise NotImplementedError

    async def _do_stream(self, request: LlmRequest) -> AsyncGenerator[LlmResponse, None]:
        raise NotImplementedError
        yield  # pragma: no cover

    # -- Helpers for subclasses --

    @staticmethod
    def cache_metadata_for(request: LlmRequest) -> CacheMetadata | None:
        """Metadata describing the cache entry a backend used for ``request``."""
        directive = request.cache_directive
        if directive is None:
            return None
        return CacheMetadata(
            cache_name=directive.cache_name or f"cache-{directive.fingerprint[:12]}",
            fingerprint=directive.fingerprint,
            invocations_used=directive.invocations_used,
            expire_time=time.time() + directive.ttl_seconds,
        )

    # -- Internals --

    def _backoff(self, attempt: int, err: Exception) -> float:
        jittered = self._retry.base_delay * (2 ** attempt) + random.random() * 0.1
        delay = min(jittered, self._retry.max_delay)
        if isinstance(err, ModelRateLimitError) and err.retry_after:
            delay = max(delay, err.retry_after)
        return delay

    async def _with_retry(self, call: Callable[[], Awaitable[LlmResponse]]) -> LlmResponse:
        attempts = self._retry.max_retries + 1
        attempt = 0
        while True:
            try:
                response = await call()
            except Exception as e:
                self._breaker.failure()
                if attempt == attempts - 1:
                    if isinstance(e, ModelFault):
                        raise
                    raise _fault(self.name, e) from e
                delay = self._backoff(attempt, e)
                logger.warning("%s call failed (%s); retry %d/%d in %.1fs", self.name, e, attempt + 1, self._retry.max_retries, delay)
                await asyncio.sleep(delay)
                attempt += 1
            else:
                self._breaker.success()
                return response
