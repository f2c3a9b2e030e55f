"""Stage 7: context cache directive."""

from __future__ import annotations

import hashlib
import json
import logging
import time
from typing import TYPE_CHECKING

from ...types import CacheDirective, Event, LlmRequest
from .base import RequestProcessor

if TYPE_CHECKING:
    from ...runtime.context import InvocationContext

logger = logging.getLogger(__name__)

# Rough chars-per-token ratio for the size gate.
_CHARS_PER_TOKEN = 4


def fingerprint(request: LlmRequest) -> str:
    """Hash of the cacheable prefix: system instruction plus tool declarations."""
    payload = request.system_text + json.dumps(request.tool_declarations(), sort_keys=True, default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def estimate_tokens(request: LlmRequest) -> int:
    chars = len(request.system_text) + sum(len(c.text) for c in request.contents)
    return chars // _CHARS_PER_TOKEN


class CachingRequestProcessor(RequestProcessor):
    name = "caching"

    async def apply(self, ctx: InvocationContext, request: LlmRequest) -> None:
        config = ctx.agent.context_cache or ctx.run_config.context_cache
        if config is None:
            return
        if estimate_tokens(request) < config.min_tokens:
            logger.debug("Request for %s below cache threshold; not caching", ctx.agent.name)
            return

        digest = fingerprint(request)
        directive = CacheDirective(fingerprint=digest, ttl_seconds=config.ttl_seconds, invocations_used=1)
        prior = self._latest_metadata_event(ctx)
        if prior is not None:
            meta = prior.cache_metadata
            used = meta.invocations_used + (prior.invocation_id != ctx.invocation_id)
            if meta.fingerprint == digest and used <= config.cache_intervals and not meta.is_expired(time.time()):
                directive.cache_name = meta.cache_name
                directive.invocations_used = used
            else:
                logger.debug("Cache %s not reusable for %s", meta.cache_name, ctx.agent.name)
        request.cache_directive = directive

    @staticmethod
    def _latest_metadata_event(ctx: InvocationContext) -> Event | None:
        for event in reversed(ctx.session.events.visible_to(ctx.branch)):
            if event.author == ctx.agent.name and event.cache_metadata is not None:
                return event
        return None
