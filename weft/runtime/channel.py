"""
Backpressured fan-in of concurrent event streams.

Every producer owns a single slot: after handing an item over it blocks until
the consumer has finished with that item and pulled again. Items from one
producer therefore keep their order, and no producer can run ahead of the
consumer by more than one item.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncGenerator, Awaitable, Callable, Sequence
from contextlib import aclosing
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

ErrorHandler = Callable[[int, Exception], Awaitable[T | None]]


class _Done:
    __slots__ = ("index",)

    def __init__(self, index: int) -> None:
        self.index = index


class SingleSlot(Generic[T]):
    """One in-flight item plus the signal that it has been consumed."""

    __slots__ = ("item", "consumed")

    def __init__(self, item: T) -> None:
        self.item = item
        self.consumed = asyncio.Event()


async def merge_streams(
    streams: Sequence[AsyncGenerator[T, None]],
    on_error: ErrorHandler | None = None,
) -> AsyncGenerator[T, None]:
    """Interleave ``streams`` as items become ready; completes when all do.

    A producer exception is passed to ``on_error`` (its return value, if any,
    is delivered like a normal item) and the remaining producers keep running.
    Without a handler the exception propagates to the consumer.
    """
    ready: asyncio.Queue[SingleSlot[T] | _Done | BaseException] = asyncio.Queue()

    async def hand_over(item: T) -> None:
        slot = SingleSlot(item)
        await ready.put(slot)
        await slot.consumed.wait()

    async def pump(index: int, stream: AsyncGenerator[T, None]) -> None:
        try:
            async with aclosing(stream):
                async for item in stream:
                    await hand_over(item)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if on_error is None:
                await ready.put(exc)
                return
            logger.warning("Stream %d failed: %s", index, exc, exc_info=True)
            reported = await on_error(index, exc)
            if reported is not None:
                await hand_over(reported)
        finally:
            await ready.put(_Done(index))

    tasks = [asyncio.create_task(pump(i, s)) for i, s in enumerate(streams)]
    remaining = len(tasks)
    try:
        while remaining:
            entry = await ready.get()
            if isinstance(entry, _Done):
                remaining -= 1
                continue
            if isinstance(entry, BaseException):
                raise entry
            yield entry.item
            entry.consumed.set()
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
