"""Async helpers shared by the stream tests."""
from __future__ import annotations

import asyncio

from ..core.events import EventBus


async def wait_for_subscribers(bus: EventBus, count: int, timeout: float = 1.0) -> None:
    """Yield to the loop until ``count`` subscriptions are attached."""

    async def _wait() -> None:
        while bus.subscriber_count < count:
            await asyncio.sleep(0)

    await asyncio.wait_for(_wait(), timeout)
