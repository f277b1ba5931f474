"""Tests for stream sessions pumping subscriptions to SSE frames."""
from __future__ import annotations

import asyncio
import json
import logging

import pytest

from ..core.encoder import SERIALIZATION_ERROR, StreamEncoder
from ..core.events import CartEvent, EventBus
from ..core.session import SessionState, StreamSession
from .helpers import wait_for_subscribers


async def _next_data(stream, timeout: float = 1.0) -> str:
    item = await asyncio.wait_for(stream.__anext__(), timeout)
    return item.encode().decode("utf-8")


def test_scenario_unfiltered_and_filtered_streams() -> None:
    async def scenario():
        bus = EventBus()
        everyone = StreamSession(bus)
        user_two = StreamSession(bus, user_id=2)
        everyone_stream = everyone.events()
        user_two_stream = user_two.events()
        first = asyncio.create_task(_next_data(everyone_stream))
        second = asyncio.create_task(_next_data(user_two_stream))
        await wait_for_subscribers(bus, 2)

        await bus.publish(CartEvent.add_item(7, 1, 101, 2))
        await bus.publish(CartEvent.clear_cart(9, 2))
        frames = await first, await second

        await everyone_stream.aclose()
        await user_two_stream.aclose()
        return frames, user_two.subscription

    (everyone_frame, user_two_frame), user_two_sub = asyncio.run(scenario())
    assert everyone_frame.startswith("data: ")
    assert everyone_frame.endswith("\n\n")
    assert '"eventType":"ADD_ITEM","cartId":7,"userId":1,"productId":101,"quantity":2' in everyone_frame
    # The user 2 stream skipped the user 1 event entirely.
    assert json.loads(user_two_frame[len("data: "):])["eventType"] == "CLEAR_CART"
    assert user_two_sub.delivered == 1


def test_frames_follow_publish_order() -> None:
    async def scenario():
        bus = EventBus()
        session = StreamSession(bus)
        stream = session.events()
        first = asyncio.create_task(_next_data(stream))
        await wait_for_subscribers(bus, 1)
        await bus.publish(CartEvent.clear_cart(7, 1))
        await bus.publish(CartEvent.update_cart(7, 1, "checked_out"))
        frames = [await first, await _next_data(stream)]
        await stream.aclose()
        return frames

    frames = asyncio.run(scenario())
    assert '"CLEAR_CART"' in frames[0]
    assert '"cartStatus":"checked_out"' in frames[1]


def test_encode_failure_does_not_stop_stream() -> None:
    async def scenario():
        bus = EventBus()
        session = StreamSession(bus)
        stream = session.events()
        first = asyncio.create_task(_next_data(stream))
        await wait_for_subscribers(bus, 1)
        broken = CartEvent.update_cart(7, 1, None).with_cart_status(object())  # type: ignore[arg-type]
        await bus.publish(broken)
        await bus.publish(CartEvent.clear_cart(7, 1))
        frames = [await first, await _next_data(stream)]
        state = session.state
        await stream.aclose()
        return frames, state

    frames, state = asyncio.run(scenario())
    assert frames[0] == f"data: {SERIALIZATION_ERROR}\n\n"
    assert '"CLEAR_CART"' in frames[1]
    assert state is SessionState.STREAMING


def test_client_close_detaches(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO)

    async def scenario():
        bus = EventBus()
        session = StreamSession(bus)
        stream = session.events()
        pending = asyncio.create_task(_next_data(stream))
        await wait_for_subscribers(bus, 1)
        pending.cancel()
        try:
            await pending
        except asyncio.CancelledError:
            pass
        await stream.aclose()
        after = await bus.publish(CartEvent.clear_cart(7, 1))
        return session, bus.subscriber_count, after

    session, count, after = asyncio.run(scenario())
    assert session.state is SessionState.CLOSED_BY_CLIENT
    assert "closed by client" in caplog.text
    assert session.subscription.closed
    assert count == 0
    assert after == 0


def test_bus_close_ends_stream() -> None:
    async def scenario():
        bus = EventBus()
        session = StreamSession(bus)
        frames = []

        async def consume():
            async for item in session.events():
                frames.append(item)

        consumer = asyncio.create_task(consume())
        await wait_for_subscribers(bus, 1)
        await bus.close()
        await asyncio.wait_for(consumer, 1)
        return session, frames

    session, frames = asyncio.run(scenario())
    assert session.state is SessionState.CLOSED_BY_SERVER
    assert frames == []


class _FaultyEncoder(StreamEncoder):
    def encode(self, event: CartEvent) -> str:
        raise RuntimeError("encoder fault")


def test_encoder_fault_emits_final_frame() -> None:
    async def scenario():
        bus = EventBus()
        session = StreamSession(bus, encoder=_FaultyEncoder())
        frames = []

        async def consume():
            async for item in session.events():
                frames.append(item.encode().decode("utf-8"))

        consumer = asyncio.create_task(consume())
        await wait_for_subscribers(bus, 1)
        await bus.publish(CartEvent.clear_cart(7, 1))
        await asyncio.wait_for(consumer, 1)
        return session, frames, bus.subscriber_count

    session, frames, count = asyncio.run(scenario())
    assert frames == ['data: {"error": "Stream error: encoder fault"}\n\n']
    assert session.state is SessionState.CLOSED_BY_ERROR
    assert count == 0
