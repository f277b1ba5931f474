"""Pump one bus subscription out to one SSE connection."""
from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from enum import Enum

from sse_starlette.sse import ServerSentEvent

from ..util.log import get_logger
from .encoder import StreamEncoder, frame, stream_error
from .events import EventBus, EventFilter, Subscription, SubscriptionClosed, user_filter

logger = get_logger(__name__)


class SessionState(str, Enum):
    ATTACHED = "attached"
    STREAMING = "streaming"
    CLOSED_BY_CLIENT = "closed_by_client"
    CLOSED_BY_ERROR = "closed_by_error"
    CLOSED_BY_SERVER = "closed_by_server"


class StreamSession:
    """Long-lived consumer of a single subscription.

    ``events()`` is handed to ``EventSourceResponse``. The session attaches
    lazily on first iteration and always detaches from the bus when the
    generator finishes, whichever way it finishes.

    Socket writes happen inside sse-starlette, so a failed write reaches the
    session only as a cancellation and is recorded as ``CLOSED_BY_CLIENT``.
    ``CLOSED_BY_ERROR`` covers faults raised while filtering or encoding.
    """

    def __init__(
        self,
        bus: EventBus,
        *,
        user_id: int | None = None,
        encoder: StreamEncoder | None = None,
        log_events: bool = False,
    ) -> None:
        self.bus = bus
        self.user_id = user_id
        self.encoder = encoder or StreamEncoder()
        self.log_events = log_events
        self.state: SessionState | None = None
        self.subscription: Subscription | None = None

    def _filter(self) -> EventFilter | None:
        if self.user_id is None:
            return None
        return user_filter(self.user_id)

    async def events(self) -> AsyncIterator[ServerSentEvent]:
        subscription = await self.bus.attach(self._filter())
        self.subscription = subscription
        self.state = SessionState.ATTACHED
        try:
            self.state = SessionState.STREAMING
            while True:
                event = await subscription.receive()
                if not subscription.matches(event):
                    continue
                data = self.encoder.encode(event)
                subscription.delivered += 1
                if self.log_events:
                    logger.info("Streaming cart event via SSE: %s", data)
                yield frame(data)
        except SubscriptionClosed:
            self.state = SessionState.CLOSED_BY_SERVER
        except (asyncio.CancelledError, GeneratorExit):
            self.state = SessionState.CLOSED_BY_CLIENT
            logger.info(
                "Cart events SSE stream closed by client (subscription %s, delivered=%d)",
                subscription.id,
                subscription.delivered,
            )
            raise
        except Exception as exc:
            logger.exception("Error in cart events SSE stream (subscription %s)", subscription.id)
            self.state = SessionState.CLOSED_BY_ERROR
            yield frame(stream_error(str(exc)))
        finally:
            await self.bus.unsubscribe(subscription)
