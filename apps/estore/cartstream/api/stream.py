"""Server-sent cart event endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sse_starlette.sse import EventSourceResponse

from ..core.encoder import FRAME_SEPARATOR
from ..core.events import EventBus
from ..core.session import StreamSession
from ..util.settings import StreamSettings
from .deps import get_bus, get_settings

router = APIRouter(tags=["stream"])


def _stream(session: StreamSession, settings: StreamSettings) -> EventSourceResponse:
    return EventSourceResponse(
        session.events(),
        ping=settings.ping_interval,
        sep=FRAME_SEPARATOR,
    )


@router.get("/cart-events")
async def stream_cart_events(
    bus: EventBus = Depends(get_bus),
    settings: StreamSettings = Depends(get_settings),
) -> EventSourceResponse:
    """Subscribe to every cart event."""
    session = StreamSession(bus, log_events=settings.log_events)
    return _stream(session, settings)


@router.get("/cart-events/{user_id}")
async def stream_user_cart_events(
    user_id: int,
    bus: EventBus = Depends(get_bus),
    settings: StreamSettings = Depends(get_settings),
) -> EventSourceResponse:
    """Subscribe to the cart events of a single user."""
    session = StreamSession(bus, user_id=user_id, log_events=settings.log_events)
    return _stream(session, settings)
