"""Request-scoped accessors for application state."""
from __future__ import annotations

from fastapi import Request

from ..core.events import EventBus
from ..core.publisher import CartEventPublisher
from ..util.settings import StreamSettings


def get_bus(request: Request) -> EventBus:
    return request.app.state.bus


def get_publisher(request: Request) -> CartEventPublisher:
    return request.app.state.publisher


def get_settings(request: Request) -> StreamSettings:
    return request.app.state.settings
