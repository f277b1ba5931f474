"""Wire encoding for streamed cart events."""
from __future__ import annotations

import json

from sse_starlette.sse import ServerSentEvent

from ..util.log import get_logger
from .events import CartEvent

logger = get_logger(__name__)

SERIALIZATION_ERROR = json.dumps({"error": "Serialization error"})
FRAME_SEPARATOR = "\n"


def stream_error(message: str) -> str:
    """Payload for the final frame of a stream that failed."""
    return json.dumps({"error": f"Stream error: {message}"})


def frame(data: str) -> ServerSentEvent:
    return ServerSentEvent(data=data, sep=FRAME_SEPARATOR)


class StreamEncoder:
    """Serialise envelopes to compact JSON, containing failures per event."""

    def encode(self, event: CartEvent) -> str:
        try:
            return json.dumps(event.to_wire(), separators=(",", ":"))
        except (TypeError, ValueError, AttributeError):
            logger.exception("Error serializing cart event for SSE")
            return SERIALIZATION_ERROR
