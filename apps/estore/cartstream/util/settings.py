"""Runtime settings for the cart event stream."""
from __future__ import annotations

import os
from dataclasses import dataclass

from ..core.events import DEFAULT_QUEUE_SIZE


@dataclass(slots=True)
class StreamSettings:
    """Container for stream tuning knobs read from the environment."""

    queue_size: int = DEFAULT_QUEUE_SIZE
    ping_interval: int = 15
    log_events: bool = False

    @classmethod
    def from_env(cls) -> "StreamSettings":
        return cls(
            queue_size=_env_int("CARTSTREAM_QUEUE_SIZE", default=DEFAULT_QUEUE_SIZE, minimum=1),
            ping_interval=_env_int("CARTSTREAM_PING_SECONDS", default=15, minimum=1),
            log_events=_env_flag("CARTSTREAM_LOG_EVENTS", default=False),
        )


def _env_flag(name: str, *, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, *, default: int, minimum: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    return max(value, minimum)
