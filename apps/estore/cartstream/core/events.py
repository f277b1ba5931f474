"""In-memory cart event bus for SSE streaming."""
from __future__ import annotations

import asyncio
import uuid
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from ..util.log import get_logger

logger = get_logger(__name__)

DEFAULT_QUEUE_SIZE = 100


class CartEventType(str, Enum):
    ADD_ITEM = "ADD_ITEM"
    REMOVE_ITEM = "REMOVE_ITEM"
    UPDATE_CART = "UPDATE_CART"
    CLEAR_CART = "CLEAR_CART"


_ITEM_EVENTS = {CartEventType.ADD_ITEM, CartEventType.REMOVE_ITEM}


class InvalidCartEvent(ValueError):
    """Raised when an envelope's fields do not fit its event type."""


def _text(value: object) -> str:
    return "null" if value is None else str(value)


def _is_id(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def default_message(
    event_type: CartEventType,
    product_id: int | None = None,
    quantity: int | None = None,
    cart_status: str | None = None,
) -> str:
    """Human-readable summary used when a publisher does not supply one."""
    if event_type is CartEventType.ADD_ITEM:
        return f"Item added to cart: productId={_text(product_id)}, quantity={_text(quantity)}"
    if event_type is CartEventType.REMOVE_ITEM:
        return f"Item removed from cart: productId={_text(product_id)}"
    if event_type is CartEventType.UPDATE_CART:
        return f"Cart updated: status={_text(cart_status)}"
    return "Cart cleared"


@dataclass(frozen=True, slots=True)
class CartEvent:
    """Immutable notification of one cart mutation.

    Optional fields use ``None`` for absence so a zero quantity stays
    distinguishable from a missing one.
    """

    event_type: CartEventType
    cart_id: int
    user_id: int
    message: str
    product_id: int | None = None
    quantity: int | None = None
    cart_status: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        try:
            event_type = CartEventType(self.event_type)
        except ValueError as exc:
            raise InvalidCartEvent(f"Unknown event type: {self.event_type!r}") from exc
        object.__setattr__(self, "event_type", event_type)

        if self.cart_id is None or self.user_id is None:
            raise InvalidCartEvent("cart_id and user_id are required")
        if not (_is_id(self.cart_id) and _is_id(self.user_id)):
            raise InvalidCartEvent("cart_id and user_id must be integers")
        for name in ("product_id", "quantity"):
            value = getattr(self, name)
            if value is not None and not _is_id(value):
                raise InvalidCartEvent(f"{name} must be an integer")
        if self.message is None:
            raise InvalidCartEvent("message is required")
        if event_type in _ITEM_EVENTS:
            if self.product_id is None:
                raise InvalidCartEvent(f"{event_type.value} requires product_id")
            if event_type is CartEventType.ADD_ITEM and self.quantity is None:
                raise InvalidCartEvent("ADD_ITEM requires quantity")
        elif self.product_id is not None or self.quantity is not None:
            raise InvalidCartEvent(f"{event_type.value} does not carry item fields")
        if self.cart_status is not None and event_type is not CartEventType.UPDATE_CART:
            raise InvalidCartEvent("cart_status is only valid on UPDATE_CART")

    @classmethod
    def add_item(cls, cart_id: int, user_id: int, product_id: int, quantity: int) -> "CartEvent":
        return cls(
            CartEventType.ADD_ITEM,
            cart_id,
            user_id,
            default_message(CartEventType.ADD_ITEM, product_id, quantity),
            product_id=product_id,
            quantity=quantity,
        )

    @classmethod
    def remove_item(cls, cart_id: int, user_id: int, product_id: int) -> "CartEvent":
        return cls(
            CartEventType.REMOVE_ITEM,
            cart_id,
            user_id,
            default_message(CartEventType.REMOVE_ITEM, product_id),
            product_id=product_id,
        )

    @classmethod
    def update_cart(cls, cart_id: int, user_id: int, status: str | None) -> "CartEvent":
        return cls(
            CartEventType.UPDATE_CART,
            cart_id,
            user_id,
            default_message(CartEventType.UPDATE_CART, cart_status=status),
            cart_status=status,
        )

    @classmethod
    def clear_cart(cls, cart_id: int, user_id: int) -> "CartEvent":
        return cls(CartEventType.CLEAR_CART, cart_id, user_id, default_message(CartEventType.CLEAR_CART))

    def with_cart_status(self, status: str) -> "CartEvent":
        """Return a copy carrying ``status``; the original is left untouched."""
        return replace(self, cart_status=status)

    def to_wire(self) -> dict[str, Any]:
        """Camel-cased field mapping with absent optional fields omitted."""
        wire: dict[str, Any] = {
            "eventType": self.event_type.value,
            "cartId": self.cart_id,
            "userId": self.user_id,
        }
        if self.product_id is not None:
            wire["productId"] = self.product_id
        if self.quantity is not None:
            wire["quantity"] = self.quantity
        if self.cart_status is not None:
            wire["cartStatus"] = self.cart_status
        wire["timestamp"] = self.timestamp.isoformat()
        wire["message"] = self.message
        return wire


EventFilter = Callable[[CartEvent], bool]


def user_filter(user_id: int) -> EventFilter:
    return lambda event: event.user_id == user_id


class SubscriptionClosed(Exception):
    """Raised by :meth:`Subscription.receive` once the subscription is closed."""


_CLOSED = object()


class Subscription:
    """One observer's bounded queue into the bus."""

    def __init__(self, event_filter: EventFilter | None = None, max_queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        self.id = uuid.uuid4().hex
        self.event_filter = event_filter
        # One slot is reserved for the close marker.
        self._queue: asyncio.Queue[Any] = asyncio.Queue(max_queue_size + 1)
        self._capacity = max_queue_size
        self._closed = False
        self.delivered = 0
        self.dropped = 0

    @classmethod
    def for_user(cls, user_id: int, max_queue_size: int = DEFAULT_QUEUE_SIZE) -> "Subscription":
        return cls(user_filter(user_id), max_queue_size)

    @property
    def closed(self) -> bool:
        return self._closed

    def matches(self, event: CartEvent) -> bool:
        if self.event_filter is None:
            return True
        return bool(self.event_filter(event))

    def offer(self, event: CartEvent) -> bool:
        """Enqueue without waiting; ``False`` when closed or full."""
        if self._closed or self._queue.qsize() >= self._capacity:
            if not self._closed:
                self.dropped += 1
            return False
        self._queue.put_nowait(event)
        return True

    async def receive(self) -> CartEvent:
        item = await self._queue.get()
        if item is _CLOSED:
            # Leave the marker for any other waiter.
            self._queue.put_nowait(_CLOSED)
            raise SubscriptionClosed(self.id)
        return item

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> CartEvent:
        try:
            return await self.receive()
        except SubscriptionClosed:
            raise StopAsyncIteration from None


class EventBus:
    """Lightweight pub/sub fan-out implemented with asyncio queues."""

    def __init__(self, max_queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        self.max_queue_size = max_queue_size
        self._subscriptions: dict[str, Subscription] = {}
        self._lock = asyncio.Lock()
        self._closed = False

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    async def publish(self, event: CartEvent) -> int:
        if self._closed:
            return 0
        queued = 0
        for subscription in list(self._subscriptions.values()):
            if subscription.offer(event):
                queued += 1
            elif not subscription.closed:
                # Drop events for slow subscribers to avoid back-pressure.
                logger.debug(
                    "Dropped %s for subscription %s (queue full)",
                    event.event_type.value,
                    subscription.id,
                )
        return queued

    async def attach(self, event_filter: EventFilter | None = None) -> Subscription:
        subscription = Subscription(event_filter, self.max_queue_size)
        async with self._lock:
            if self._closed:
                subscription.close()
                return subscription
            self._subscriptions[subscription.id] = subscription
        logger.info("Subscription %s attached; total=%d", subscription.id, self.subscriber_count)
        return subscription

    async def unsubscribe(self, subscription: Subscription) -> None:
        async with self._lock:
            removed = self._subscriptions.pop(subscription.id, None)
        subscription.close()
        if removed is not None:
            logger.info("Subscription %s detached; total=%d", subscription.id, self.subscriber_count)

    @asynccontextmanager
    async def subscribe(self, event_filter: EventFilter | None = None) -> AsyncIterator[Subscription]:
        subscription = await self.attach(event_filter)
        try:
            yield subscription
        finally:
            await self.unsubscribe(subscription)

    async def close(self) -> None:
        """Close every subscription; later publishes are ignored."""
        async with self._lock:
            self._closed = True
            subscriptions = list(self._subscriptions.values())
            self._subscriptions.clear()
        for subscription in subscriptions:
            subscription.close()
        logger.info("Event bus closed; released %d subscription(s)", len(subscriptions))
