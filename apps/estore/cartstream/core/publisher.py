"""Publish contract used by the cart write endpoints."""
from __future__ import annotations

from ..util.log import get_logger
from ..util.schema import ContractViolation, check_contract
from .encoder import SERIALIZATION_ERROR, StreamEncoder
from .events import CartEvent, CartEventType, EventBus, default_message

logger = get_logger(__name__)


class PublishError(Exception):
    """Raised when an event could not be built or handed to the bus."""


class CartEventPublisher:
    """Build cart envelopes and hand them to the bus."""

    def __init__(self, bus: EventBus, *, encoder: StreamEncoder | None = None) -> None:
        self.bus = bus
        self.encoder = encoder or StreamEncoder()

    async def publish(
        self,
        event_type: CartEventType | str,
        cart_id: int,
        user_id: int,
        product_id: int | None = None,
        quantity: int | None = None,
        cart_status: str | None = None,
        message: str | None = None,
    ) -> CartEvent:
        try:
            kind = CartEventType(event_type)
            event = CartEvent(
                kind,
                cart_id,
                user_id,
                message if message is not None else default_message(kind, product_id, quantity, cart_status),
                product_id=product_id,
                quantity=quantity,
                cart_status=cart_status,
            )
        except ValueError as exc:
            logger.error("Error building cart event: %s", exc)
            raise PublishError(str(exc)) from exc
        return await self.publish_event(event)

    async def publish_event(self, event: CartEvent) -> CartEvent:
        if self.encoder.encode(event) == SERIALIZATION_ERROR:
            raise PublishError(f"Error serializing cart event for cart {event.cart_id}")
        try:
            check_contract(event.to_wire())
        except ContractViolation as exc:
            logger.error("Cart event for cart %s breaks its contract: %s", event.cart_id, exc)
            raise PublishError(str(exc)) from exc
        try:
            delivered = await self.bus.publish(event)
        except Exception as exc:
            logger.exception("Error publishing cart event")
            raise PublishError(str(exc)) from exc
        logger.info(
            "Publishing cart event %s cart=%s user=%s to %d subscriber(s)",
            event.event_type.value,
            event.cart_id,
            event.user_id,
            delivered,
        )
        return event

    async def publish_add_item(self, cart_id: int, user_id: int, product_id: int, quantity: int) -> CartEvent:
        return await self.publish(CartEventType.ADD_ITEM, cart_id, user_id, product_id=product_id, quantity=quantity)

    async def publish_remove_item(self, cart_id: int, user_id: int, product_id: int) -> CartEvent:
        return await self.publish(CartEventType.REMOVE_ITEM, cart_id, user_id, product_id=product_id)

    async def publish_update_cart(self, cart_id: int, user_id: int, status: str | None) -> CartEvent:
        return await self.publish(CartEventType.UPDATE_CART, cart_id, user_id, cart_status=status)

    async def publish_clear_cart(self, cart_id: int, user_id: int) -> CartEvent:
        return await self.publish(CartEventType.CLEAR_CART, cart_id, user_id)

    async def publish_safely(self, event_type: CartEventType | str, cart_id: int, user_id: int, **fields) -> bool:
        """Publish after a committed write; failures are logged, never raised."""
        try:
            await self.publish(event_type, cart_id, user_id, **fields)
        except PublishError as exc:
            logger.warning("Cart %s event for cart %s not published: %s", event_type, cart_id, exc)
            return False
        return True
