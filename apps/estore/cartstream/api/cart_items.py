"""Cart item endpoints."""
from __future__ import annotations

from asyncio import to_thread

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy import select

from ..core.events import CartEventType
from ..core.publisher import CartEventPublisher
from ..models.carts import CartItemRef, CartItemRequest
from ..store.database import SessionFactory
from ..store.models import Cart, CartItem
from .deps import get_publisher

router = APIRouter(tags=["cart-items"])


@router.get("/carts/{cart_id}/items", response_model=list[CartItemRef])
async def list_items(cart_id: int) -> list[CartItemRef]:
    def _list() -> list[CartItemRef]:
        with SessionFactory() as session:
            items = session.execute(
                select(CartItem).where(CartItem.cart_id == cart_id).order_by(CartItem.id)
            ).scalars().all()
            return [CartItemRef.from_row(item) for item in items]

    return await to_thread(_list)


@router.post("/carts/{cart_id}/items", response_model=CartItemRef)
async def add_item(
    cart_id: int,
    payload: CartItemRequest,
    publisher: CartEventPublisher = Depends(get_publisher),
) -> CartItemRef:
    def _add() -> tuple[CartItemRef, int]:
        with SessionFactory() as session:
            cart = session.get(Cart, cart_id)
            if cart is None:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cart not found")
            item = CartItem(cart_id=cart_id, product_id=payload.product_id, quantity=payload.quantity)
            session.add(item)
            session.commit()
            return CartItemRef.from_row(item), cart.user_id

    item, user_id = await to_thread(_add)
    await publisher.publish_safely(
        CartEventType.ADD_ITEM,
        cart_id,
        user_id,
        product_id=item.product_id,
        quantity=item.quantity,
    )
    return item


@router.delete("/cart-items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_item(
    item_id: int,
    publisher: CartEventPublisher = Depends(get_publisher),
) -> Response:
    def _load() -> tuple[CartItemRef, int]:
        with SessionFactory() as session:
            item = session.get(CartItem, item_id)
            if item is None:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cart item not found")
            return CartItemRef.from_row(item), item.cart.user_id

    def _delete() -> None:
        with SessionFactory() as session:
            item = session.get(CartItem, item_id)
            if item is not None:
                session.delete(item)
                session.commit()

    item, user_id = await to_thread(_load)
    await publisher.publish_safely(
        CartEventType.REMOVE_ITEM, item.cart_id, user_id, product_id=item.product_id
    )
    await to_thread(_delete)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
