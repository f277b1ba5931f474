"""Cart endpoints; every committed write publishes a cart event."""
from __future__ import annotations

from asyncio import to_thread

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy import select

from ..core.events import CartEventType
from ..core.publisher import CartEventPublisher
from ..models.carts import CartRef, CartRequest
from ..store.database import SessionFactory
from ..store.models import Cart
from .deps import get_publisher

router = APIRouter(tags=["carts"])


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cart not found")


@router.get("/carts", response_model=list[CartRef])
async def list_carts() -> list[CartRef]:
    def _list() -> list[CartRef]:
        with SessionFactory() as session:
            carts = session.execute(select(Cart).order_by(Cart.id)).scalars().all()
            return [CartRef.from_row(cart) for cart in carts]

    return await to_thread(_list)


@router.get("/carts/{cart_id}", response_model=CartRef)
async def get_cart(cart_id: int) -> CartRef:
    def _load() -> CartRef:
        with SessionFactory() as session:
            cart = session.get(Cart, cart_id)
            if cart is None:
                raise _not_found()
            return CartRef.from_row(cart)

    return await to_thread(_load)


@router.get("/users/{user_id}/carts", response_model=list[CartRef])
async def list_user_carts(user_id: int) -> list[CartRef]:
    def _list() -> list[CartRef]:
        with SessionFactory() as session:
            carts = session.execute(
                select(Cart).where(Cart.user_id == user_id).order_by(Cart.id)
            ).scalars().all()
            return [CartRef.from_row(cart) for cart in carts]

    return await to_thread(_list)


@router.post("/users/{user_id}/carts", response_model=CartRef)
async def create_cart(
    user_id: int,
    payload: CartRequest,
    publisher: CartEventPublisher = Depends(get_publisher),
) -> CartRef:
    def _create() -> CartRef:
        with SessionFactory() as session:
            cart = Cart(user_id=user_id, status=payload.status)
            session.add(cart)
            session.commit()
            return CartRef.from_row(cart)

    cart = await to_thread(_create)
    await publisher.publish_safely(
        CartEventType.UPDATE_CART, cart.id, cart.user_id, cart_status=cart.status
    )
    return cart


@router.put("/carts/{cart_id}", response_model=CartRef)
async def update_cart(
    cart_id: int,
    payload: CartRequest,
    publisher: CartEventPublisher = Depends(get_publisher),
) -> CartRef:
    def _update() -> CartRef:
        with SessionFactory() as session:
            cart = session.get(Cart, cart_id)
            if cart is None:
                raise _not_found()
            cart.status = payload.status
            session.commit()
            return CartRef.from_row(cart)

    cart = await to_thread(_update)
    await publisher.publish_safely(
        CartEventType.UPDATE_CART, cart.id, cart.user_id, cart_status=cart.status
    )
    return cart


@router.delete("/carts/{cart_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_cart(
    cart_id: int,
    publisher: CartEventPublisher = Depends(get_publisher),
) -> Response:
    def _load() -> CartRef:
        with SessionFactory() as session:
            cart = session.get(Cart, cart_id)
            if cart is None:
                raise _not_found()
            return CartRef.from_row(cart)

    def _delete() -> None:
        with SessionFactory() as session:
            cart = session.get(Cart, cart_id)
            if cart is not None:
                session.delete(cart)
                session.commit()

    cart = await to_thread(_load)
    # Subscribers hear about the clear before the row disappears.
    await publisher.publish_safely(CartEventType.CLEAR_CART, cart.id, cart.user_id)
    await to_thread(_delete)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
