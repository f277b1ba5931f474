"""Pydantic models for cart APIs."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..store.models import Cart, CartItem


class CartRequest(BaseModel):
    status: Optional[str] = None


class CartRef(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    user_id: int = Field(alias="userId")
    status: Optional[str] = None

    @classmethod
    def from_row(cls, cart: Cart) -> "CartRef":
        return cls(id=cart.id, user_id=cart.user_id, status=cart.status)


class CartItemRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: int = Field(alias="productId")
    quantity: int = Field(1, ge=0)


class CartItemRef(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    cart_id: int = Field(alias="cartId")
    product_id: int = Field(alias="productId")
    quantity: int

    @classmethod
    def from_row(cls, item: CartItem) -> "CartItemRef":
        return cls(id=item.id, cart_id=item.cart_id, product_id=item.product_id, quantity=item.quantity)
