# storefront/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Literal, Optional
from decimal import Decimal
from datetime import datetime


class ItemIn(BaseModel):
    """Schema for adding a product to the cart."""

    product_id: int = Field(..., gt=0, description="Product ID (must be > 0)")
    quantity: int = Field(..., gt=0, description="Quantity (must be > 0)")


class QuantityIn(BaseModel):
    """Schema for setting a cart line quantity. 0 removes the line."""

    quantity: int = Field(..., ge=0, description="New quantity (>= 0)")


class CartItemOut(BaseModel):
    """Cart line expanded with live product data."""

    product_id: int
    name: str
    quantity: int
    unit_price: Decimal
    stock: int


class CartOut(BaseModel):
    cart_id: int
    user_id: int
    items: List[CartItemOut]
    subtotal: Decimal
    version: int

    model_config = ConfigDict(from_attributes=True)


class CheckoutIn(BaseModel):
    """Schema for placing an order from the caller's cart."""

    shipping_address: str = Field(..., min_length=1, max_length=500)


class OrderItemOut(BaseModel):
    product_id: int
    name: Optional[str] = None
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class OrderOut(BaseModel):
    id: int
    user_id: int
    status: str
    items: List[OrderItemOut]
    total: Decimal
    shipping_address: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrderStatusIn(BaseModel):
    # plain str: bad values get the domain validation error, not a 422
    status: str


class OrderUpdate(BaseModel):
    """Management update; any field left out is kept as is."""

    status: Optional[str] = None
    shipping_address: Optional[str] = Field(None, max_length=500)


class PaymentCreate(BaseModel):
    """Schema for creating a payment for an order."""

    order_id: int = Field(..., gt=0)
    method: str
    provider: Optional[str] = None
    phone_number: Optional[str] = Field(None, max_length=32)


class PaymentAction(BaseModel):
    action: Literal["process", "cancel"]


class PaymentOut(BaseModel):
    id: int
    order_id: int
    user_id: int
    amount: Decimal
    method: str
    provider: Optional[str] = None
    phone_number: Optional[str] = None
    transaction_id: Optional[str] = None
    status: str
    order_status: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProductOut(BaseModel):
    id: int
    name: str
    price: Decimal
    stock: int
    seller_id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)
