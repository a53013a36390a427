# orderflow/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List
from decimal import Decimal
from datetime import datetime

from orderflow.domain.enums import AddressType, OrderStatus, PaymentMethod, PaymentStatus


class Coordinates(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class DeliveryAddress(BaseModel):
    """Schema adresu dostawy (snapshot zapisywany w zamowieniu)."""

    type: AddressType = AddressType.HOME
    street: str = Field(..., min_length=1, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    area: str | None = Field(None, max_length=100)
    coordinates: Coordinates | None = None


class OrderItemIn(BaseModel):
    """Schema pozycji koszyka, cena nie jest przyjmowana od klienta."""

    menu_item_id: str = Field(..., min_length=1, description="ID pozycji menu")
    quantity: int = Field(..., gt=0, description="Ilosc (musi byc > 0)")
    special_instructions: str | None = Field(None, max_length=500)


class OrderCreate(BaseModel):
    """Schema dla tworzenia zamowienia z koszyka."""

    restaurant_id: str = Field(..., min_length=1)
    items: List[OrderItemIn]
    delivery_address: DeliveryAddress
    payment_method: str = Field(..., min_length=1)
    special_instructions: str | None = Field(None, max_length=500)


class StatusUpdateIn(BaseModel):
    status: OrderStatus
    cancellation_reason: str | None = Field(None, max_length=500)


class CancelIn(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class RatingIn(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    review: str | None = Field(None, max_length=1000)


class PaymentInitiateIn(BaseModel):
    order_id: int = Field(..., gt=0)
    payment_method: str = Field(..., min_length=1)


class PaymentCallbackIn(BaseModel):
    order_id: int = Field(..., gt=0)
    transaction_reference: str = Field(..., min_length=1, max_length=128)


class OrderItemOut(BaseModel):
    menu_item_id: str
    name: str | None = None
    quantity: int
    unit_price: Decimal
    special_instructions: str | None = None

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    """Schema dla zamowienia (response i payload eventow real-time)."""

    id: int
    order_code: str
    customer_id: str
    restaurant_id: str
    items: List[OrderItemOut]
    delivery_fee: Decimal
    total_amount: Decimal
    delivery_address: DeliveryAddress | None = None
    special_instructions: str | None = None
    status: OrderStatus
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    transaction_reference: str | None = None
    delivery_partner_id: str | None = None
    estimated_delivery_at: datetime | None = None
    actual_delivered_at: datetime | None = None
    cancellation_reason: str | None = None
    rating: int | None = None
    review: str | None = None
    created_at: datetime
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class OrderPage(BaseModel):
    items: List[OrderOut]
    total: int
    page: int
    limit: int
    total_pages: int


class PaymentOut(BaseModel):
    order_id: int
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    transaction_reference: str | None = None
    message: str
