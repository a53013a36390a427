from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Column, Integer, String, DateTime, Numeric, JSON, Index
from sqlalchemy.orm import relationship

from orderflow.data.database import Base


def _utc_now():
    return datetime.now(timezone.utc)


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    order_code = Column(String(32), nullable=False, unique=True)

    customer_id = Column(String(64), nullable=False)
    restaurant_id = Column(String(64), nullable=False)

    delivery_fee = Column(Numeric(10, 2), nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)
    delivery_address = Column(JSON, nullable=True)
    special_instructions = Column(String(500), nullable=True)

    status = Column(String(20), nullable=False, default="pending")
    payment_method = Column(String(20), nullable=False)
    payment_status = Column(String(20), nullable=False, default="pending")
    transaction_reference = Column(String(128), nullable=True)

    delivery_partner_id = Column(String(64), nullable=True)
    estimated_delivery_at = Column(DateTime(timezone=True), nullable=True)
    actual_delivered_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(String(500), nullable=True)

    rating = Column(Integer, nullable=True)
    review = Column(String(1000), nullable=True)

    #optimistic locking, kazdy zapis podbija wersje
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=_utc_now)

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.position",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_orders_customer_created", "customer_id", "created_at"),
        Index("ix_orders_restaurant_status_created", "restaurant_id", "status", "created_at"),
        Index("ix_orders_partner_status", "delivery_partner_id", "status"),
    )

    def computed_total(self) -> Decimal:
        subtotal = sum((i.unit_price * i.quantity for i in self.items), Decimal("0.00"))
        return subtotal + self.delivery_fee
