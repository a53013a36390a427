# orderflow/services/pricing_service.py
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List

from orderflow.domain.enums import PaymentMethod
from orderflow.domain.errors import (
    EmptyCart,
    InvalidPaymentMethod,
    ItemUnavailable,
    RestaurantUnavailable,
    ValidationError,
)
from orderflow.domain.transitions import normalize_id
from orderflow.services.catalog_client import CatalogClient
from orderflow.utils.logging import get_logger

logger = get_logger(__name__)


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("0.01"))


@dataclass(frozen=True)
class PricedLine:
    menu_item_id: str
    name: str | None
    quantity: int
    unit_price: Decimal
    special_instructions: str | None = None

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class OrderDraft:
    """Wyceniony snapshot zamowienia, jeszcze bez kodu i bez zapisu."""

    customer_id: str
    restaurant_id: str
    lines: List[PricedLine]
    delivery_fee: Decimal
    payment_method: PaymentMethod
    delivery_address: dict | None = None
    special_instructions: str | None = None
    subtotal: Decimal = field(init=False)
    total_amount: Decimal = field(init=False)

    def __post_init__(self):
        subtotal = sum((line.line_total for line in self.lines), Decimal("0.00"))
        object.__setattr__(self, "subtotal", subtotal)
        object.__setattr__(self, "total_amount", subtotal + self.delivery_fee)


class PricingEngine:
    """
    Koszyk -> wyceniony draft. Ceny i oplata za dostawe zawsze z katalogu,
    nigdy od klienta. Jedyny efekt uboczny to odczyt katalogu.
    """

    def __init__(self, catalog: CatalogClient):
        self.catalog = catalog

    def price_cart(
        self,
        restaurant_id,
        customer_id,
        items,
        delivery_address=None,
        payment_method=None,
        special_instructions: str | None = None,
    ) -> OrderDraft:
        if not items:
            raise EmptyCart()

        try:
            method = PaymentMethod(payment_method)
        except ValueError:
            raise InvalidPaymentMethod(f"Unsupported payment method: {payment_method!r}")

        restaurant_id = normalize_id(restaurant_id)
        customer_id = normalize_id(customer_id)
        if customer_id is None:
            raise ValidationError("Customer is required")

        restaurant = self.catalog.fetch_restaurant(restaurant_id) if restaurant_id else None
        if not restaurant or not restaurant.get("is_active", False):
            raise RestaurantUnavailable(f"Restaurant {restaurant_id} is not available")

        lines = []
        for item in items:
            lines.append(self._price_line(restaurant_id, item))

        draft = OrderDraft(
            customer_id=customer_id,
            restaurant_id=restaurant_id,
            lines=lines,
            delivery_fee=to_money(restaurant.get("delivery_fee", 0)),
            payment_method=method,
            delivery_address=delivery_address,
            special_instructions=special_instructions,
        )

        logger.info(
            f"Priced cart for restaurant {restaurant_id}: {len(lines)} lines, "
            f"subtotal {draft.subtotal}, fee {draft.delivery_fee}, total {draft.total_amount}"
        )
        return draft

    def _price_line(self, restaurant_id: str, item: dict) -> PricedLine:
        menu_item_id = normalize_id(item.get("menu_item_id"))
        quantity = item.get("quantity")

        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
            raise ValidationError(f"Quantity for item {menu_item_id} must be at least 1")

        menu_item = self.catalog.fetch_menu_item(menu_item_id) if menu_item_id else None
        if (
            not menu_item
            or not menu_item.get("is_available", False)
            or normalize_id(menu_item.get("restaurant_id")) != restaurant_id
        ):
            raise ItemUnavailable(f"Menu item {menu_item_id} is not available")

        return PricedLine(
            menu_item_id=menu_item_id,
            name=menu_item.get("name"),
            quantity=quantity,
            unit_price=to_money(menu_item["price"]),
            special_instructions=item.get("special_instructions"),
        )
