# orderflow/services/order_service.py
import math
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from orderflow.data.models.order import OrderModel
from orderflow.data.models.order_item import OrderItemModel
from orderflow.domain.enums import OrderStatus, PaymentStatus, Role
from orderflow.domain.errors import (
    ConcurrentUpdate,
    Conflict,
    Forbidden,
    IdGenerationExhausted,
    OrderNotFound,
    ValidationError,
)
from orderflow.domain.schemas import OrderOut
from orderflow.domain.transitions import Actor, TransitionPolicy, normalize_id
from orderflow.repos.order_repo import DuplicateOrderCode, OrderRepo
from orderflow.services.catalog_client import CatalogClient
from orderflow.services.notification_service import NotificationService
from orderflow.services.order_codes import OrderCodeGenerator
from orderflow.services.pricing_service import OrderDraft, PricingEngine
from orderflow.utils.settings import (
    DEFAULT_PAGE_SIZE,
    ESTIMATED_DELIVERY_MINUTES,
    MAX_PAGE_SIZE,
    ORDER_CODE_MAX_ATTEMPTS,
)
from orderflow.utils.logging import get_logger

logger = get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def build_order(draft: OrderDraft, order_code: str) -> OrderModel:
    """Fabryka: wyceniony draft + kod -> kompletny rekord zamowienia przed zapisem."""
    order = OrderModel(
        order_code=order_code,
        customer_id=draft.customer_id,
        restaurant_id=draft.restaurant_id,
        delivery_fee=draft.delivery_fee,
        total_amount=draft.total_amount,
        delivery_address=draft.delivery_address,
        special_instructions=draft.special_instructions,
        status=OrderStatus.PENDING.value,
        payment_method=draft.payment_method.value,
        payment_status=PaymentStatus.PENDING.value,
        version=1,
    )
    order.items = [
        OrderItemModel(
            position=position,
            menu_item_id=line.menu_item_id,
            name=line.name,
            quantity=line.quantity,
            unit_price=line.unit_price,
            special_instructions=line.special_instructions,
        )
        for position, line in enumerate(draft.lines)
    ]
    return order


class OrderService:
    """
    Cykl zycia zamowienia.

    commands: create_order, update_status, cancel_order, rate_order
    queries: get_order, list_* (tylko odczyt)

    Kazda zmiana stanu to read-check-write z warunkiem na odczytane kolumny,
    zadnych lockow w procesie.
    """

    def __init__(
        self,
        db: Session,
        catalog: CatalogClient,
        notifier: NotificationService | None = None,
        code_generator: OrderCodeGenerator | None = None,
        policy: TransitionPolicy | None = None,
        clock=utc_now,
        max_code_attempts: int = ORDER_CODE_MAX_ATTEMPTS,
    ):
        self.repo = OrderRepo(db)
        self.pricing = PricingEngine(catalog)
        self.notifier = notifier or NotificationService()
        self.code_generator = code_generator or OrderCodeGenerator()
        self.policy = policy or TransitionPolicy()
        self.clock = clock
        self.max_code_attempts = max_code_attempts

    #commands
    def create_order(
        self,
        customer_id,
        restaurant_id,
        items,
        delivery_address=None,
        payment_method=None,
        special_instructions: str | None = None,
    ) -> OrderModel:
        draft = self.pricing.price_cart(
            restaurant_id=restaurant_id,
            customer_id=customer_id,
            items=items,
            delivery_address=delivery_address,
            payment_method=payment_method,
            special_instructions=special_instructions,
        )

        order = self._persist_draft(draft)
        logger.info(
            f"Order {order.order_code} (id {order.id}) created for customer {order.customer_id}, "
            f"restaurant {order.restaurant_id}, total {order.total_amount}"
        )

        self.notifier.order_created(order)
        return order

    def _persist_draft(self, draft: OrderDraft) -> OrderModel:
        for attempt in range(1, self.max_code_attempts + 1):
            code = self.code_generator.generate()
            try:
                return self.repo.create_order(build_order(draft, code))
            except DuplicateOrderCode:
                logger.warning(
                    f"Order code collision on {code} "
                    f"(attempt {attempt}/{self.max_code_attempts})"
                )

        raise IdGenerationExhausted(
            f"No unique order code after {self.max_code_attempts} attempts"
        )

    def update_status(
        self,
        order_id: int,
        actor: Actor,
        status,
        cancellation_reason: str | None = None,
    ) -> OrderModel:
        try:
            target = OrderStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown status: {status!r}")

        order = self._load(order_id)
        current = OrderStatus(order.status)

        rule = self.policy.check(actor, order, target)

        now = self.clock()
        values = {"status": target.value}
        expected = {"status": current.value}

        if rule.sets_estimate:
            values["estimated_delivery_at"] = now + timedelta(minutes=ESTIMATED_DELIVERY_MINUTES)

        if rule.sets_cancellation:
            reason = (cancellation_reason or "").strip()
            if not reason:
                raise ValidationError("Cancellation reason is required")
            values["cancellation_reason"] = reason

        if rule.claims_partner:
            expected["delivery_partner_id"] = order.delivery_partner_id
            if normalize_id(order.delivery_partner_id) is None:
                values["delivery_partner_id"] = actor.id

        if rule.sets_delivered_at:
            values["actual_delivered_at"] = now

        self._write(order, values, expected)

        logger.info(
            f"Order {order.order_code}: {current.value} -> {target.value} "
            f"by {actor.role.value} {actor.id}"
        )

        self.notifier.order_updated(order)
        return order

    def cancel_order(self, order_id: int, actor: Actor, reason: str) -> OrderModel:
        return self.update_status(order_id, actor, OrderStatus.CANCELLED, cancellation_reason=reason)

    def rate_order(self, order_id: int, actor: Actor, rating: int, review: str | None = None) -> OrderModel:
        if not isinstance(rating, int) or not 1 <= rating <= 5:
            raise ValidationError("Rating must be between 1 and 5")

        order = self._load(order_id)

        if actor.role is not Role.CUSTOMER or normalize_id(order.customer_id) != actor.id:
            raise Forbidden("Only the customer who placed the order can rate it")

        if OrderStatus(order.status) is not OrderStatus.DELIVERED:
            raise Conflict("Only delivered orders can be rated")

        if order.rating is not None:
            raise Conflict("Order has already been rated")

        self._write(
            order,
            {"rating": rating, "review": review},
            expected={"status": OrderStatus.DELIVERED.value, "rating": None},
        )
        logger.info(f"Order {order.order_code} rated {rating} by customer {actor.id}")

        self.notifier.order_updated(order)
        return order

    def _write(self, order: OrderModel, values: dict, expected: dict) -> None:
        rowcount = self.repo.update_order_if(order, values, expected)

        # Optimistic locking: 0 wierszy = rekord zmieniony przez inny request
        if rowcount == 0:
            logger.warning(f"Concurrent update on order {order.id}, write rejected")
            raise ConcurrentUpdate(
                "Order was modified by another request, reload and try again"
            )

    #query - odczyt
    def get_order(self, order_id: int, actor: Actor) -> OrderModel:
        order = self._load(order_id)
        if not self.policy.can_view(actor, order):
            raise Forbidden("Not authorized to view this order")
        return order

    def list_customer_orders(self, actor: Actor, status=None, page: int = 1, limit: int | None = None) -> dict:
        return self._page(customer_id=actor.id, status=status, page=page, limit=limit)

    def list_restaurant_orders(
        self, actor: Actor, restaurant_id, status=None, page: int = 1, limit: int | None = None
    ) -> dict:
        if actor.role is not Role.VENDOR:
            raise Forbidden("Only vendors can list restaurant orders")
        if not actor.owns_restaurant(restaurant_id):
            raise Forbidden("Not authorized to view orders of this restaurant")

        return self._page(
            restaurant_id=normalize_id(restaurant_id), status=status, page=page, limit=limit
        )

    def list_partner_orders(self, actor: Actor, status=None, page: int = 1, limit: int | None = None) -> dict:
        if actor.role is not Role.DELIVERY_PARTNER:
            raise Forbidden("Only delivery partners can list deliveries")
        return self._page(delivery_partner_id=actor.id, status=status, page=page, limit=limit)

    def list_available_orders(self, actor: Actor, page: int = 1, limit: int | None = None) -> dict:
        """Gotowe zamowienia bez przypisanego dostawcy (do przejecia)."""
        if actor.role is not Role.DELIVERY_PARTNER:
            raise Forbidden("Only delivery partners can list available orders")
        return self._page(unassigned=True, status=OrderStatus.READY, page=page, limit=limit)

    def _page(self, status=None, page: int = 1, limit: int | None = None, **filters) -> dict:
        if status is not None:
            try:
                status = OrderStatus(status).value
            except ValueError:
                raise ValidationError(f"Unknown status: {status!r}")

        page = max(page or 1, 1)
        limit = min(max(limit or DEFAULT_PAGE_SIZE, 1), MAX_PAGE_SIZE)

        orders, total = self.repo.list_orders(
            status=status, offset=(page - 1) * limit, limit=limit, **filters
        )

        return {
            "items": [OrderOut.model_validate(o) for o in orders],
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": math.ceil(total / limit) if total else 0,
        }

    def _load(self, order_id: int) -> OrderModel:
        order = self.repo.get_order(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found")
        return order
