# orderflow/repos/order_repo.py
from contextlib import contextmanager
from decimal import Decimal

from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from orderflow.data.models.order import OrderModel
from orderflow.domain.errors import OrderError, UpstreamFailure, UpstreamTimeout
from orderflow.utils.logging import get_logger
from orderflow.utils.retry import storage_retry

logger = get_logger(__name__)


class DuplicateOrderCode(Exception):
    """Naruszenie unikalnosci order_code przy insercie."""


class TotalMismatch(OrderError):
    """Order total does not match its line items"""
    code = "total_mismatch"


def ensure_total_consistent(order: OrderModel) -> None:
    expected = order.computed_total()
    if Decimal(order.total_amount) != expected:
        raise TotalMismatch(
            f"Order {order.order_code}: total {order.total_amount} != {expected}"
        )


@contextmanager
def translate_db_errors(db: Session):
    try:
        yield
    except OperationalError as e:
        db.rollback()
        message = str(e).lower()
        logger.error(f"Database error: {e}")
        if "timeout" in message or "canceling statement" in message:
            raise UpstreamTimeout("Order storage timed out") from e
        raise UpstreamFailure("Order storage unavailable") from e


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order: OrderModel) -> OrderModel:
        ensure_total_consistent(order)
        with translate_db_errors(self.db):
            self.db.add(order)
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                if self.code_exists(order.order_code):
                    raise DuplicateOrderCode(order.order_code)
                raise
            self.db.refresh(order)
        return order

    @storage_retry()
    def get_order(self, order_id: int) -> OrderModel | None:
        with translate_db_errors(self.db):
            return self.db.get(OrderModel, order_id)

    @storage_retry()
    def reload(self, order: OrderModel) -> OrderModel:
        with translate_db_errors(self.db):
            self.db.refresh(order)
        return order

    @storage_retry()
    def code_exists(self, order_code: str) -> bool:
        with translate_db_errors(self.db):
            found = self.db.execute(
                select(OrderModel.id).where(OrderModel.order_code == order_code)
            ).first()
        return found is not None

    def update_order_if(self, order: OrderModel, values: dict, expected: dict) -> int:
        """
        Warunkowy zapis: UPDATE ... WHERE id = ? AND <kolumna> = <odczytana wartosc> ...
        np. status = 'pending' dla przejsc, payment_status dla platnosci.
        Zwraca liczbe zmienionych wierszy, 0 = ktos nas wyprzedzil.
        """
        ensure_total_consistent(order)

        conditions = [OrderModel.id == order.id]
        for column, value in expected.items():
            attr = getattr(OrderModel, column)
            conditions.append(attr.is_(None) if value is None else attr == value)

        with translate_db_errors(self.db):
            result = self.db.execute(
                update(OrderModel)
                .where(*conditions)
                .values(**values, version=OrderModel.version + 1)
                .execution_options(synchronize_session=False)
            )

            if result.rowcount == 0:
                self.db.rollback()
                return 0

            self.db.commit()
            self.db.refresh(order)

        return result.rowcount

    @storage_retry()
    def list_orders(
        self,
        *,
        customer_id: str | None = None,
        restaurant_id: str | None = None,
        delivery_partner_id: str | None = None,
        unassigned: bool = False,
        status: str | None = None,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[OrderModel], int]:
        filters = []
        if customer_id is not None:
            filters.append(OrderModel.customer_id == customer_id)
        if restaurant_id is not None:
            filters.append(OrderModel.restaurant_id == restaurant_id)
        if delivery_partner_id is not None:
            filters.append(OrderModel.delivery_partner_id == delivery_partner_id)
        if unassigned:
            filters.append(OrderModel.delivery_partner_id.is_(None))
        if status is not None:
            filters.append(OrderModel.status == status)

        with translate_db_errors(self.db):
            total = self.db.execute(
                select(func.count()).select_from(OrderModel).where(*filters)
            ).scalar_one()

            orders = self.db.execute(
                select(OrderModel)
                .where(*filters)
                .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
                .offset(offset)
                .limit(limit)
            ).scalars().all()

        return list(orders), total
