# orderflow/services/payment_service.py
from sqlalchemy.orm import Session

from orderflow.data.models.order import OrderModel
from orderflow.domain.enums import PaymentMethod, PaymentStatus, Role
from orderflow.domain.errors import (
    ConcurrentUpdate,
    Conflict,
    InvalidPaymentMethod,
    OrderNotFound,
    ValidationError,
)
from orderflow.domain.transitions import Actor, normalize_id
from orderflow.repos.order_repo import OrderRepo
from orderflow.services.notification_service import NotificationService
from orderflow.services.payment_gateway import PaymentGateway, SimulatedPaymentGateway
from orderflow.utils.logging import get_logger

logger = get_logger(__name__)


class PaymentService:
    """
    Rekoncyliacja platnosci. Zmienia tylko payment_method / payment_status /
    transaction_reference, status dostawy nigdy nie jest tu dotykany
    (nieudana platnosc nie anuluje zamowienia).
    """

    def __init__(
        self,
        db: Session,
        gateway: PaymentGateway | None = None,
        notifier: NotificationService | None = None,
    ):
        self.repo = OrderRepo(db)
        self.gateway = gateway or SimulatedPaymentGateway()
        self.notifier = notifier or NotificationService()

    def initiate(self, order_id: int, actor: Actor, payment_method) -> dict:
        try:
            method = PaymentMethod(payment_method)
        except ValueError:
            raise InvalidPaymentMethod(f"Unsupported payment method: {payment_method!r}")

        order = self.repo.get_order(order_id)

        #cudze zamowienie wyglada jak nieistniejace
        if (
            not order
            or actor.role is not Role.CUSTOMER
            or normalize_id(order.customer_id) != actor.id
        ):
            raise OrderNotFound(f"Order {order_id} not found")

        previous = self._payable_status(order)

        if not method.uses_gateway:
            values = {"payment_method": method.value, "payment_status": PaymentStatus.PENDING.value}
            message = "Order placed with COD. Payment will be collected on delivery."
        else:
            # swiezy odczyt tuz przed obciazeniem, nie placimy na nieaktualnym stanie
            previous = self._payable_status(self.repo.reload(order))
            result = self.gateway.charge(order.order_code, order.total_amount, method.value)
            if result.success:
                values = {
                    "payment_method": method.value,
                    "payment_status": PaymentStatus.PAID.value,
                    "transaction_reference": result.transaction_reference,
                }
                message = f"Payment with {method.value} completed successfully."
            else:
                values = {"payment_method": method.value, "payment_status": PaymentStatus.FAILED.value}
                message = result.message or f"Payment with {method.value} failed."

        self._write(order, values, expected={"payment_status": previous.value})

        logger.info(
            f"Payment for order {order.order_code}: {method.value} -> {order.payment_status}"
            + (f" ({order.transaction_reference})" if order.transaction_reference else "")
        )

        self.notifier.order_updated(order)
        return self._payment_state(order, message)

    def confirm_callback(self, order_id: int, transaction_reference: str) -> dict:
        """
        Callback gatewaya. Idempotentny: powtorzenie z ta sama referencja
        nic nie zmienia i nie wysyla powiadomien drugi raz.
        """
        reference = normalize_id(transaction_reference)
        if reference is None:
            raise ValidationError("Transaction reference is required")

        order = self.repo.get_order(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found")

        if self._already_confirmed(order, reference):
            logger.info(f"Duplicate payment callback for order {order.order_code} ({reference})")
            return self._payment_state(order, "Payment verified.")

        previous = order.payment_status
        rowcount = self.repo.update_order_if(
            order,
            {"payment_status": PaymentStatus.PAID.value, "transaction_reference": reference},
            expected={"payment_status": previous},
        )

        if rowcount == 0:
            #rownolegly callback mogl wygrac z ta sama referencja
            self.repo.db.expire(order)
            if self._already_confirmed(order, reference):
                return self._payment_state(order, "Payment verified.")
            raise ConcurrentUpdate("Payment state changed concurrently, retry the callback")

        logger.info(f"Payment confirmed for order {order.order_code} ({reference})")

        self.notifier.payment_confirmed(order)
        return self._payment_state(order, "Payment verified.")

    @staticmethod
    def _already_confirmed(order: OrderModel, reference: str) -> bool:
        if order.payment_status != PaymentStatus.PAID.value:
            return False
        if order.transaction_reference == reference:
            return True
        raise Conflict(
            f"Order {order.order_code} is already paid with a different transaction reference"
        )

    @staticmethod
    def _payable_status(order: OrderModel) -> PaymentStatus:
        previous = PaymentStatus(order.payment_status)
        if previous not in (PaymentStatus.PENDING, PaymentStatus.FAILED):
            raise Conflict(f"Payment is already {previous.value}")
        return previous

    def _write(self, order: OrderModel, values: dict, expected: dict) -> None:
        if self.repo.update_order_if(order, values, expected) == 0:
            reference = values.get("transaction_reference")
            if reference:
                # obciazenie w gatewayu przeszlo, ale nie zostalo zapisane
                logger.error(
                    f"Unrecorded charge {reference} for order {order.order_code} "
                    f"({values['payment_method']}): payment state changed concurrently"
                )
                raise ConcurrentUpdate(
                    f"Payment state changed concurrently, charge {reference} was not recorded"
                )
            logger.error(f"Payment update for order {order.id} lost a race: {values}")
            raise ConcurrentUpdate("Payment state changed concurrently")

    @staticmethod
    def _payment_state(order: OrderModel, message: str) -> dict:
        return {
            "order_id": order.id,
            "payment_method": order.payment_method,
            "payment_status": order.payment_status,
            "transaction_reference": order.transaction_reference,
            "message": message,
        }
