# orderflow/services/payment_gateway.py
import uuid
from dataclasses import dataclass
from decimal import Decimal

import requests
from requests import RequestException

from orderflow.domain.errors import UpstreamFailure, UpstreamTimeout
from orderflow.utils.retry import http_retry
from orderflow.utils.settings import (
    PAYMENT_GATEWAY_MODE,
    PAYMENT_GATEWAY_URL,
    PAYMENT_TIMEOUT_SECONDS,
)
from orderflow.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class GatewayResult:
    success: bool
    transaction_reference: str | None = None
    message: str | None = None


class PaymentGateway:
    """Nieprzezroczysty gateway (eSewa / Khalti / karta): sukces albo porazka."""

    def charge(self, order_code: str, amount: Decimal, method: str) -> GatewayResult:
        raise NotImplementedError


class SimulatedPaymentGateway(PaymentGateway):
    """Platnosc od razu udana, referencja generowana lokalnie (tryb dev)."""

    def charge(self, order_code: str, amount: Decimal, method: str) -> GatewayResult:
        reference = f"SIM-{method.upper()}-{uuid.uuid4().hex[:12].upper()}"
        logger.info(f"Simulated {method} payment for {order_code}: {amount} -> {reference}")
        return GatewayResult(success=True, transaction_reference=reference)


class HttpPaymentGateway(PaymentGateway):
    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = (base_url or PAYMENT_GATEWAY_URL).rstrip("/")
        self.timeout = timeout or PAYMENT_TIMEOUT_SECONDS

    def charge(self, order_code: str, amount: Decimal, method: str) -> GatewayResult:
        try:
            data = self._post_with_retry(
                {"reference": order_code, "amount": str(amount), "method": method}
            )
        except requests.Timeout as e:
            raise UpstreamTimeout("Payment gateway timed out") from e
        except RequestException as e:
            raise UpstreamFailure(f"Payment gateway error: {e}") from e

        if data.get("status") == "success":
            return GatewayResult(success=True, transaction_reference=data.get("transaction_id"))
        return GatewayResult(success=False, message=data.get("message"))

    @http_retry()
    def _post_with_retry(self, payload: dict) -> dict:
        url = f"{self.base_url}/payments"
        logger.info(f"PaymentGateway POST {url} ({payload['method']}, {payload['reference']})")

        resp = requests.post(url, json=payload, timeout=self.timeout)
        #402 = odrzucona platnosc, to wynik a nie blad transportu
        if resp.status_code == 402:
            return resp.json()
        resp.raise_for_status()
        return resp.json()


def build_payment_gateway(mode: str | None = None) -> PaymentGateway:
    mode = mode or PAYMENT_GATEWAY_MODE
    if mode == "http":
        return HttpPaymentGateway()
    return SimulatedPaymentGateway()
