from decimal import Decimal

import pytest
import requests

from orderflow.domain.errors import UpstreamFailure, UpstreamTimeout
from orderflow.services import catalog_client, payment_gateway
from orderflow.services.catalog_client import CatalogClient
from orderflow.services.payment_gateway import (
    HttpPaymentGateway,
    SimulatedPaymentGateway,
    build_payment_gateway,
)


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload or {}

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


@pytest.fixture
def no_sleep(monkeypatch):
    # tenacity czeka miedzy probami przez time.sleep
    monkeypatch.setattr("tenacity.nap.time.sleep", lambda seconds: None)


class TestCatalogClient:
    def test_fetch_restaurant(self, monkeypatch):
        seen = {}

        def fake_get(url, timeout):
            seen.update(url=url, timeout=timeout)
            return FakeResponse(payload={"id": "R1", "delivery_fee": 60, "is_active": True})

        monkeypatch.setattr(catalog_client.requests, "get", fake_get)

        client = CatalogClient("http://catalog/", timeout=1.5)
        assert client.fetch_restaurant("R1")["delivery_fee"] == 60
        assert seen == {"url": "http://catalog/restaurants/R1", "timeout": 1.5}

    def test_missing_item_is_none(self, monkeypatch):
        monkeypatch.setattr(catalog_client.requests, "get", lambda url, timeout: FakeResponse(404))
        assert CatalogClient("http://catalog").fetch_menu_item("M404") is None

    def test_timeout_is_retried_then_surfaced(self, monkeypatch, no_sleep):
        calls = []

        def fake_get(url, timeout):
            calls.append(url)
            raise requests.Timeout("read timed out")

        monkeypatch.setattr(catalog_client.requests, "get", fake_get)

        with pytest.raises(UpstreamTimeout):
            CatalogClient("http://catalog").fetch_menu_item("M1")
        assert len(calls) == 3

    def test_timeout_recovers_on_retry(self, monkeypatch, no_sleep):
        responses = [requests.ConnectionError("reset"), FakeResponse(payload={"id": "M1"})]

        def fake_get(url, timeout):
            result = responses.pop(0)
            if isinstance(result, Exception):
                raise result
            return result

        monkeypatch.setattr(catalog_client.requests, "get", fake_get)
        assert CatalogClient("http://catalog").fetch_menu_item("M1") == {"id": "M1"}

    def test_server_error_is_not_retried(self, monkeypatch):
        calls = []

        def fake_get(url, timeout):
            calls.append(url)
            return FakeResponse(500)

        monkeypatch.setattr(catalog_client.requests, "get", fake_get)

        with pytest.raises(UpstreamFailure):
            CatalogClient("http://catalog").fetch_restaurant("R1")
        assert len(calls) == 1


class TestHttpPaymentGateway:
    def test_success(self, monkeypatch):
        sent = {}

        def fake_post(url, json, timeout):
            sent.update(url=url, json=json)
            return FakeResponse(payload={"status": "success", "transaction_id": "KH-1"})

        monkeypatch.setattr(payment_gateway.requests, "post", fake_post)

        result = HttpPaymentGateway("http://pay").charge("ORD-1", Decimal("460.00"), "khalti")

        assert result.success
        assert result.transaction_reference == "KH-1"
        assert sent == {
            "url": "http://pay/payments",
            "json": {"reference": "ORD-1", "amount": "460.00", "method": "khalti"},
        }

    def test_declined(self, monkeypatch):
        monkeypatch.setattr(
            payment_gateway.requests,
            "post",
            lambda url, json, timeout: FakeResponse(402, {"status": "failed", "message": "Declined"}),
        )

        result = HttpPaymentGateway("http://pay").charge("ORD-1", Decimal("10"), "card")

        assert not result.success
        assert result.message == "Declined"

    def test_timeout(self, monkeypatch, no_sleep):
        def fake_post(url, json, timeout):
            raise requests.Timeout()

        monkeypatch.setattr(payment_gateway.requests, "post", fake_post)

        with pytest.raises(UpstreamTimeout):
            HttpPaymentGateway("http://pay").charge("ORD-1", Decimal("10"), "card")

    def test_build_payment_gateway(self):
        assert isinstance(build_payment_gateway("http"), HttpPaymentGateway)
        assert isinstance(build_payment_gateway("simulated"), SimulatedPaymentGateway)


class TestCatalogServiceMock:
    """Mock katalogu dla dev musi spelniac kontrakt CatalogClient."""

    @pytest.fixture
    def catalog_http(self, monkeypatch):
        from fastapi.testclient import TestClient
        from orderflow.catalog_service.main import app

        mock = TestClient(app)
        monkeypatch.setattr(
            catalog_client.requests,
            "get",
            lambda url, timeout: mock.get(url.replace("http://catalog", "")),
        )
        return CatalogClient("http://catalog")

    def test_restaurant_and_item_lookup(self, catalog_http):
        assert catalog_http.fetch_restaurant("R1")["delivery_fee"] == 60
        assert catalog_http.fetch_menu_item("M1")["price"] == 200
        assert catalog_http.fetch_menu_item("M999") is None

    def test_prices_a_cart_end_to_end(self, catalog_http):
        from orderflow.services.pricing_service import PricingEngine

        draft = PricingEngine(catalog_http).price_cart(
            "R1", "C1", [{"menu_item_id": "M1", "quantity": 2}], payment_method="cod"
        )
        assert draft.total_amount == Decimal("460.00")
