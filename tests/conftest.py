import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("NOTIFICATION_BACKEND", "noop")
os.environ.setdefault("PAYMENT_GATEWAY_MODE", "simulated")

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from orderflow.api import deps
from orderflow.data.database import Base, get_db
from orderflow.data.models import OrderModel, OrderItemModel  # noqa: F401
from orderflow.domain.transitions import Actor
from orderflow.main import app
from orderflow.services.notification_service import InMemoryPublisher, NotificationService
from orderflow.services.order_service import OrderService
from orderflow.services.payment_gateway import GatewayResult, PaymentGateway
from orderflow.services.payment_service import PaymentService

FIXED_NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)

ADDRESS = {"type": "home", "street": "Lazimpat Road 12", "city": "Kathmandu", "area": "Lazimpat"}


class FakeCatalog:
    """Katalog w pamieci, ten sam kontrakt co CatalogClient."""

    def __init__(self):
        self.restaurants = {
            "R1": {"id": "R1", "vendor_id": "V1", "delivery_fee": 60, "is_active": True},
            "R2": {"id": "R2", "vendor_id": "V2", "delivery_fee": 50, "is_active": True},
            "R3": {"id": "R3", "vendor_id": "V3", "delivery_fee": 40, "is_active": False},
        }
        self.menu_items = {
            "M1": {"id": "M1", "restaurant_id": "R1", "name": "Dal Bhat Set", "price": 200, "is_available": True},
            "M2": {"id": "M2", "restaurant_id": "R1", "name": "Thakali Khana", "price": "349.50", "is_available": True},
            "M3": {"id": "M3", "restaurant_id": "R2", "name": "Buff Momo", "price": 150, "is_available": True},
            "M4": {"id": "M4", "restaurant_id": "R1", "name": "Sel Roti", "price": 80, "is_available": False},
        }
        self.calls = []

    def fetch_restaurant(self, restaurant_id):
        self.calls.append(("restaurant", restaurant_id))
        return self.restaurants.get(restaurant_id)

    def fetch_menu_item(self, menu_item_id):
        self.calls.append(("menu_item", menu_item_id))
        return self.menu_items.get(menu_item_id)


class FakeGateway(PaymentGateway):
    def __init__(self, success: bool = True, reference: str = "TXN-001"):
        self.success = success
        self.reference = reference
        self.charges = []

    def charge(self, order_code, amount, method):
        self.charges.append((order_code, Decimal(amount), method))
        if self.success:
            return GatewayResult(success=True, transaction_reference=self.reference)
        return GatewayResult(success=False, message="Insufficient balance")


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def catalog():
    return FakeCatalog()


@pytest.fixture
def publisher():
    return InMemoryPublisher()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def order_service(db, catalog, publisher):
    return OrderService(
        db=db,
        catalog=catalog,
        notifier=NotificationService(publisher),
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def payment_service(db, gateway, publisher):
    return PaymentService(db=db, gateway=gateway, notifier=NotificationService(publisher))


@pytest.fixture
def customer():
    return Actor.build("C1", "customer")


@pytest.fixture
def other_customer():
    return Actor.build("C2", "customer")


@pytest.fixture
def vendor():
    return Actor.build("V1", "vendor", ["R1"])


@pytest.fixture
def other_vendor():
    return Actor.build("V2", "vendor", ["R2"])


@pytest.fixture
def partner():
    return Actor.build("D1", "delivery_partner")


@pytest.fixture
def other_partner():
    return Actor.build("D2", "delivery_partner")


@pytest.fixture
def place_order(order_service, customer):
    """Skladanie zamowienia z domyslnym koszykiem [M1 x2] w R1."""

    def _place(items=None, restaurant_id="R1", actor=None, payment_method="cod"):
        return order_service.create_order(
            customer_id=(actor or customer).id,
            restaurant_id=restaurant_id,
            items=items or [{"menu_item_id": "M1", "quantity": 2}],
            delivery_address=ADDRESS,
            payment_method=payment_method,
        )

    return _place


@pytest.fixture
def advance(order_service, vendor, partner):
    """Przeprowadza zamowienie przez kolejne statusy az do docelowego."""
    path = [
        ("confirmed", vendor),
        ("preparing", vendor),
        ("ready", vendor),
        ("picked_up", partner),
        ("on_the_way", partner),
        ("delivered", partner),
    ]

    def _advance(order, until):
        for status, actor in path:
            order = order_service.update_status(order.id, actor, status)
            if status == until:
                break
        return order

    return _advance


@pytest.fixture
def client(session_factory, catalog, publisher, gateway):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[deps.get_catalog_client] = lambda: catalog
    app.dependency_overrides[deps.get_publisher] = lambda: publisher
    app.dependency_overrides[deps.get_payment_gateway] = lambda: gateway

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
