# orderflow/api/deps.py
from functools import lru_cache

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from orderflow.data.database import get_db
from orderflow.domain.transitions import Actor
from orderflow.services.catalog_client import CatalogClient
from orderflow.services.notification_service import NotificationPublisher, NotificationService, build_publisher
from orderflow.services.order_service import OrderService
from orderflow.services.payment_gateway import PaymentGateway, build_payment_gateway
from orderflow.services.payment_service import PaymentService


def get_actor(
    x_user_id: str = Header(...),
    x_user_role: str = Header(...),
    x_restaurant_ids: str = Header(""),
) -> Actor:
    """Tozsamosc przekazana przez zewnetrzny gateway autoryzacji."""
    return Actor.build(x_user_id, x_user_role, x_restaurant_ids.split(","))


def get_catalog_client() -> CatalogClient:
    return CatalogClient()


@lru_cache
def get_publisher() -> NotificationPublisher:
    return build_publisher()


def get_payment_gateway() -> PaymentGateway:
    return build_payment_gateway()


def get_order_service(
    db: Session = Depends(get_db),
    catalog: CatalogClient = Depends(get_catalog_client),
    publisher: NotificationPublisher = Depends(get_publisher),
) -> OrderService:
    return OrderService(db=db, catalog=catalog, notifier=NotificationService(publisher))


def get_payment_service(
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    publisher: NotificationPublisher = Depends(get_publisher),
) -> PaymentService:
    return PaymentService(db=db, gateway=gateway, notifier=NotificationService(publisher))
