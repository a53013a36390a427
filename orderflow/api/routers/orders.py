# orderflow/api/routers/orders.py
from fastapi import APIRouter, Depends, Query

from orderflow.api.deps import get_actor, get_order_service
from orderflow.domain.enums import OrderStatus
from orderflow.domain.schemas import (
    CancelIn,
    OrderCreate,
    OrderOut,
    OrderPage,
    RatingIn,
    StatusUpdateIn,
)
from orderflow.domain.transitions import Actor
from orderflow.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("/", response_model=OrderOut, status_code=201)
def create_order(
    payload: OrderCreate,
    actor: Actor = Depends(get_actor),
    svc: OrderService = Depends(get_order_service),
):
    """
    Tworzy zamowienie z koszyka, ceny z katalogu.
    Powiadamia restauracje (restaurant:{id}).
    """
    order = svc.create_order(
        customer_id=actor.id,
        restaurant_id=payload.restaurant_id,
        items=[item.model_dump() for item in payload.items],
        delivery_address=payload.delivery_address.model_dump(mode="json"),
        payment_method=payload.payment_method,
        special_instructions=payload.special_instructions,
    )
    return OrderOut.model_validate(order)


@router.get("/my-orders", response_model=OrderPage)
def list_my_orders(
    status: OrderStatus | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    actor: Actor = Depends(get_actor),
    svc: OrderService = Depends(get_order_service),
):
    return svc.list_customer_orders(actor, status=status, page=page, limit=limit)


@router.get("/restaurant/{restaurant_id}", response_model=OrderPage)
def list_restaurant_orders(
    restaurant_id: str,
    status: OrderStatus | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    actor: Actor = Depends(get_actor),
    svc: OrderService = Depends(get_order_service),
):
    return svc.list_restaurant_orders(actor, restaurant_id, status=status, page=page, limit=limit)


@router.get("/deliveries", response_model=OrderPage)
def list_my_deliveries(
    status: OrderStatus | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    actor: Actor = Depends(get_actor),
    svc: OrderService = Depends(get_order_service),
):
    return svc.list_partner_orders(actor, status=status, page=page, limit=limit)


@router.get("/available", response_model=OrderPage)
def list_available_orders(
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    actor: Actor = Depends(get_actor),
    svc: OrderService = Depends(get_order_service),
):
    return svc.list_available_orders(actor, page=page, limit=limit)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    actor: Actor = Depends(get_actor),
    svc: OrderService = Depends(get_order_service),
):
    return OrderOut.model_validate(svc.get_order(order_id, actor))


@router.patch("/{order_id}/status", response_model=OrderOut)
def update_status(
    order_id: int,
    payload: StatusUpdateIn,
    actor: Actor = Depends(get_actor),
    svc: OrderService = Depends(get_order_service),
):
    order = svc.update_status(
        order_id, actor, payload.status, cancellation_reason=payload.cancellation_reason
    )
    return OrderOut.model_validate(order)


@router.post("/{order_id}/cancel", response_model=OrderOut)
def cancel_order(
    order_id: int,
    payload: CancelIn,
    actor: Actor = Depends(get_actor),
    svc: OrderService = Depends(get_order_service),
):
    return OrderOut.model_validate(svc.cancel_order(order_id, actor, payload.reason))


@router.post("/{order_id}/rating", response_model=OrderOut)
def rate_order(
    order_id: int,
    payload: RatingIn,
    actor: Actor = Depends(get_actor),
    svc: OrderService = Depends(get_order_service),
):
    return OrderOut.model_validate(svc.rate_order(order_id, actor, payload.rating, payload.review))
