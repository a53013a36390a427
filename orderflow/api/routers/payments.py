# orderflow/api/routers/payments.py
from fastapi import APIRouter, Depends

from orderflow.api.deps import get_actor, get_payment_service
from orderflow.domain.schemas import PaymentCallbackIn, PaymentInitiateIn, PaymentOut
from orderflow.domain.transitions import Actor
from orderflow.services.payment_service import PaymentService

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/initiate", response_model=PaymentOut)
def initiate_payment(
    payload: PaymentInitiateIn,
    actor: Actor = Depends(get_actor),
    svc: PaymentService = Depends(get_payment_service),
):
    return svc.initiate(payload.order_id, actor, payload.payment_method)


@router.post("/callback", response_model=PaymentOut)
def payment_callback(
    payload: PaymentCallbackIn,
    svc: PaymentService = Depends(get_payment_service),
):
    """
    Wolane przez gateway platnosci po udanej platnosci.
    Powtorzony callback z ta sama referencja zwraca ten sam wynik.
    """
    return svc.confirm_callback(payload.order_id, payload.transaction_reference)
