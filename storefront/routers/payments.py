# storefront/routers/payments.py
from fastapi import APIRouter, Depends

from storefront.deps import get_payment_service
from storefront.schemas.payment import PaymentCallback, PaymentResult
from storefront.services.payment_service import PaymentService

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("/callback", response_model=PaymentResult | None)
def payment_callback(
    payload: PaymentCallback,
    service: PaymentService = Depends(get_payment_service),
):
    """
    Gateway outcome.

      success   -> checkout + payment record, returns order and payment

      cancelled -> nothing happens, returns null
    """
    return service.handle_callback(payload)
