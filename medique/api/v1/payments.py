from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...api.deps import get_current_user, get_notifier, get_payment_gateway
from ...services.payment_service import PaymentService
from ...schemas.appointment import AppointmentResponse
from ...schemas.payment import (
    CreateOrderRequest, VerifyPaymentRequest, OrderResponse, PaymentVerificationResponse
)
from ...models import User

router = APIRouter(prefix="/payments", tags=["Payments"])

@router.post("/orders", response_model=OrderResponse)
async def create_order(
    order_request: CreateOrderRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway = Depends(get_payment_gateway)
):
    """Create a gateway order for an appointment's fee."""
    payment_service = PaymentService(db, gateway)
    order = await payment_service.create_order(order_request.appointment_id)
    return OrderResponse(order=order)

@router.post("/verify", response_model=PaymentVerificationResponse)
async def verify_payment(
    verification: VerifyPaymentRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway = Depends(get_payment_gateway),
    notifier = Depends(get_notifier)
):
    """Confirm payment of an order and mark its appointment as paid."""
    payment_service = PaymentService(db, gateway, notifier)
    appointment = await payment_service.verify_payment(verification.order_id)
    return PaymentVerificationResponse(
        message="Payment successful",
        appointment=AppointmentResponse.model_validate(appointment)
    )
