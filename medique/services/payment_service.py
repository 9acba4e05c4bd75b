from sqlalchemy.orm import Session
import logging

from ..models import Appointment, Doctor, User
from ..core.config import settings
from ..core.exceptions import BadRequestError, ConflictError, ExternalServiceError, NotFoundError
from ..clients.razorpay_client import RazorpayError
from . import notification_service

logger = logging.getLogger(__name__)

PAID_STATUS = "paid"


def to_minor_units(amount: float) -> int:
    """Convert a fee in major units (rupees) to the gateway's minor units (paise)."""
    return int(round(amount * 100))


class PaymentService:
    """Bridges appointments and the payment gateway.

    ``gateway`` is any object exposing ``create_order(amount, currency,
    receipt)`` and ``fetch_order(order_id)`` coroutines, normally an open
    RazorpayClient.
    """

    def __init__(self, db: Session, gateway, notifier=None):
        self.db = db
        self.gateway = gateway
        self.notifier = notifier

    async def create_order(self, appointment_id: int) -> dict:
        appointment = self.db.query(Appointment).filter(Appointment.id == appointment_id).first()
        if not appointment:
            raise NotFoundError("Appointment not found")

        if appointment.cancelled:
            raise ConflictError("Appointment cancelled")

        if appointment.payment:
            raise ConflictError("Appointment already paid")

        try:
            order = await self.gateway.create_order(
                amount=to_minor_units(appointment.amount),
                currency=settings.CURRENCY,
                receipt=str(appointment.id),
            )
        except RazorpayError as e:
            logger.error(f"Order creation failed for appointment {appointment_id}: {e}")
            raise ExternalServiceError("Payment gateway error, please try again") from e

        logger.info(f"Order {order.get('id')} created for appointment {appointment_id}")
        return order

    async def verify_payment(self, order_id: str) -> Appointment:
        """Mark the order's appointment as paid if the gateway says so.

        Repeated verification of a paid order succeeds without sending
        another confirmation.
        """
        if not order_id:
            raise BadRequestError("Order id is required")

        try:
            order = await self.gateway.fetch_order(order_id)
        except RazorpayError as e:
            logger.error(f"Fetching order {order_id} failed: {e}")
            raise ExternalServiceError("Payment gateway error, please try again") from e

        if order.get("status") != PAID_STATUS:
            logger.info(f"Order {order_id} not paid (status={order.get('status')})")
            raise BadRequestError("Payment failed")

        receipt = order.get("receipt")
        appointment = None
        if receipt is not None and str(receipt).isdigit():
            appointment = self.db.query(Appointment).filter(Appointment.id == int(receipt)).first()
        if not appointment:
            raise NotFoundError("Appointment not found")

        # Conditional update so that only one of several concurrent
        # verifications flips the flag and sends the confirmation.
        flipped = (
            self.db.query(Appointment)
            .filter(Appointment.id == appointment.id, Appointment.payment == False)
            .update({"payment": True}, synchronize_session=False)
        )
        self.db.commit()
        self.db.refresh(appointment)

        if not flipped:
            logger.info(f"Appointment {appointment.id} already marked as paid")
            return appointment

        logger.info(f"Appointment {appointment.id} paid via order {order_id}")

        user = self.db.query(User).filter(User.id == appointment.user_id).first()
        doctor = self.db.query(Doctor).filter(Doctor.id == appointment.doctor_id).first()
        if self.notifier is not None and user and doctor:
            self.notifier.dispatch(notification_service.payment_confirmed(user, doctor, appointment))

        return appointment
