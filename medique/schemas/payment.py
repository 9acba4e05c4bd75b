from pydantic import BaseModel
from typing import Dict, Any

from .appointment import AppointmentResponse

class CreateOrderRequest(BaseModel):
    appointment_id: int

class VerifyPaymentRequest(BaseModel):
    order_id: str

class OrderResponse(BaseModel):
    success: bool = True
    order: Dict[str, Any]

class PaymentVerificationResponse(BaseModel):
    success: bool = True
    message: str
    appointment: AppointmentResponse
