from .razorpay_client import (
    RazorpayClient,
    RazorpayError,
    RazorpayAuthError,
    RazorpayConnectionError,
    RazorpayValidationError,
)
from .cloudinary_client import CloudinaryClient

__all__ = [
    "RazorpayClient",
    "RazorpayError",
    "RazorpayAuthError",
    "RazorpayConnectionError",
    "RazorpayValidationError",
    "CloudinaryClient",
]
