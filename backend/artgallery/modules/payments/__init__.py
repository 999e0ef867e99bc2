"""
Payments Module - Payment gateway integrations.

Features:
- Stripe payment intents, checkout sessions and refunds
- Razorpay checkout orders and signature verification
"""

from artgallery.modules.payments.razorpay import RazorpayClient, get_razorpay_client
from artgallery.modules.payments.stripe_config import StripeConfig, get_stripe_config
from artgallery.modules.payments.stripe_service import (
    StripePaymentService,
    get_stripe_service,
)

__all__ = [
    "RazorpayClient",
    "StripeConfig",
    "StripePaymentService",
    "get_razorpay_client",
    "get_stripe_config",
    "get_stripe_service",
]
