"""
Factory for payment gateway clients.
"""
from __future__ import annotations

from typing import Optional

from core.settings import PaymentSettings, payment_settings
from application.ports.payment_gateway import PaymentGateway


def get_payment_gateway(settings: Optional[PaymentSettings] = None) -> PaymentGateway:
    from .razorpay_client import RazorpayClient

    return RazorpayClient(settings or payment_settings)
