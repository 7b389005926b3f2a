"""Clients for the external payment providers (VNPay, PayPal, VietQR)."""

from services.store_service.providers.base import PaymentProviderError
from services.store_service.providers.paypal import PayPalClient, PayPalError
from services.store_service.providers.vietqr import VietQRClient, VietQRError
from services.store_service.providers.vnpay import VNPayClient, VNPayError

__all__ = [
    "PayPalClient",
    "PayPalError",
    "PaymentProviderError",
    "VNPayClient",
    "VNPayError",
    "VietQRClient",
    "VietQRError",
]
