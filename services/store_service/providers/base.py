"""Shared error type for payment provider clients."""

from typing import Optional


class PaymentProviderError(Exception):
    """Base exception for payment provider API errors."""

    provider = "payment"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_data: Optional[dict] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.response_data = response_data or {}
        super().__init__(message)
