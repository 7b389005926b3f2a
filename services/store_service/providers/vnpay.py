"""
VNPay payment URL signing and return verification.

VNPay needs no API call to start a payment: the shop builds a redirect URL
whose query string is signed with HMAC-SHA512. When the customer comes back,
the same signature is recomputed over the returned parameters.
"""

import hashlib
import hmac
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Mapping, Optional
from urllib.parse import quote_plus

from libs.common.config import get_settings
from services.store_service.providers.base import PaymentProviderError

VNPAY_VERSION = "2.1.0"
VNPAY_SUCCESS_CODE = "00"
# VNPay timestamps are in Vietnam local time
VNPAY_TZ = timezone(timedelta(hours=7))

HASH_FIELDS = ("vnp_SecureHash", "vnp_SecureHashType")


class VNPayError(PaymentProviderError):
    provider = "vnpay"


@dataclass
class VNPayReturn:
    """Parsed and verified VNPay return parameters."""

    valid_signature: bool
    order_id: Optional[str]
    response_code: Optional[str]
    transaction_no: Optional[str]
    amount: Optional[Decimal]
    params: dict

    @property
    def success(self) -> bool:
        return self.valid_signature and self.response_code == VNPAY_SUCCESS_CODE


def build_query(params: Mapping[str, object]) -> str:
    """Sorted, URL-encoded query string (spaces as '+') used for signing."""
    return "&".join(
        f"{quote_plus(str(key))}={quote_plus(str(params[key]))}"
        for key in sorted(params)
    )


def sign(params: Mapping[str, object], secret: str) -> str:
    return hmac.new(
        secret.encode("utf-8"), build_query(params).encode("utf-8"), hashlib.sha512
    ).hexdigest()


def format_vnpay_datetime(moment: datetime) -> str:
    return moment.astimezone(VNPAY_TZ).strftime("%Y%m%d%H%M%S")


class VNPayClient:
    """Builds signed VNPay payment URLs and verifies return callbacks."""

    def __init__(
        self,
        tmn_code: Optional[str] = None,
        hash_secret: Optional[str] = None,
        payment_url: Optional[str] = None,
        return_url: Optional[str] = None,
    ):
        settings = get_settings()
        self.tmn_code = tmn_code or settings.VNP_TMNCODE
        self.hash_secret = hash_secret or settings.VNP_HASHSECRET
        self.payment_url = payment_url or settings.VNP_URL
        self.return_url = return_url or settings.VNP_RETURNURL
        if not self.tmn_code or not self.hash_secret:
            raise VNPayError("VNPay is not configured (VNP_TMNCODE/VNP_HASHSECRET)")

    def build_payment_params(
        self,
        *,
        order_id: str,
        amount: Decimal,
        order_info: str,
        ip_addr: str,
        created_at: Optional[datetime] = None,
    ) -> dict[str, str]:
        return {
            "vnp_Version": VNPAY_VERSION,
            "vnp_Command": "pay",
            "vnp_TmnCode": self.tmn_code,
            # Amount is sent in hundredths of a dong
            "vnp_Amount": str(int(Decimal(amount) * 100)),
            "vnp_CreateDate": format_vnpay_datetime(
                created_at or datetime.now(timezone.utc)
            ),
            "vnp_CurrCode": "VND",
            "vnp_IpAddr": ip_addr,
            "vnp_Locale": "vn",
            "vnp_OrderInfo": order_info,
            "vnp_OrderType": "other",
            "vnp_ReturnUrl": self.return_url,
            "vnp_TxnRef": order_id,
        }

    def create_payment_url(self, params: Mapping[str, str]) -> str:
        secure_hash = sign(params, self.hash_secret)
        return f"{self.payment_url}?{build_query(params)}&vnp_SecureHash={secure_hash}"

    def verify_return(self, query: Mapping[str, str]) -> VNPayReturn:
        params = {k: v for k, v in query.items() if k not in HASH_FIELDS}
        received = query.get("vnp_SecureHash", "")
        expected = sign(params, self.hash_secret)
        valid = hmac.compare_digest(expected.lower(), received.lower())

        raw_amount = params.get("vnp_Amount")
        amount = Decimal(raw_amount) / 100 if raw_amount and raw_amount.isdigit() else None

        return VNPayReturn(
            valid_signature=valid,
            order_id=params.get("vnp_TxnRef"),
            response_code=params.get("vnp_ResponseCode"),
            transaction_no=params.get("vnp_TransactionNo"),
            amount=amount,
            params=params,
        )
