"""
VietQR bank-transfer QR codes and transfer detection.

QR codes are generated by api.vietqr.io. Incoming transfers are looked up in
the Web2M bank history API when WEB2M_API_KEY is set; without a key a mock
lookup is used so the polling flow can be exercised in development.
"""

import random
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional
from urllib.parse import quote

import httpx
from libs.common.config import get_settings
from libs.common.logging import get_logger
from services.store_service.providers.base import PaymentProviderError

logger = get_logger(__name__)

VIETQR_GENERATE_URL = "https://api.vietqr.io/v2/generate"
VIETQR_IMAGE_URL = "https://img.vietqr.io/image"
WEB2M_HISTORY_URL = "https://api.web2m.com/historyapiv3/mb"

DEFAULT_TEMPLATE = "compact2"
MOCK_SUCCESS_RATE = 0.3

# acqId -> (bank name, short code)
BANKS = {
    970422: ("MB Bank", "MB"),
    970407: ("Techcombank", "TCB"),
    970415: ("Vietinbank", "CTG"),
    970418: ("BIDV", "BIDV"),
    970405: ("Agribank", "AGR"),
    970432: ("VPBank", "VPB"),
}


class VietQRError(PaymentProviderError):
    provider = "vietqr"


def bank_name(acq_id: int) -> str:
    return BANKS.get(acq_id, ("Unknown Bank", "MB"))[0]


def bank_code(acq_id: int) -> str:
    return BANKS.get(acq_id, ("Unknown Bank", "MB"))[1]


def payment_content(order_id: str) -> str:
    """Transfer description the customer must keep for the payment to match."""
    return f"DONHANG_{order_id}"


@dataclass
class QRCode:
    qr_code: Optional[str]
    qr_data_url: Optional[str]
    bank_name: str
    account_no: str
    account_name: str
    amount: int
    content: str


@dataclass
class PaymentCheck:
    success: bool
    message: str
    transaction: Optional[dict] = field(default=None)


class VietQRClient:
    """Async client for VietQR generation and Web2M history lookups."""

    def __init__(
        self,
        account_no: Optional[str] = None,
        account_name: Optional[str] = None,
        acq_id: Optional[int] = None,
        web2m_api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        rng: Callable[[], float] = random.random,
    ):
        settings = get_settings()
        self.account_no = account_no or settings.VIETQR_ACCOUNT
        self.account_name = account_name or settings.VIETQR_ACCOUNT_NAME
        self.acq_id = acq_id or settings.VIETQR_BANK_ID
        self.web2m_api_key = (
            web2m_api_key if web2m_api_key is not None else settings.WEB2M_API_KEY
        )
        self._transport = transport
        self._rng = rng

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=15.0, transport=self._transport)

    async def generate_qr(
        self, amount: int, order_id: str, template: str = DEFAULT_TEMPLATE
    ) -> QRCode:
        """
        Generate a QR code for a transfer of `amount` VND.

        Raises:
            VietQRError: If the API rejects the request or is unreachable
        """
        content = payment_content(order_id)
        payload = {
            "accountNo": self.account_no,
            "accountName": self.account_name,
            "acqId": self.acq_id,
            "amount": amount,
            "addInfo": content,
            "format": "text",
            "template": template,
        }

        try:
            async with self._client() as client:
                response = await client.post(VIETQR_GENERATE_URL, json=payload)
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"VietQR generate request failed: {e}")
            raise VietQRError(f"VietQR generation failed: {e}") from e

        if not response.is_success or data.get("code") != "00":
            logger.error(f"VietQR API error: {response.status_code} - {data}")
            raise VietQRError(
                message=data.get("desc", "Failed to generate QR code"),
                status_code=response.status_code,
                response_data=data,
            )

        qr = data.get("data") or {}
        return QRCode(
            qr_code=qr.get("qrCode"),
            qr_data_url=qr.get("qrDataURL"),
            bank_name=bank_name(self.acq_id),
            account_no=self.account_no,
            account_name=self.account_name,
            amount=amount,
            content=content,
        )

    def image_url(
        self, amount: int, order_id: str, template: str = DEFAULT_TEMPLATE
    ) -> str:
        """Direct QR image link that needs no API call."""
        return (
            f"{VIETQR_IMAGE_URL}/{bank_code(self.acq_id)}-{self.account_no}-{template}.png"
            f"?amount={amount}&addInfo={quote(payment_content(order_id))}"
        )

    async def check_payment(self, order_id: str, amount: int) -> PaymentCheck:
        """Look for an incoming transfer matching the order's amount and content."""
        if not self.web2m_api_key:
            return self._mock_check(order_id, amount)

        url = f"{WEB2M_HISTORY_URL}/{self.account_no}/{self.web2m_api_key}"
        try:
            async with self._client() as client:
                response = await client.get(url)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Web2M history lookup failed for order {order_id}: {e}")
            return PaymentCheck(success=False, message=f"Check payment failed: {e}")

        transactions = data.get("transactions")
        if transactions is None:
            return PaymentCheck(success=False, message="No transactions data")

        content = payment_content(order_id)
        for txn in transactions:
            if (
                _same_amount(txn.get("amount"), amount)
                and content in str(txn.get("description", ""))
                and txn.get("type") == "IN"
            ):
                return PaymentCheck(success=True, message="Payment found", transaction=txn)

        return PaymentCheck(success=False, message="Payment not found")

    def _mock_check(self, order_id: str, amount: int) -> PaymentCheck:
        if self._rng() >= MOCK_SUCCESS_RATE:
            return PaymentCheck(success=False, message="Payment not found (mock)")

        return PaymentCheck(
            success=True,
            message="Payment found (mock)",
            transaction={
                "id": f"TXN_{int(time.time() * 1000)}",
                "amount": amount,
                "description": payment_content(order_id),
                "type": "IN",
                "date": datetime.now(timezone.utc).isoformat(),
            },
        )


def _same_amount(value: object, amount: int) -> bool:
    try:
        return Decimal(str(value)) == Decimal(amount)
    except (InvalidOperation, TypeError):
        return False
