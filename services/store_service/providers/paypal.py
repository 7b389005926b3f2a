"""
PayPal REST (v1 payments) client.

Provides async methods for:
- Obtaining an OAuth2 access token
- Creating a sale payment and returning its approval link
- Executing an approved payment
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

import httpx
from libs.common.config import get_settings
from libs.common.logging import get_logger
from services.store_service.providers.base import PaymentProviderError

logger = get_logger(__name__)

PAYPAL_BASE_URLS = {
    "sandbox": "https://api-m.sandbox.paypal.com",
    "live": "https://api-m.paypal.com",
}


class PayPalError(PaymentProviderError):
    provider = "paypal"


@dataclass
class PayPalPayment:
    """A created (not yet approved) PayPal payment."""

    payment_id: str
    state: str
    approval_url: str
    raw: dict


@dataclass
class PayPalExecution:
    """Result of executing an approved payment."""

    payment_id: str
    state: str
    order_id: Optional[str]
    raw: dict
    amount: Optional[Decimal] = None

    @property
    def approved(self) -> bool:
        return self.state == "approved"


def format_amount(amount: Decimal) -> str:
    return f"{Decimal(amount):.2f}"


class PayPalClient:
    """Async client for the PayPal v1 payments API."""

    def __init__(
        self,
        client_id: Optional[str] = None,
        secret: Optional[str] = None,
        mode: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.client_id = client_id or settings.PAYPAL_CLIENT_ID
        self.secret = secret or settings.PAYPAL_SECRET
        self.base_url = PAYPAL_BASE_URLS[mode or settings.PAYPAL_MODE]
        self._transport = transport
        if not self.client_id or not self.secret:
            raise PayPalError("PayPal is not configured (PAYPAL_CLIENT_ID/PAYPAL_SECRET)")

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url, timeout=30.0, transport=self._transport
        )

    async def _access_token(self, client: httpx.AsyncClient) -> str:
        response = await client.post(
            "/v1/oauth2/token",
            auth=(self.client_id, self.secret),
            data={"grant_type": "client_credentials"},
            headers={"Accept": "application/json"},
        )
        data = response.json()
        if not response.is_success or "access_token" not in data:
            logger.error(f"PayPal auth error: {response.status_code} - {data}")
            raise PayPalError(
                message=data.get("error_description", "PayPal authentication failed"),
                status_code=response.status_code,
                response_data=data,
            )
        return data["access_token"]

    async def _request(self, method: str, endpoint: str, json_data: dict) -> dict:
        """Make an authenticated request to the PayPal API."""
        async with self._client() as client:
            token = await self._access_token(client)
            response = await client.request(
                method,
                endpoint,
                json=json_data,
                headers={"Authorization": f"Bearer {token}"},
            )
            data = response.json()

            if not response.is_success:
                logger.error(f"PayPal API error: {response.status_code} - {data}")
                raise PayPalError(
                    message=data.get("message", "Unknown PayPal error"),
                    status_code=response.status_code,
                    response_data=data,
                )
            return data

    async def create_payment(
        self,
        *,
        order_id: str,
        amount: Decimal,
        currency: str,
        return_url: str,
        cancel_url: str,
    ) -> PayPalPayment:
        """
        Create a sale payment for one order.

        The order id is carried as the item SKU so it can be recovered when
        the payment is executed.
        """
        total = format_amount(amount)
        payload = {
            "intent": "sale",
            "payer": {"payment_method": "paypal"},
            "redirect_urls": {"return_url": return_url, "cancel_url": cancel_url},
            "transactions": [
                {
                    "item_list": {
                        "items": [
                            {
                                "name": f"Order {order_id}",
                                "sku": order_id,
                                "price": total,
                                "currency": currency,
                                "quantity": 1,
                            }
                        ]
                    },
                    "amount": {"currency": currency, "total": total},
                    "description": f"Payment for order {order_id}",
                }
            ],
        }
        data = await self._request("POST", "/v1/payments/payment", payload)

        approval_url = next(
            (link["href"] for link in data.get("links", []) if link.get("rel") == "approval_url"),
            None,
        )
        if not approval_url:
            raise PayPalError("PayPal response has no approval_url", response_data=data)

        return PayPalPayment(
            payment_id=data["id"],
            state=data.get("state", "created"),
            approval_url=approval_url,
            raw=data,
        )

    async def execute_payment(self, payment_id: str, payer_id: str) -> PayPalExecution:
        data = await self._request(
            "POST",
            f"/v1/payments/payment/{payment_id}/execute",
            {"payer_id": payer_id},
        )

        order_id = None
        try:
            order_id = data["transactions"][0]["item_list"]["items"][0]["sku"]
        except (KeyError, IndexError, TypeError):
            logger.warning(f"PayPal execution {payment_id} carries no order sku")

        amount = None
        try:
            amount = Decimal(data["transactions"][0]["amount"]["total"])
        except (KeyError, IndexError, TypeError, ArithmeticError):
            logger.warning(f"PayPal execution {payment_id} carries no amount")

        return PayPalExecution(
            payment_id=data.get("id", payment_id),
            state=data.get("state", ""),
            order_id=order_id,
            raw=data,
            amount=amount,
        )
