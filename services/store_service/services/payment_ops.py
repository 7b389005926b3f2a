"""Payment orchestration across VNPay, PayPal and VietQR.

Each provider flow records a Payment row when the payment is started and
completes it (marking the order paid) once the provider confirms it.
"""

import uuid
from decimal import Decimal
from typing import Optional

from fastapi import HTTPException
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.logging import get_logger
from services.store_service.models import (
    Customer,
    Order,
    OrderStatus,
    Payment,
    PaymentProvider,
    PaymentStatus,
    TransactionStatus,
)
from services.store_service.providers import (
    PaymentProviderError,
    PayPalClient,
    VietQRClient,
    VNPayClient,
)
from services.store_service.providers.paypal import PayPalExecution, PayPalPayment
from services.store_service.providers.vietqr import PaymentCheck, QRCode
from services.store_service.providers.vnpay import VNPayReturn
from services.store_service.services import order_ops
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


def provider_failure(e: PaymentProviderError) -> HTTPException:
    """Map a provider client error to the HTTP error returned to the caller."""
    logger.error(
        f"{e.provider} request failed: {e.message}",
        extra={"extra_fields": {"status_code": e.status_code, "response": e.response_data}},
    )
    return HTTPException(status_code=502, detail=f"Payment provider error: {e.message}")


def provider_unavailable(e: PaymentProviderError) -> HTTPException:
    logger.warning(f"{e.provider} is not available: {e.message}")
    return HTTPException(status_code=503, detail=e.message)


# ---------------------------------------------------------------------------
# Orders and payment rows
# ---------------------------------------------------------------------------


async def get_payable_order(
    db: AsyncSession,
    order_id: uuid.UUID,
    current_user: AuthUser,
    customer: Optional[Customer],
) -> Order:
    order = await order_ops.get_order(db, order_id)
    order_ops.ensure_order_access(order, current_user, customer)

    if order.payment_status == PaymentStatus.PAID:
        raise HTTPException(status_code=400, detail="Order is already paid")
    if order.status == OrderStatus.CANCELLED:
        raise HTTPException(
            status_code=400, detail="Cannot pay for a cancelled order"
        )
    return order


def resolve_amount(order: Order, requested: Optional[Decimal]) -> Decimal:
    """The amount to charge; a caller-supplied amount must match the order."""
    if requested is None:
        return order.total_amount
    if Decimal(requested).quantize(Decimal("0.01")) != order.total_amount:
        raise HTTPException(
            status_code=400, detail="Amount does not match order total"
        )
    return order.total_amount


async def _find_order(db: AsyncSession, raw_id: Optional[str]) -> Optional[Order]:
    try:
        order_id = uuid.UUID(str(raw_id))
    except ValueError:
        return None
    return await db.get(Order, order_id)


async def _latest_pending_payment(
    db: AsyncSession, order_id: uuid.UUID, provider: PaymentProvider
) -> Optional[Payment]:
    result = await db.execute(
        select(Payment)
        .where(
            Payment.order_id == order_id,
            Payment.provider == provider,
            Payment.status == TransactionStatus.PENDING,
        )
        .order_by(Payment.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def _payment_for_confirmation(
    db: AsyncSession,
    order: Order,
    provider: PaymentProvider,
    transaction_id: Optional[str] = None,
) -> Payment:
    """The pending row a confirmation applies to, created if the start was never recorded."""
    payment = None
    if transaction_id:
        result = await db.execute(
            select(Payment).where(
                Payment.order_id == order.id,
                Payment.provider == provider,
                Payment.transaction_id == transaction_id,
            )
        )
        payment = result.scalars().first()
    if payment is None:
        payment = await _latest_pending_payment(db, order.id, provider)
    if payment is None:
        payment = Payment(
            order_id=order.id,
            provider=provider,
            amount=order.total_amount,
            status=TransactionStatus.PENDING,
        )
        db.add(payment)
    return payment


def _paid_in_full(paid: Optional[Decimal], expected: Decimal) -> bool:
    if paid is None:
        return False
    return Decimal(paid).quantize(Decimal("0.01")) == Decimal(expected).quantize(
        Decimal("0.01")
    )


def _complete(payment: Payment, order: Order, transaction_id: Optional[str], data: dict) -> None:
    payment.status = TransactionStatus.COMPLETED
    payment.transaction_id = transaction_id or payment.transaction_id
    payment.response_data = data
    order_ops.mark_order_paid(order)
    logger.info(
        f"Payment completed for order {order.order_number} via {payment.provider.value}",
        extra={
            "extra_fields": {
                "order_id": str(order.id),
                "transaction_id": payment.transaction_id,
                "amount": str(payment.amount),
            }
        },
    )


async def latest_payment(db: AsyncSession, order_id: uuid.UUID) -> Optional[Payment]:
    result = await db.execute(
        select(Payment)
        .where(Payment.order_id == order_id)
        .order_by(Payment.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# VNPay
# ---------------------------------------------------------------------------


async def start_vnpay_payment(
    db: AsyncSession,
    client: VNPayClient,
    order: Order,
    amount: Decimal,
    order_info: Optional[str],
    ip_addr: str,
) -> str:
    params = client.build_payment_params(
        order_id=str(order.id),
        amount=amount,
        order_info=order_info or f"Thanh toan don hang {order.order_number}",
        ip_addr=ip_addr,
    )
    payment_url = client.create_payment_url(params)

    db.add(
        Payment(
            order_id=order.id,
            provider=PaymentProvider.VNPAY,
            amount=amount,
            currency="VND",
            status=TransactionStatus.PENDING,
            response_data={"request": params},
        )
    )
    await db.commit()

    logger.info(f"VNPay payment started for order {order.order_number}")
    return payment_url


async def confirm_vnpay_return(
    db: AsyncSession, client: VNPayClient, query: dict[str, str]
) -> VNPayReturn:
    """Verify a VNPay return redirect and apply its outcome."""
    result = client.verify_return(query)
    if not result.valid_signature:
        logger.warning(f"VNPay return with invalid signature for {result.order_id}")
        return result

    order = await _find_order(db, result.order_id)
    if order is None:
        logger.warning(f"VNPay return for unknown order {result.order_id}")
        return result

    payment = await _payment_for_confirmation(db, order, PaymentProvider.VNPAY)
    if result.success:
        _complete(payment, order, result.transaction_no, result.params)
    else:
        payment.status = TransactionStatus.FAILED
        payment.transaction_id = result.transaction_no
        payment.response_data = result.params
        logger.info(
            f"VNPay payment failed for order {order.order_number} "
            f"(code {result.response_code})"
        )
    await db.commit()
    return result


# ---------------------------------------------------------------------------
# PayPal
# ---------------------------------------------------------------------------


async def start_paypal_payment(
    db: AsyncSession,
    client: PayPalClient,
    order: Order,
    amount: Decimal,
    currency: str,
) -> PayPalPayment:
    settings = get_settings()
    try:
        paypal_payment = await client.create_payment(
            order_id=str(order.id),
            amount=amount,
            currency=currency,
            return_url=settings.PAYPAL_RETURN_URL,
            cancel_url=settings.PAYPAL_CANCEL_URL,
        )
    except PaymentProviderError as e:
        raise provider_failure(e)

    db.add(
        Payment(
            order_id=order.id,
            provider=PaymentProvider.PAYPAL,
            amount=amount,
            currency=currency.upper(),
            status=TransactionStatus.PENDING,
            transaction_id=paypal_payment.payment_id,
            response_data=paypal_payment.raw,
        )
    )
    await db.commit()

    logger.info(
        f"PayPal payment {paypal_payment.payment_id} created for order {order.order_number}"
    )
    return paypal_payment


async def execute_paypal_payment(
    db: AsyncSession, client: PayPalClient, payment_id: str, payer_id: str
) -> PayPalExecution:
    try:
        execution = await client.execute_payment(payment_id, payer_id)
    except PaymentProviderError as e:
        raise provider_failure(e)

    order = await _find_order(db, execution.order_id)
    if order is None:
        logger.warning(f"PayPal payment {payment_id} does not map to a known order")
        return execution

    payment = await _payment_for_confirmation(
        db, order, PaymentProvider.PAYPAL, transaction_id=payment_id
    )
    if execution.approved and not _paid_in_full(execution.amount, order.total_amount):
        payment.status = TransactionStatus.FAILED
        payment.response_data = execution.raw
        await db.commit()
        logger.warning(
            f"PayPal payment {payment_id} charged {execution.amount}, expected {order.total_amount}"
        )
        raise HTTPException(
            status_code=400, detail="Paid amount does not match order total"
        )
    if execution.approved:
        _complete(payment, order, execution.payment_id, execution.raw)
    else:
        payment.status = TransactionStatus.FAILED
        payment.response_data = execution.raw
        logger.info(f"PayPal payment {payment_id} ended in state {execution.state}")
    await db.commit()
    return execution


# ---------------------------------------------------------------------------
# VietQR
# ---------------------------------------------------------------------------


def vnd_amount(amount: Decimal) -> int:
    return int(Decimal(amount).to_integral_value())


async def start_vietqr_payment(
    db: AsyncSession, client: VietQRClient, order: Order
) -> tuple[Payment, QRCode, str]:
    amount = vnd_amount(order.total_amount)
    try:
        qr = await client.generate_qr(amount, str(order.id))
    except PaymentProviderError as e:
        raise provider_failure(e)

    payment = Payment(
        order_id=order.id,
        provider=PaymentProvider.VIETQR,
        amount=order.total_amount,
        currency="VND",
        status=TransactionStatus.PENDING,
        response_data={"content": qr.content, "bank_name": qr.bank_name},
    )
    db.add(payment)
    await db.commit()

    logger.info(f"VietQR code issued for order {order.order_number}")
    return payment, qr, client.image_url(amount, str(order.id))


async def check_vietqr_payment(
    db: AsyncSession, client: VietQRClient, order: Order
) -> PaymentCheck:
    """Poll for the bank transfer; a match completes the payment."""
    check = await client.check_payment(str(order.id), vnd_amount(order.total_amount))
    if not check.success:
        return check

    transaction = check.transaction or {}
    payment = await _payment_for_confirmation(db, order, PaymentProvider.VIETQR)
    _complete(
        payment,
        order,
        str(transaction.get("id")) if transaction.get("id") is not None else None,
        transaction,
    )
    await db.commit()
    return check
