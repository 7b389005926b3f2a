"""Payment router: VNPay, PayPal and VietQR flows."""

import uuid
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import RedirectResponse
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.logging import get_logger
from libs.common.rate_limit import get_client_ip, payment_limit
from libs.common.responses import ApiResponse, ok
from libs.db.session import get_async_db
from services.store_service.models import PaymentStatus
from services.store_service.providers import (
    PaymentProviderError,
    PayPalClient,
    VietQRClient,
    VNPayClient,
)
from services.store_service.routers._helpers import get_customer_for_user
from services.store_service.schemas import (
    ApprovalUrlResponse,
    BankInfo,
    PaymentResponse,
    PaymentResult,
    PaymentUrlResponse,
    PayPalCreateRequest,
    PayPalExecuteRequest,
    VietQRCheckResponse,
    VietQRPaymentResponse,
    VietQRRequest,
    VNPayCreateRequest,
)
from services.store_service.services import order_ops, payment_ops
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


# ============================================================================
# PROVIDER CLIENTS
# ============================================================================


def get_vnpay_client() -> VNPayClient:
    try:
        return VNPayClient()
    except PaymentProviderError as e:
        raise payment_ops.provider_unavailable(e)


def get_paypal_client() -> PayPalClient:
    try:
        return PayPalClient()
    except PaymentProviderError as e:
        raise payment_ops.provider_unavailable(e)


def get_vietqr_client() -> VietQRClient:
    return VietQRClient()


def _frontend_redirect(path: str, **params: Optional[str]) -> RedirectResponse:
    query = urlencode({k: v for k, v in params.items() if v is not None})
    url = f"{get_settings().FRONTEND_URL.rstrip('/')}/{path}"
    return RedirectResponse(url=f"{url}?{query}" if query else url, status_code=302)


async def _payable_order(
    db: AsyncSession, order_id: uuid.UUID, current_user: AuthUser
):
    customer = await get_customer_for_user(db, current_user.user_id)
    return await payment_ops.get_payable_order(db, order_id, current_user, customer)


# ============================================================================
# VNPAY
# ============================================================================


@router.post("/vnpay/create", response_model=ApiResponse[PaymentUrlResponse])
@payment_limit
async def create_vnpay_payment(
    request: Request,
    data: VNPayCreateRequest,
    current_user: AuthUser = Depends(get_current_user),
    client: VNPayClient = Depends(get_vnpay_client),
    db: AsyncSession = Depends(get_async_db),
):
    order = await _payable_order(db, data.order_id, current_user)
    amount = payment_ops.resolve_amount(order, data.amount)
    payment_url = await payment_ops.start_vnpay_payment(
        db, client, order, amount, data.order_info, get_client_ip(request)
    )
    return ok(PaymentUrlResponse(payment_url=payment_url))


@router.get("/vnpay/return")
async def vnpay_return(
    request: Request,
    client: VNPayClient = Depends(get_vnpay_client),
    db: AsyncSession = Depends(get_async_db),
):
    """Landing point of the VNPay redirect; forwards the shopper to the frontend."""
    result = await payment_ops.confirm_vnpay_return(
        db, client, dict(request.query_params)
    )
    path = "payment-success" if result.success else "payment-failed"
    return _frontend_redirect(
        path,
        orderId=result.order_id,
        transactionId=result.transaction_no,
        code=None if result.success else result.response_code,
    )


# ============================================================================
# PAYPAL
# ============================================================================


@router.post("/paypal/create", response_model=ApiResponse[ApprovalUrlResponse])
@payment_limit
async def create_paypal_payment(
    request: Request,
    data: PayPalCreateRequest,
    current_user: AuthUser = Depends(get_current_user),
    client: PayPalClient = Depends(get_paypal_client),
    db: AsyncSession = Depends(get_async_db),
):
    order = await _payable_order(db, data.order_id, current_user)
    amount = payment_ops.resolve_amount(order, data.amount)
    paypal_payment = await payment_ops.start_paypal_payment(
        db, client, order, amount, data.currency.upper()
    )
    return ok(ApprovalUrlResponse(approval_url=paypal_payment.approval_url))


@router.post("/paypal/execute", response_model=ApiResponse[PaymentResult])
async def execute_paypal_payment(
    data: PayPalExecuteRequest,
    _current_user: AuthUser = Depends(get_current_user),
    client: PayPalClient = Depends(get_paypal_client),
    db: AsyncSession = Depends(get_async_db),
):
    execution = await payment_ops.execute_paypal_payment(
        db, client, data.payment_id, data.payer_id
    )
    return ok(
        PaymentResult(
            success=execution.approved,
            order_id=execution.order_id,
            transaction_id=execution.payment_id,
            message="Payment completed" if execution.approved else "Payment not approved",
        )
    )


@router.get("/paypal/success")
async def paypal_success(
    payment_id: str = Query(..., alias="paymentId"),
    payer_id: str = Query(..., alias="PayerID"),
    client: PayPalClient = Depends(get_paypal_client),
    db: AsyncSession = Depends(get_async_db),
):
    """PayPal return URL: execute the approved payment, then redirect."""
    try:
        execution = await payment_ops.execute_paypal_payment(
            db, client, payment_id, payer_id
        )
    except HTTPException:
        logger.warning(f"PayPal execution failed for {payment_id}")
        return _frontend_redirect("payment-failed", paymentId=payment_id)

    path = "payment-success" if execution.approved else "payment-failed"
    return _frontend_redirect(
        path, orderId=execution.order_id, transactionId=execution.payment_id
    )


@router.get("/paypal/cancel")
async def paypal_cancel(token: Optional[str] = Query(None)):
    logger.info(f"PayPal payment cancelled by shopper (token={token})")
    return _frontend_redirect("payment-cancelled")


# ============================================================================
# VIETQR
# ============================================================================


@router.post("/vietqr/create", response_model=ApiResponse[VietQRPaymentResponse])
@payment_limit
async def create_vietqr_payment(
    request: Request,
    data: VietQRRequest,
    current_user: AuthUser = Depends(get_current_user),
    client: VietQRClient = Depends(get_vietqr_client),
    db: AsyncSession = Depends(get_async_db),
):
    order = await _payable_order(db, data.order_id, current_user)
    payment, qr, image_url = await payment_ops.start_vietqr_payment(db, client, order)
    return ok(
        VietQRPaymentResponse(
            payment_id=payment.id,
            qr_code=qr.qr_code,
            qr_data_url=qr.qr_data_url,
            qr_image_url=image_url,
            bank_info=BankInfo(
                bank_name=qr.bank_name,
                account_no=qr.account_no,
                account_name=qr.account_name,
            ),
            amount=order.total_amount,
            content=qr.content,
        )
    )


@router.post("/vietqr/check", response_model=ApiResponse[VietQRCheckResponse])
async def check_vietqr_payment(
    data: VietQRRequest,
    current_user: AuthUser = Depends(get_current_user),
    client: VietQRClient = Depends(get_vietqr_client),
    db: AsyncSession = Depends(get_async_db),
):
    """Polled by the client every few seconds until the transfer shows up."""
    order = await order_ops.get_order(db, data.order_id)
    customer = await get_customer_for_user(db, current_user.user_id)
    order_ops.ensure_order_access(order, current_user, customer)

    if order.payment_status == PaymentStatus.PAID:
        return ok(VietQRCheckResponse(success=True, message="Order is already paid"))

    check = await payment_ops.check_vietqr_payment(db, client, order)
    return ok(
        VietQRCheckResponse(
            success=check.success, message=check.message, transaction=check.transaction
        )
    )


# ============================================================================
# STATUS
# ============================================================================


@router.get("/status/{order_id}", response_model=ApiResponse[Optional[PaymentResponse]])
async def get_payment_status(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    order = await order_ops.get_order(db, order_id)
    customer = await get_customer_for_user(db, current_user.user_id)
    order_ops.ensure_order_access(order, current_user, customer)
    return ok(await payment_ops.latest_payment(db, order.id))
