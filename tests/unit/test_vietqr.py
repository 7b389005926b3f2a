"""Unit tests for VietQR generation and Web2M transfer detection."""

import json

import httpx
import pytest
from services.store_service.providers.vietqr import (
    VietQRClient,
    VietQRError,
    bank_name,
    payment_content,
)


def _client(handler=None, web2m_api_key="", rng=None) -> VietQRClient:
    kwargs = {}
    if rng is not None:
        kwargs["rng"] = rng
    return VietQRClient(
        account_no="0123456789",
        account_name="NGUYEN QUOC NHAT",
        acq_id=970422,
        web2m_api_key=web2m_api_key,
        transport=httpx.MockTransport(handler) if handler else None,
        **kwargs,
    )


@pytest.mark.unit
def test_bank_lookup():
    assert bank_name(970422) == "MB Bank"
    assert bank_name(1) == "Unknown Bank"


@pytest.mark.unit
def test_image_url():
    url = _client().image_url(250000, "order-1")
    assert url == (
        "https://img.vietqr.io/image/MB-0123456789-compact2.png"
        "?amount=250000&addInfo=DONHANG_order-1"
    )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_generate_qr():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "code": "00",
                "desc": "Success",
                "data": {"qrCode": "000201...", "qrDataURL": "data:image/png;base64,AAA"},
            },
        )

    qr = await _client(handler).generate_qr(250000, "order-1")

    assert seen["body"]["amount"] == 250000
    assert seen["body"]["addInfo"] == "DONHANG_order-1"
    assert seen["body"]["acqId"] == 970422
    assert qr.qr_code == "000201..."
    assert qr.bank_name == "MB Bank"
    assert qr.content == payment_content("order-1")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_generate_qr_api_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"code": "11", "desc": "Invalid account"})

    with pytest.raises(VietQRError, match="Invalid account"):
        await _client(handler).generate_qr(250000, "order-1")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_check_payment_finds_matching_transfer():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path.endswith("/0123456789/web2m-key")
        return httpx.Response(
            200,
            json={
                "transactions": [
                    {"id": "T1", "amount": "250000", "description": "DONHANG_other", "type": "IN"},
                    {"id": "T2", "amount": "100", "description": "DONHANG_order-1", "type": "IN"},
                    {"id": "T3", "amount": "250000", "description": "MBVCB DONHANG_order-1 FT", "type": "IN"},
                ]
            },
        )

    check = await _client(handler, web2m_api_key="web2m-key").check_payment("order-1", 250000)

    assert check.success
    assert check.transaction["id"] == "T3"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_check_payment_ignores_outgoing_transfers():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "transactions": [
                    {"id": "T1", "amount": 250000, "description": "DONHANG_order-1", "type": "OUT"}
                ]
            },
        )

    check = await _client(handler, web2m_api_key="web2m-key").check_payment("order-1", 250000)

    assert not check.success
    assert check.message == "Payment not found"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_check_payment_reports_lookup_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    check = await _client(handler, web2m_api_key="web2m-key").check_payment("order-1", 250000)

    assert not check.success
    assert check.message.startswith("Check payment failed")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_mock_check_without_api_key():
    found = await _client(rng=lambda: 0.0).check_payment("order-1", 250000)
    missing = await _client(rng=lambda: 0.99).check_payment("order-1", 250000)

    assert found.success
    assert found.transaction["description"] == "DONHANG_order-1"
    assert found.transaction["amount"] == 250000
    assert not missing.success
