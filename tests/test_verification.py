from datetime import datetime, timedelta, timezone

import pytest

from application.dtos.payments import GatewayPayment
from application.ports.payment_gateway import GatewayServerError
from application.services.payment_verification import STILL_PROCESSING_MESSAGE, PaymentVerificationService
from domain.payment.entity import PaymentAttempt
from domain.payment.exceptions import (
    GatewayUnavailableException,
    PaymentFailedException,
    SignatureInvalidException,
)


@pytest.fixture
def service(gateway, executor, verifier, attempt_store):
    return PaymentVerificationService(gateway, executor, verifier, attempt_store)


def _payment(status: str, **kwargs) -> GatewayPayment:
    return GatewayPayment(id="pay_1", order_id="order_1", status=status, amount=49900, **kwargs)


@pytest.mark.asyncio
async def test_captured_payment_completes_attempt(service, gateway, verifier):
    gateway.payments["pay_1"] = _payment("captured")
    result = await service.verify_with_tracking("order_1", "pay_1", verifier.sign_payment("order_1", "pay_1"), "plan_gold")

    assert result.success is True
    assert result.payment.amount == 49900
    view = await service.get_payment_status("order_1", "pay_1")
    assert view.status == "completed"
    assert view.attempts == 1
    assert view.plan_id == "plan_gold"


@pytest.mark.asyncio
async def test_authorized_counts_as_settled(service, gateway, verifier):
    gateway.payments["pay_1"] = _payment("authorized")
    result = await service.verify_with_tracking("order_1", "pay_1", verifier.sign_payment("order_1", "pay_1"))
    assert result.success is True


@pytest.mark.asyncio
async def test_invalid_signature_fails_without_gateway_call(service, gateway):
    with pytest.raises(SignatureInvalidException):
        await service.verify_with_tracking("order_1", "pay_1", "0" * 64)
    assert gateway.calls == []
    view = await service.get_payment_status("order_1", "pay_1")
    assert view.status == "failed"


@pytest.mark.asyncio
async def test_pending_payment_reports_processing(service, gateway, verifier):
    gateway.payments["pay_1"] = _payment("created")
    signature = verifier.sign_payment("order_1", "pay_1")

    first = await service.verify_with_tracking("order_1", "pay_1", signature)
    second = await service.verify_with_tracking("order_1", "pay_1", signature)

    assert first.success is False
    assert second.message == STILL_PROCESSING_MESSAGE
    view = await service.get_payment_status("order_1", "pay_1")
    assert view.status == "processing"
    assert view.attempts == 2


@pytest.mark.asyncio
async def test_failed_payment_carries_gateway_description(service, gateway, verifier):
    gateway.payments["pay_1"] = _payment("failed", error_code="BAD_REQUEST_ERROR", error_description="Card declined")
    with pytest.raises(PaymentFailedException) as excinfo:
        await service.verify_with_tracking("order_1", "pay_1", verifier.sign_payment("order_1", "pay_1"))
    assert "Card declined" in excinfo.value.message
    assert (await service.get_payment_status("order_1", "pay_1")).status == "failed"


@pytest.mark.asyncio
async def test_gateway_outage_marks_attempt_failed(service, gateway, verifier):
    gateway.fail_with = [GatewayServerError("down", status_code=503) for _ in range(4)]
    with pytest.raises(GatewayUnavailableException):
        await service.verify_with_tracking("order_1", "pay_1", verifier.sign_payment("order_1", "pay_1"))
    assert gateway.count("fetch_payment") == 4
    assert (await service.get_payment_status("order_1", "pay_1")).status == "failed"


@pytest.mark.asyncio
async def test_status_helpers(service, attempt_store):
    await attempt_store.save(PaymentAttempt("order_1", "pay_1", attempts=1, last_attempt=datetime.now(timezone.utc)))
    await attempt_store.save(PaymentAttempt("order_2", "pay_2", attempts=1, last_attempt=datetime.now(timezone.utc)))

    assert {v.order_id for v in await service.list_payment_statuses()} == {"order_1", "order_2"}
    assert await service.clear_payment_status("order_1", "pay_1") is True
    assert await service.clear_payment_status("order_1", "pay_1") is False
    assert await service.get_payment_status("order_1", "pay_1") is None


@pytest.mark.asyncio
async def test_aged_out_attempt_reads_as_unknown(service, attempt_store):
    old = datetime.now(timezone.utc) - timedelta(hours=2)
    await attempt_store.save(PaymentAttempt("order_1", "pay_1", attempts=3, last_attempt=old))
    assert await service.get_payment_status("order_1", "pay_1") is None
