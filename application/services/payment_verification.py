"""
Synchronous payment verification with status tracking.

The client calls verify after checkout and may poll the tracked status while
the gateway settles. The tracker is advisory; settlement itself happens in
``SettlementService``.
"""
from __future__ import annotations

from typing import List, Optional

from application.dtos.payments import PaymentStatusView, VerificationResult
from application.ports.payment_gateway import PaymentGateway
from application.ports.tracking import PaymentAttemptStore
from application.utils.retry import GatewayCallExecutor
from core.logging_config import get_logger
from domain.common.exceptions import BusinessException
from domain.payment.entity import (
    GatewayPaymentStatus,
    PaymentAttempt,
    SETTLED_PAYMENT_STATUSES,
)
from domain.payment.exceptions import PaymentFailedException, SignatureInvalidException
from domain.services.signature import SignatureVerifier


logger = get_logger(__name__)

STILL_PROCESSING_MESSAGE = "Payment is still being processed. Please wait..."


def _status_view(attempt: PaymentAttempt) -> PaymentStatusView:
    return PaymentStatusView(
        order_id=attempt.order_id,
        payment_id=attempt.payment_id,
        status=attempt.status.value,
        attempts=attempt.attempts,
        last_attempt=attempt.last_attempt,
        plan_id=attempt.plan_id,
        message=attempt.message,
    )


class PaymentVerificationService:
    def __init__(
        self,
        gateway: PaymentGateway,
        executor: GatewayCallExecutor,
        verifier: SignatureVerifier,
        attempt_store: PaymentAttemptStore,
        *,
        verification_timeout: Optional[float] = None,
    ) -> None:
        self.gateway = gateway
        self.executor = executor
        self.verifier = verifier
        self.attempt_store = attempt_store
        self.verification_timeout = (
            verification_timeout
            if verification_timeout is not None
            else executor.timeout_for("payment_verification")
        )

    async def verify_with_tracking(
        self,
        order_id: str,
        payment_id: str,
        signature: str,
        plan_id: Optional[str] = None,
    ) -> VerificationResult:
        attempt = await self.attempt_store.get(order_id, payment_id)
        if attempt is None:
            attempt = PaymentAttempt(order_id=order_id, payment_id=payment_id)
        attempt.register_attempt(plan_id)
        await self.attempt_store.save(attempt)

        if not self.verifier.verify_payment(order_id, payment_id, signature):
            attempt.mark_failed("Invalid signature")
            await self.attempt_store.save(attempt)
            logger.warning("payment_signature_invalid", order_id=order_id, payment_id=payment_id)
            raise SignatureInvalidException()

        try:
            payment = await self.executor.execute(
                lambda: self.gateway.fetch_payment(payment_id),
                "payment_fetch",
                total_timeout=self.verification_timeout,
            )
        except BusinessException as exc:
            attempt.mark_failed(exc.message)
            await self.attempt_store.save(attempt)
            raise

        status = payment.status.lower()
        if status in {s.value for s in SETTLED_PAYMENT_STATUSES}:
            attempt.mark_completed()
            await self.attempt_store.save(attempt)
            logger.info(
                "payment_verified",
                order_id=order_id,
                payment_id=payment_id,
                status=status,
                attempts=attempt.attempts,
            )
            return VerificationResult(success=True, payment=payment)

        if status == GatewayPaymentStatus.FAILED.value:
            attempt.mark_failed(payment.error_description)
            await self.attempt_store.save(attempt)
            logger.warning(
                "payment_failed_at_gateway",
                order_id=order_id,
                payment_id=payment_id,
                error_code=payment.error_code,
                error_description=payment.error_description,
            )
            raise PaymentFailedException(payment.error_description, payment_id=payment_id)

        attempt.mark_processing(STILL_PROCESSING_MESSAGE)
        await self.attempt_store.save(attempt)
        logger.info("payment_still_processing", order_id=order_id, payment_id=payment_id, status=status)
        return VerificationResult(success=False, message=STILL_PROCESSING_MESSAGE, payment=payment)

    async def get_payment_status(self, order_id: str, payment_id: str) -> Optional[PaymentStatusView]:
        attempt = await self.attempt_store.get(order_id, payment_id)
        return _status_view(attempt) if attempt else None

    async def clear_payment_status(self, order_id: str, payment_id: str) -> bool:
        return await self.attempt_store.delete(order_id, payment_id)

    async def list_payment_statuses(self) -> List[PaymentStatusView]:
        return [_status_view(a) for a in await self.attempt_store.list_all()]
