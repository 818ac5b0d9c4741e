"""
Settlement error taxonomy.

Messages on these exceptions are safe to show to end users; raw gateway
detail travels on attributes (``gateway_code``/``gateway_description``) and
in logs only.
"""
from __future__ import annotations

from typing import Any, Optional

from domain.common.exceptions import BusinessException, ResourceNotFoundException
from shared.codes.payment_codes import PaymentCode


class InvalidPaymentInputException(BusinessException):
    def __init__(self, message: str, *, field: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(
            code=PaymentCode.INVALID_INPUT,
            message=message,
            error_type="InvalidInput",
            details=details,
            field=field,
        )


class SignatureInvalidException(BusinessException):
    def __init__(self, message: str = "Payment verification failed. Invalid signature."):
        super().__init__(
            code=PaymentCode.SIGNATURE_INVALID,
            message=message,
            error_type="SignatureInvalid",
        )


class InvalidWebhookPayloadException(BusinessException):
    def __init__(self, message: str, *, event_type: Optional[str] = None):
        super().__init__(
            code=PaymentCode.INVALID_WEBHOOK,
            message=message,
            error_type="InvalidWebhookPayload",
            details={"event_type": event_type} if event_type else None,
        )


class PaymentFailedException(BusinessException):
    def __init__(self, description: Optional[str] = None, *, payment_id: Optional[str] = None):
        reason = description or "Unknown error"
        super().__init__(
            code=PaymentCode.PAYMENT_FAILED,
            message=f"Payment failed: {reason}",
            error_type="PaymentFailed",
            details={"payment_id": payment_id} if payment_id else None,
        )
        self.description = reason


class GatewayException(BusinessException):
    """Base for errors surfaced after a gateway call gave up."""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str,
        *,
        operation: Optional[str] = None,
        gateway_code: Optional[str] = None,
        gateway_description: Optional[str] = None,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            error_type=error_type,
            details={"operation": operation} if operation else None,
        )
        self.operation = operation
        self.gateway_code = gateway_code
        self.gateway_description = gateway_description


class GatewayTimeoutException(GatewayException):
    def __init__(self, *, operation: Optional[str] = None):
        super().__init__(
            PaymentCode.GATEWAY_TIMEOUT,
            "Payment service is currently slow. Please try again in a few moments.",
            "GatewayTimeout",
            operation=operation,
        )


class GatewayAuthFailureException(GatewayException):
    def __init__(self, *, operation: Optional[str] = None):
        super().__init__(
            PaymentCode.GATEWAY_AUTH_FAILURE,
            "Payment service configuration error. Please contact support.",
            "GatewayAuthFailure",
            operation=operation,
        )


class GatewayUnavailableException(GatewayException):
    def __init__(self, *, operation: Optional[str] = None):
        super().__init__(
            PaymentCode.GATEWAY_UNAVAILABLE,
            "Unable to reach the payment service. Please try again or contact support if the problem persists.",
            "GatewayUnavailable",
            operation=operation,
        )


class GatewayRejectedException(GatewayException):
    def __init__(
        self,
        *,
        operation: Optional[str] = None,
        gateway_code: Optional[str] = None,
        gateway_description: Optional[str] = None,
        message: str = "The payment service rejected the request. Please check the details and try again.",
    ):
        super().__init__(
            PaymentCode.GATEWAY_REJECTED,
            message,
            "GatewayRejected",
            operation=operation,
            gateway_code=gateway_code,
            gateway_description=gateway_description,
        )


class PaymentNotFoundException(ResourceNotFoundException):
    def __init__(self, payment_id: Optional[str] = None):
        super().__init__(
            "Payment",
            payment_id,
            message="Payment not found. Please contact support if you were charged.",
        )


class CreatorNotFoundException(ResourceNotFoundException):
    def __init__(self, creator_id: Any):
        super().__init__("Creator", creator_id)


class PayoutDestinationMissingException(BusinessException):
    def __init__(self, creator_id: Any, *, reason: str = "Creator bank account details not configured"):
        super().__init__(
            code=PaymentCode.PAYOUT_DESTINATION_MISSING,
            message=reason,
            error_type="PayoutDestinationMissing",
            details={"creator_id": creator_id},
        )


class PayoutNotFoundException(ResourceNotFoundException):
    def __init__(self, payout_ref: Any):
        super().__init__("Payout", payout_ref)


class InsufficientBalanceException(BusinessException):
    def __init__(self, *, requested: int, available: Optional[int] = None, source: str = "ledger"):
        details: dict[str, Any] = {"requested": requested, "source": source}
        if available is not None:
            details["available"] = available
        super().__init__(
            code=PaymentCode.INSUFFICIENT_BALANCE,
            message="Insufficient balance for this payout.",
            error_type="InsufficientBalance",
            details=details,
            field="amount",
        )


class DuplicatePayoutException(BusinessException):
    """Raised when a payout with the same idempotency key already exists.

    No additional money moved; ``existing`` carries the recorded payout when
    it is known.
    """

    def __init__(self, idempotency_key: str, existing: Optional[dict] = None):
        details: dict[str, Any] = {"idempotency_key": idempotency_key}
        if existing:
            details["existing_payout"] = existing
        super().__init__(
            code=PaymentCode.DUPLICATE_PAYOUT,
            message="This payout was already submitted. No additional transfer was made.",
            error_type="DuplicatePayout",
            details=details,
        )
        self.idempotency_key = idempotency_key
        self.existing = existing
