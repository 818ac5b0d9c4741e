"""
Payment verification entities - tracked verification attempts.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from domain.common.time import ensure_utc


class AttemptStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class GatewayPaymentStatus(str, Enum):
    """Status values of the gateway's payment object."""
    CREATED = "created"
    AUTHORIZED = "authorized"
    CAPTURED = "captured"
    FAILED = "failed"
    REFUNDED = "refunded"


SETTLED_PAYMENT_STATUSES = frozenset({GatewayPaymentStatus.CAPTURED, GatewayPaymentStatus.AUTHORIZED})


def attempt_key(order_id: str, payment_id: str) -> str:
    return f"{order_id}_{payment_id}"


@dataclass
class PaymentAttempt:
    """
    Ephemeral record of synchronous verification calls for one
    (order, payment) pair. Answers "is this payment done yet?" while the
    client polls; it is not durable.
    """

    order_id: str
    payment_id: str
    status: AttemptStatus = AttemptStatus.PENDING
    attempts: int = 0
    last_attempt: Optional[datetime] = None
    plan_id: Optional[str] = None
    message: Optional[str] = None

    def __post_init__(self):
        self.last_attempt = ensure_utc(self.last_attempt)

    @property
    def key(self) -> str:
        return attempt_key(self.order_id, self.payment_id)

    def register_attempt(self, plan_id: Optional[str] = None, *, now: Optional[datetime] = None) -> None:
        self.attempts += 1
        self.last_attempt = ensure_utc(now) or datetime.now(timezone.utc)
        if plan_id is not None:
            self.plan_id = plan_id

    def mark_processing(self, message: Optional[str] = None) -> None:
        self.status = AttemptStatus.PROCESSING
        self.message = message

    def mark_completed(self) -> None:
        self.status = AttemptStatus.COMPLETED
        self.message = None

    def mark_failed(self, message: Optional[str] = None) -> None:
        self.status = AttemptStatus.FAILED
        self.message = message

    def is_older_than(self, cutoff: datetime) -> bool:
        return self.last_attempt is not None and self.last_attempt < ensure_utc(cutoff)

    def to_dict(self) -> dict:
        return {
            "order_id": self.order_id,
            "payment_id": self.payment_id,
            "status": self.status.value,
            "attempts": self.attempts,
            "last_attempt": self.last_attempt.isoformat() if self.last_attempt else None,
            "plan_id": self.plan_id,
            "message": self.message,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PaymentAttempt":
        last = data.get("last_attempt")
        return cls(
            order_id=data["order_id"],
            payment_id=data["payment_id"],
            status=AttemptStatus(data.get("status", AttemptStatus.PENDING.value)),
            attempts=int(data.get("attempts", 0)),
            last_attempt=datetime.fromisoformat(last) if last else None,
            plan_id=data.get("plan_id"),
            message=data.get("message"),
        )
