"""
HMAC-SHA256 signature verification for gateway confirmations and webhooks.
"""
from __future__ import annotations

import hashlib
import hmac
from typing import Any, Optional, Union


BytesLike = Union[str, bytes, bytearray]


def _as_bytes(value: BytesLike) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode("utf-8")
    raise TypeError(f"expected str or bytes, got {type(value).__name__}")


def payment_payload(order_id: str, payment_id: str) -> str:
    """Canonical string the gateway signs on checkout completion."""
    return f"{order_id}|{payment_id}"


def compute_signature(payload: BytesLike, secret: BytesLike) -> str:
    return hmac.new(_as_bytes(secret), _as_bytes(payload), hashlib.sha256).hexdigest()


def signatures_match(expected: str, claimed: Any) -> bool:
    """Constant-time compare; unequal lengths are rejected up front."""
    if not isinstance(claimed, str) or not claimed:
        return False
    if len(claimed) != len(expected):
        return False
    try:
        return hmac.compare_digest(expected.encode("ascii"), claimed.encode("ascii"))
    except UnicodeEncodeError:
        return False


class SignatureVerifier:
    """Verifies that a confirmation or webhook body came from the gateway.

    Every ``verify_*`` method returns a bool and never raises: malformed
    input is simply not a valid signature.
    """

    def __init__(self, secret: Optional[str], *, webhook_secret: Optional[str] = None) -> None:
        self._secret = secret
        self._webhook_secret = webhook_secret or secret

    def sign_payment(self, order_id: str, payment_id: str) -> str:
        if not self._secret:
            raise ValueError("signing secret not configured")
        return compute_signature(payment_payload(order_id, payment_id), self._secret)

    def sign_webhook(self, body: BytesLike) -> str:
        if not self._webhook_secret:
            raise ValueError("webhook secret not configured")
        return compute_signature(body, self._webhook_secret)

    def verify_payment(self, order_id: Any, payment_id: Any, signature: Any) -> bool:
        if not self._secret:
            return False
        if not isinstance(order_id, str) or not isinstance(payment_id, str):
            return False
        if not order_id or not payment_id:
            return False
        try:
            expected = compute_signature(payment_payload(order_id, payment_id), self._secret)
        except (TypeError, ValueError):
            return False
        return signatures_match(expected, signature)

    def verify_webhook(self, body: Any, signature: Any) -> bool:
        if not self._webhook_secret:
            return False
        if body is None:
            return False
        try:
            expected = compute_signature(body, self._webhook_secret)
        except (TypeError, ValueError):
            return False
        return signatures_match(expected, signature)
