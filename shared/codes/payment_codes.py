"""
Payment specific codes and gateway status mapping.
"""
from __future__ import annotations

from enum import IntEnum


class PaymentCode(IntEnum):
    # Generic success
    SUCCESS = 0

    # Local validation (6xxxx)
    INVALID_INPUT = 60000
    SIGNATURE_INVALID = 60001
    INVALID_WEBHOOK = 60002
    PAYMENT_FAILED = 60003

    # Gateway/network errors (61xxx)
    GATEWAY_TIMEOUT = 61000
    GATEWAY_AUTH_FAILURE = 61001
    GATEWAY_UNAVAILABLE = 61002
    GATEWAY_REJECTED = 61003

    # Ledger/payout errors (62xxx)
    INSUFFICIENT_BALANCE = 62000
    DUPLICATE_PAYOUT = 62001
    PAYOUT_DESTINATION_MISSING = 62002


# Gateway→internal status mapping (extend per needs)
GATEWAY_STATUS_TO_INTERNAL = {
    "payout": {
        "queued": "processing",
        "pending": "processing",
        "processing": "processing",
        "processed": "processed",
        "reversed": "reversed",
        "failed": "failed",
        "rejected": "failed",
        "cancelled": "cancelled",
    },
}
