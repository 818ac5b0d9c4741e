"""Celery beat schedule configuration.

Payouts stuck in processing (a lost webhook, a gateway outage) are re-synced
from the gateway on a fixed interval.
"""
from __future__ import annotations

from core.settings import payment_settings


CELERY_BEAT_SCHEDULE = {
    "reconcile-processing-payouts": {
        "task": "payouts.reconcile_pending",
        "schedule": float(payment_settings.payout.reconcile_after_seconds),
    },
}
