"""In-process stores for verification attempts and processed webhook ids.

State lives in the worker process: lost on restart, not shared between
instances. Each coroutine step is synchronous between awaits, so plain dict/set
operations are atomic within one event loop.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from domain.payment.entity import PaymentAttempt, attempt_key


class InMemoryPaymentAttemptStore:
    """Attempts older than ``ttl_seconds`` read as absent even before the sweep runs."""

    def __init__(self, ttl_seconds: Optional[float] = 3600) -> None:
        self._attempts: Dict[str, PaymentAttempt] = {}
        self.ttl_seconds = ttl_seconds

    async def get(self, order_id: str, payment_id: str) -> Optional[PaymentAttempt]:
        key = attempt_key(order_id, payment_id)
        attempt = self._attempts.get(key)
        if attempt is not None and self.ttl_seconds is not None:
            cutoff = datetime.now(timezone.utc) - timedelta(seconds=self.ttl_seconds)
            if attempt.is_older_than(cutoff):
                del self._attempts[key]
                return None
        return attempt

    async def save(self, attempt: PaymentAttempt) -> None:
        self._attempts[attempt.key] = attempt

    async def delete(self, order_id: str, payment_id: str) -> bool:
        return self._attempts.pop(attempt_key(order_id, payment_id), None) is not None

    async def list_all(self) -> List[PaymentAttempt]:
        return list(self._attempts.values())

    async def evict_older_than(self, cutoff: datetime) -> int:
        stale = [key for key, attempt in self._attempts.items() if attempt.is_older_than(cutoff)]
        for key in stale:
            del self._attempts[key]
        return len(stale)

    def __len__(self) -> int:
        return len(self._attempts)


class InMemoryProcessedEventStore:
    """Set of processed webhook keys, cleared wholesale once it outgrows ``max_size``."""

    def __init__(self, max_size: int = 10000) -> None:
        self._keys: set[str] = set()
        self.max_size = max_size

    async def add_if_absent(self, key: str) -> bool:
        if key in self._keys:
            return False
        self._keys.add(key)
        return True

    async def discard(self, key: str) -> None:
        self._keys.discard(key)

    async def contains(self, key: str) -> bool:
        return key in self._keys

    async def sweep(self) -> int:
        size = len(self._keys)
        if size <= self.max_size:
            return 0
        # Durable de-duplication (processed_webhook_events) still covers replays
        self._keys.clear()
        return size

    def __len__(self) -> int:
        return len(self._keys)
