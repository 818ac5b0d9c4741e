"""Redis-backed stores, shared across API instances.

Keys expire on their own (``EX``), so sweeping mostly has nothing to do.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from domain.payment.entity import PaymentAttempt, attempt_key
from infrastructure.cache.redis_cache import RedisCache

ATTEMPT_PREFIX = "payment_attempt:"
PROCESSED_PREFIX = "webhook_processed:"

class RedisPaymentAttemptStore:

    def __init__(self, cache: RedisCache, *, ttl: int = 3600) -> None:
        self._cache = cache
        self._ttl = ttl

    async def get(self, order_id: str, payment_id: str) -> Optional[PaymentAttempt]:
        data = await self._cache.get(ATTEMPT_PREFIX + attempt_key(order_id, payment_id))
        return PaymentAttempt.from_dict(data) if data else None

    async def save(self, attempt: PaymentAttempt) -> None:
        await self._cache.set(ATTEMPT_PREFIX + attempt.key, attempt.to_dict(), ttl=self._ttl)

    async def delete(self, order_id: str, payment_id: str) -> bool:
        return await self._cache.delete(ATTEMPT_PREFIX + attempt_key(order_id, payment_id))

    async def list_all(self) -> List[PaymentAttempt]:
        attempts = []
        async for key in self._cache.iter_keys(ATTEMPT_PREFIX + "*"):
            data = await self._cache.get(key)
            # Key may expire between SCAN and GET
            if data:
                attempts.append(PaymentAttempt.from_dict(data))
        return attempts

    async def evict_older_than(self, cutoff: datetime) -> int:
        removed = 0
        for attempt in await self.list_all():
            if attempt.is_older_than(cutoff) and await self.delete(attempt.order_id, attempt.payment_id):
                removed += 1
        return removed

class RedisProcessedEventStore:

    def __init__(self, cache: RedisCache, *, ttl: int = 7 * 24 * 3600) -> None:
        self._cache = cache
        self._ttl = ttl

    async def add_if_absent(self, key: str) -> bool:
        return await self._cache.set_if_absent(PROCESSED_PREFIX + key, 1, ttl=self._ttl)

    async def discard(self, key: str) -> None:
        await self._cache.delete(PROCESSED_PREFIX + key)

    async def contains(self, key: str) -> bool:
        return await self._cache.exists(PROCESSED_PREFIX + key)

    async def sweep(self) -> int:
        return 0
