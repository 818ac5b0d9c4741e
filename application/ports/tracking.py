"""
Store ports for verification tracking and webhook de-duplication.

Both are shared, mutable and allowed to lose data on restart. The in-memory
adapters suit a single instance; the Redis adapters share state across
instances.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Protocol, runtime_checkable

from domain.payment.entity import PaymentAttempt


@runtime_checkable
class PaymentAttemptStore(Protocol):

    async def get(self, order_id: str, payment_id: str) -> Optional[PaymentAttempt]: ...

    async def save(self, attempt: PaymentAttempt) -> None: ...

    async def delete(self, order_id: str, payment_id: str) -> bool: ...

    async def list_all(self) -> List[PaymentAttempt]: ...

    async def evict_older_than(self, cutoff: datetime) -> int:
        """Drop attempts whose last attempt is before ``cutoff``; returns count."""
        ...


@runtime_checkable
class ProcessedEventStore(Protocol):

    async def add_if_absent(self, key: str) -> bool:
        """Mark ``key`` processed. False when it was already present."""
        ...

    async def discard(self, key: str) -> None: ...

    async def contains(self, key: str) -> bool: ...

    async def sweep(self) -> int:
        """Enforce the size bound; returns the number of keys dropped."""
        ...
