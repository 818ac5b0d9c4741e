"""Store adapters selected by configuration."""
from __future__ import annotations

from typing import Optional, Tuple

from application.ports.tracking import PaymentAttemptStore, ProcessedEventStore
from core.settings import PaymentSettings
from infrastructure.cache.redis_cache import RedisCache

from .memory import InMemoryPaymentAttemptStore, InMemoryProcessedEventStore
from .redis import RedisPaymentAttemptStore, RedisProcessedEventStore
from .sweeper import StoreSweeper


def build_stores(
    settings: PaymentSettings,
    cache: Optional[RedisCache] = None,
) -> Tuple[PaymentAttemptStore, ProcessedEventStore]:
    """根据配置构建存储；redis 后端需要传入已初始化的缓存实例"""
    tracking = settings.tracking
    if settings.payment_store.backend == "redis":
        if cache is None:
            raise RuntimeError("payment_store.backend=redis requires an initialised Redis cache")
        return (
            RedisPaymentAttemptStore(cache, ttl=tracking.retention_seconds),
            RedisProcessedEventStore(cache),
        )
    return (
        InMemoryPaymentAttemptStore(ttl_seconds=tracking.retention_seconds),
        InMemoryProcessedEventStore(max_size=tracking.processed_events_max),
    )


__all__ = [
    "InMemoryPaymentAttemptStore",
    "InMemoryProcessedEventStore",
    "RedisPaymentAttemptStore",
    "RedisProcessedEventStore",
    "StoreSweeper",
    "build_stores",
]
