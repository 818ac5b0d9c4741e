"""Periodic eviction of stale verification attempts and processed-event keys."""
from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional

from application.ports.tracking import PaymentAttemptStore, ProcessedEventStore
from core.logging_config import get_logger


logger = get_logger(__name__)


class StoreSweeper:
    """后台清理任务：随应用生命周期启动/停止"""

    def __init__(
        self,
        attempt_store: PaymentAttemptStore,
        processed_store: ProcessedEventStore,
        *,
        interval_seconds: float = 1800,
        retention_seconds: float = 3600,
    ) -> None:
        self.attempt_store = attempt_store
        self.processed_store = processed_store
        self.interval_seconds = interval_seconds
        self.retention_seconds = retention_seconds
        self._task: Optional[asyncio.Task] = None

    async def sweep_once(self, now: Optional[datetime] = None) -> dict:
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(seconds=self.retention_seconds)
        evicted = await self.attempt_store.evict_older_than(cutoff)
        cleared = await self.processed_store.sweep()
        if evicted or cleared:
            logger.info("store_sweep_completed", attempts_evicted=evicted, processed_keys_cleared=cleared)
        return {"attempts_evicted": evicted, "processed_keys_cleared": cleared}

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.sweep_once()
            except Exception as exc:
                # Keep the loop alive; next tick retries
                logger.error("store_sweep_failed", error=str(exc), exc_info=True)

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run(), name="store-sweeper")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
