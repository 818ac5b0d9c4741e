"""
Payout reconciliation tasks.

Webhooks are the primary path for payout status; these tasks cover lost or
delayed deliveries by asking the gateway directly, and resubmit transfers
whose creation response never arrived.
"""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from functools import partial
from typing import AsyncIterator

from celery import shared_task
from sqlalchemy.ext.asyncio import async_sessionmaker

from application.services.payout_service import PayoutService
from application.utils.retry import GatewayCallExecutor
from core.config import settings
from core.logging_config import get_logger
from core.settings import payment_settings
from domain.common.exceptions import BusinessException
from domain.payment.exceptions import GatewayException
from domain.payout.entity import PayoutStatus
from infrastructure.database import build_engine
from infrastructure.external.payments import get_payment_gateway
from infrastructure.tasks.utils.base_task import BaseTask
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork


logger = get_logger(__name__)


@asynccontextmanager
async def _payout_service() -> AsyncIterator[PayoutService]:
    # asyncio.run creates a fresh loop per task; pooled connections cannot cross loops
    engine = build_engine(settings.database.url, echo=settings.database.echo)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    gateway = get_payment_gateway(payment_settings)
    try:
        yield PayoutService(
            partial(SQLAlchemyUnitOfWork, session_factory=session_factory),
            gateway,
            GatewayCallExecutor.from_settings(payment_settings),
            payment_settings.payout,
            source_account_number=payment_settings.razorpay.account_number,
        )
    finally:
        await gateway.aclose()
        await engine.dispose()


async def reconcile_payouts(
    service: PayoutService,
    *,
    older_than_seconds: int,
    limit: int = 100,
) -> dict:
    """Settle payouts left behind by lost responses or webhooks.

    Pending payouts without a transfer id are resubmitted under their stored
    idempotency key; processing payouts are re-synced from the gateway. One
    failing payout does not stop the batch.
    """
    summary = {"checked": 0, "updated": 0, "resubmitted": 0, "failed": 0}
    stale = []
    for status in (PayoutStatus.PENDING, PayoutStatus.PROCESSING):
        stale.extend(await service.list_stale_payouts(older_than_seconds, limit=limit, status=status))
    for payout in stale:
        summary["checked"] += 1
        try:
            if payout.gateway_payout_id:
                outcome = await service.sync_payout_status(payout.gateway_payout_id)
                if outcome.reason and outcome.reason.startswith("payout_"):
                    summary["updated"] += 1
            else:
                await service.resubmit_payout(payout)
                summary["resubmitted"] += 1
        except BusinessException as exc:
            summary["failed"] += 1
            logger.warning(
                "payout_reconcile_failed",
                payout_id=payout.id,
                gateway_payout_id=payout.gateway_payout_id,
                error=exc.message,
            )
    logger.info("payout_reconcile_completed", **summary)
    return summary


@shared_task(name="payouts.sync_status", bind=True, base=BaseTask, max_retries=3, default_retry_delay=30)
def sync_status(self, gateway_payout_id: str):
    async def _run():
        async with _payout_service() as service:
            return await service.sync_payout_status(gateway_payout_id)

    try:
        outcome = asyncio.run(_run())
    except GatewayException as exc:
        raise self.retry(exc=exc)
    return outcome.model_dump()


@shared_task(name="payouts.reconcile_pending", base=BaseTask)
def reconcile_pending(limit: int = 100):
    async def _run():
        async with _payout_service() as service:
            return await reconcile_payouts(
                service,
                older_than_seconds=payment_settings.payout.reconcile_after_seconds,
                limit=limit,
            )

    return asyncio.run(_run())
