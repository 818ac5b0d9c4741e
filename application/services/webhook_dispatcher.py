"""
Webhook dispatcher: de-duplicate, then route verified events to handlers.
"""
from __future__ import annotations

import time
from typing import Awaitable, Callable, Optional

from application.dtos.payments import SettlementOutcome
from application.dtos.webhooks import (
    PaymentWebhookEvent,
    PayoutWebhookEvent,
    SubscriptionWebhookEvent,
    WebhookEvent,
)
from application.ports.tracking import ProcessedEventStore
from application.services.payout_service import PayoutService
from application.services.settlement_service import SettlementService
from core.logging_config import get_logger


logger = get_logger(__name__)

Handler = Callable[[WebhookEvent], Awaitable[SettlementOutcome]]


def dedup_key(event: WebhookEvent, arrival_ms: Optional[int] = None) -> str:
    if event.id:
        return event.id
    arrival = arrival_ms if arrival_ms is not None else int(time.time() * 1000)
    return f"{event.entity_id}_{event.event}_{arrival}"


class WebhookDispatcher:
    """Processes each event at most once per process (and once durably for settlements).

    The key is claimed before dispatch so a concurrent duplicate short-circuits;
    a failing handler releases it so the gateway's redelivery can try again.
    """

    def __init__(
        self,
        processed_store: ProcessedEventStore,
        settlement: SettlementService,
        payouts: PayoutService,
    ) -> None:
        self.processed_store = processed_store
        self.settlement = settlement
        self.payouts = payouts
        self._handlers: dict[str, Handler] = {
            "payment.captured": self._on_payment_captured,
            "payment.failed": self._on_payment_failed,
            "subscription.activated": self._on_subscription_activated,
            "subscription.cancelled": self._on_subscription_cancelled,
            "payout.processed": self._on_payout_status,
            "payout.failed": self._on_payout_status,
            "payout.cancelled": self._on_payout_status,
            "payout.reversed": self._on_payout_status,
        }

    async def process_webhook_event(
        self, event: WebhookEvent, *, arrival_ms: Optional[int] = None
    ) -> SettlementOutcome:
        key = dedup_key(event, arrival_ms)
        if not await self.processed_store.add_if_absent(key):
            logger.info("webhook_already_processed", event_key=key, event_type=event.event)
            return SettlementOutcome(reason="already_processed")

        handler = self._handlers.get(event.event)
        if handler is None:
            logger.info("webhook_event_not_handled", event_key=key, event_type=event.event)
            return SettlementOutcome(reason="event_not_handled")

        try:
            outcome = await handler(event)
        except Exception:
            await self.processed_store.discard(key)
            logger.error("webhook_handler_failed", event_key=key, event_type=event.event, exc_info=True)
            raise
        logger.info(
            "webhook_processed",
            event_key=key,
            event_type=event.event,
            reason=outcome.reason,
            entity=outcome.entity,
            entity_id=outcome.entity_id,
        )
        return outcome

    async def _on_payment_captured(self, event: PaymentWebhookEvent) -> SettlementOutcome:
        payment = event.payment
        return await self.settlement.settle_payment_captured(
            payment.order_id,
            payment.id,
            amount=payment.amount,
            event_id=event.id,
            event_type=event.event,
        )

    async def _on_payment_failed(self, event: PaymentWebhookEvent) -> SettlementOutcome:
        payment = event.payment
        return await self.settlement.mark_payment_failed(
            payment.order_id,
            reason=payment.error_description or payment.error_code,
            gateway_payment_id=payment.id,
        )

    async def _on_subscription_activated(self, event: SubscriptionWebhookEvent) -> SettlementOutcome:
        return await self.settlement.acknowledge_subscription_activated(event.subscription.id)

    async def _on_subscription_cancelled(self, event: SubscriptionWebhookEvent) -> SettlementOutcome:
        return await self.settlement.cancel_subscription(event.subscription.id)

    async def _on_payout_status(self, event: PayoutWebhookEvent) -> SettlementOutcome:
        return await self.payouts.apply_status_update(
            event.payout.id,
            event.target_status,
            event.payout.failure_reason,
        )
