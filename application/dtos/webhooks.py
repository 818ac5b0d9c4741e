"""
Webhook event models.

The envelope is parsed first; its ``event`` name picks the typed model. Known
event types with a malformed body fail closed (InvalidWebhookPayload); unknown
types become ``UnhandledWebhookEvent`` and are acknowledged without action.
"""
from __future__ import annotations

from typing import Any, ClassVar, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from domain.payment.exceptions import InvalidWebhookPayloadException


class WebhookEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    event: str
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[int] = None


class _Entity(BaseModel):
    model_config = ConfigDict(extra="ignore")


class PaymentEntity(_Entity):
    id: str
    order_id: str
    amount: int
    currency: Optional[str] = None
    status: Optional[str] = None
    error_code: Optional[str] = None
    error_description: Optional[str] = None


class SubscriptionEntity(_Entity):
    id: str
    status: Optional[str] = None
    plan_id: Optional[str] = None


class PayoutEntity(_Entity):
    id: str
    status: Optional[str] = None
    amount: Optional[int] = None
    reference_id: Optional[str] = None
    failure_reason: Optional[str] = None


class WebhookEvent(BaseModel):
    entity_key: ClassVar[str] = ""

    id: Optional[str] = None
    event: str
    created_at: Optional[int] = None

    @property
    def entity_id(self) -> Optional[str]:
        entity = getattr(self, self.entity_key, None) if self.entity_key else None
        return getattr(entity, "id", None)


class PaymentWebhookEvent(WebhookEvent):
    entity_key: ClassVar[str] = "payment"
    payment: PaymentEntity


class SubscriptionWebhookEvent(WebhookEvent):
    entity_key: ClassVar[str] = "subscription"
    subscription: SubscriptionEntity


class PayoutWebhookEvent(WebhookEvent):
    entity_key: ClassVar[str] = "payout"
    payout: PayoutEntity

    @property
    def target_status(self) -> str:
        return self.event.split(".", 1)[1]


class UnhandledWebhookEvent(WebhookEvent):
    payload: dict[str, Any] = Field(default_factory=dict)


AnyWebhookEvent = Union[PaymentWebhookEvent, SubscriptionWebhookEvent, PayoutWebhookEvent, UnhandledWebhookEvent]

WEBHOOK_EVENT_MODELS: dict[str, type[WebhookEvent]] = {
    "payment.captured": PaymentWebhookEvent,
    "payment.failed": PaymentWebhookEvent,
    "subscription.activated": SubscriptionWebhookEvent,
    "subscription.cancelled": SubscriptionWebhookEvent,
    "payout.processed": PayoutWebhookEvent,
    "payout.failed": PayoutWebhookEvent,
    "payout.cancelled": PayoutWebhookEvent,
    "payout.reversed": PayoutWebhookEvent,
}


def parse_webhook_event(body: Union[bytes, str, dict], *, event_id: Optional[str] = None) -> AnyWebhookEvent:
    """Parse a raw webhook body; ``event_id`` (e.g. from a header) fills a missing id."""
    try:
        if isinstance(body, dict):
            envelope = WebhookEnvelope.model_validate(body)
        else:
            envelope = WebhookEnvelope.model_validate_json(body)
    except ValidationError as exc:
        raise InvalidWebhookPayloadException("Malformed webhook payload") from exc

    common = {"id": envelope.id or event_id, "event": envelope.event, "created_at": envelope.created_at}
    model = WEBHOOK_EVENT_MODELS.get(envelope.event)
    if model is None:
        return UnhandledWebhookEvent(payload=envelope.payload, **common)

    container = envelope.payload.get(model.entity_key)
    entity = container.get("entity") if isinstance(container, dict) else None
    try:
        return model.model_validate({**common, model.entity_key: entity})
    except ValidationError as exc:
        raise InvalidWebhookPayloadException(
            f"Malformed {envelope.event} payload", event_type=envelope.event
        ) from exc
