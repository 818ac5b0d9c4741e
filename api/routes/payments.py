"""
Payments API routes.

Order creation, checkout verification with status polling, gateway webhooks
and a revenue preview. Keep this thin: no gateway or ledger details here.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header, Request, status
from fastapi.responses import JSONResponse

from api.dependencies import (
    get_order_broker,
    get_revenue_distributor,
    get_settlement_service,
    get_signature_verifier,
    get_verification_service,
    get_webhook_dispatcher,
)
from application.dtos.payments import CreateOrderRequest, RevenuePreviewRequest, VerifyPaymentRequest
from application.dtos.webhooks import parse_webhook_event
from application.services.order_broker import OrderBroker
from application.services.payment_verification import PaymentVerificationService
from application.services.settlement_service import SettlementService
from application.services.webhook_dispatcher import WebhookDispatcher
from core.logging_config import get_logger
from core.response import success_response
from core.settings import payment_settings
from domain.common.exceptions import ResourceNotFoundException
from domain.payment.exceptions import SignatureInvalidException
from domain.revenue.service import RevenueDistributor, preview_split
from domain.services.signature import SignatureVerifier


router = APIRouter(prefix="/payments", tags=["Payments"])
logger = get_logger(__name__)

SIGNATURE_HEADER = "X-Razorpay-Signature"
EVENT_ID_HEADER = "X-Razorpay-Event-Id"


@router.post("/orders", status_code=status.HTTP_201_CREATED)
async def create_order(req: CreateOrderRequest, broker: OrderBroker = Depends(get_order_broker)):
    order = await broker.create_from_request(req)
    # key_id is public; the checkout widget needs it
    return success_response(
        data={**order.model_dump(), "key_id": payment_settings.razorpay.key_id},
        message="Order created",
    )


@router.post("/verify")
async def verify_payment(
    req: VerifyPaymentRequest,
    verification: PaymentVerificationService = Depends(get_verification_service),
    settlement: SettlementService = Depends(get_settlement_service),
):
    result = await verification.verify_with_tracking(
        req.order_id, req.payment_id, req.signature, plan_id=req.tracking_ref
    )
    if not result.success:
        body = success_response(data=result.model_dump(mode="json"), message=result.message or "Processing")
        return JSONResponse(status_code=status.HTTP_202_ACCEPTED, content=body.model_dump(mode="json"))

    outcome = await settlement.settle_payment_captured(
        req.order_id, req.payment_id, amount=result.payment.amount if result.payment else None
    )
    return success_response(
        data={"verification": result.model_dump(mode="json"), "settlement": outcome.model_dump()},
        message="Payment verified",
    )


@router.get("/status")
async def list_payment_statuses(
    verification: PaymentVerificationService = Depends(get_verification_service),
):
    statuses = await verification.list_payment_statuses()
    return success_response(data=[s.model_dump(mode="json") for s in statuses])


@router.get("/status/{order_id}/{payment_id}")
async def get_payment_status(
    order_id: str,
    payment_id: str,
    verification: PaymentVerificationService = Depends(get_verification_service),
):
    view = await verification.get_payment_status(order_id, payment_id)
    if view is None:
        raise ResourceNotFoundException(
            "Payment attempt",
            f"{order_id}_{payment_id}",
            message="No tracked verification for this payment; consult the gateway for its status",
        )
    return success_response(data=view.model_dump(mode="json"))


@router.delete("/status/{order_id}/{payment_id}")
async def clear_payment_status(
    order_id: str,
    payment_id: str,
    verification: PaymentVerificationService = Depends(get_verification_service),
):
    removed = await verification.clear_payment_status(order_id, payment_id)
    return success_response(data={"removed": removed})


@router.post("/webhook")
async def payments_webhook(
    request: Request,
    signature: Optional[str] = Header(default=None, alias=SIGNATURE_HEADER),
    event_id: Optional[str] = Header(default=None, alias=EVENT_ID_HEADER),
    verifier: SignatureVerifier = Depends(get_signature_verifier),
    dispatcher: WebhookDispatcher = Depends(get_webhook_dispatcher),
):
    # Signature covers the raw bytes; verify before parsing anything
    raw_body = await request.body()
    if not verifier.verify_webhook(raw_body, signature):
        logger.warning("webhook_signature_invalid", event_id=event_id, has_signature=bool(signature))
        raise SignatureInvalidException("Invalid webhook signature")

    event = parse_webhook_event(raw_body, event_id=event_id)
    outcome = await dispatcher.process_webhook_event(event)
    logger.info("webhook_processed", event_type=event.event, event_id=event.id, reason=outcome.reason)
    return success_response(data=outcome.model_dump(), message="Webhook processed")


@router.post("/revenue/preview")
async def preview_revenue(
    req: RevenuePreviewRequest,
    distributor: RevenueDistributor = Depends(get_revenue_distributor),
):
    split = preview_split(
        distributor,
        product_type=req.product_type,
        gross=req.gross,
        unit_price=req.unit_price,
        quantity=req.quantity,
        category=req.category,
    )
    return success_response(data={**split.to_dict(), "platform_revenue": split.platform_revenue})
