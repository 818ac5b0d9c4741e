"""
Creator payout routes.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from api.dependencies import get_payout_service
from application.dtos.payments import CreatePayoutRequest
from application.services.payout_service import PayoutService
from core.config import settings
from core.response import success_response


router = APIRouter(prefix="/payouts", tags=["Payouts"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_payout(req: CreatePayoutRequest, service: PayoutService = Depends(get_payout_service)):
    payout = await service.create_artist_payout(
        req.creator_id,
        req.amount,
        req.payout_type,
        idempotency_key=req.idempotency_key,
        narration=req.narration,
        notes=req.notes,
    )
    return success_response(data=payout.summary(), message="Payout created")


@router.get("/creators/{creator_id}")
async def list_creator_payouts(
    creator_id: int,
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    service: PayoutService = Depends(get_payout_service),
):
    payouts = await service.list_creator_payouts(creator_id, limit=limit)
    return success_response(data=[p.summary() for p in payouts])


@router.get("/{gateway_payout_id}/status")
async def sync_payout_status(gateway_payout_id: str, service: PayoutService = Depends(get_payout_service)):
    """Fetch the payout from the gateway and apply its status locally."""
    outcome = await service.sync_payout_status(gateway_payout_id)
    return success_response(data=outcome.model_dump())
