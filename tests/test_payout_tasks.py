import pytest

from application.ports.payment_gateway import GatewayAuthError, GatewayTimeoutError
from application.services.payout_service import PayoutService
from domain.payment.exceptions import GatewayTimeoutException
from domain.payout.entity import PayoutStatus
from infrastructure.tasks.tasks.payouts import reconcile_payouts

from helpers import load_creator, seed_creator


@pytest.fixture
def payouts(uow_factory, gateway, executor):
    return PayoutService(uow_factory, gateway, executor, source_account_number="2323230000000000")


@pytest.mark.asyncio
async def test_reconcile_updates_stale_processing_payouts(payouts, uow_factory, gateway):
    creator = await seed_creator(uow_factory, balance=100000)
    first = await payouts.create_artist_payout(creator.id, 20000)
    second = await payouts.create_artist_payout(creator.id, 30000)
    gateway.transfers[first.gateway_payout_id] = gateway.transfers[first.gateway_payout_id].model_copy(
        update={"status": "processed"}
    )
    gateway.transfers[second.gateway_payout_id] = gateway.transfers[second.gateway_payout_id].model_copy(
        update={"status": "rejected", "failure_reason": "Invalid IFSC"}
    )

    # negative age puts the cutoff in the future so fresh payouts count as stale
    summary = await reconcile_payouts(payouts, older_than_seconds=-3600)

    assert summary == {"checked": 2, "updated": 2, "resubmitted": 0, "failed": 0}
    assert (await load_creator(uow_factory, creator.id)).available_balance == 100000 - 20000
    statuses = {p.gateway_payout_id: p.status for p in await payouts.list_creator_payouts(creator.id)}
    assert statuses[first.gateway_payout_id] is PayoutStatus.PROCESSED
    assert statuses[second.gateway_payout_id] is PayoutStatus.FAILED


@pytest.mark.asyncio
async def test_reconcile_continues_after_gateway_failure(payouts, uow_factory, gateway):
    creator = await seed_creator(uow_factory, balance=100000)
    await payouts.create_artist_payout(creator.id, 20000)
    await payouts.create_artist_payout(creator.id, 30000)
    gateway.fail_with.append(GatewayAuthError("bad key", status_code=401))

    summary = await reconcile_payouts(payouts, older_than_seconds=-3600)

    assert summary == {"checked": 2, "updated": 0, "resubmitted": 0, "failed": 1}


@pytest.mark.asyncio
async def test_reconcile_ignores_recent_payouts(payouts, uow_factory, gateway):
    creator = await seed_creator(uow_factory, balance=100000)
    await payouts.create_artist_payout(creator.id, 20000)

    summary = await reconcile_payouts(payouts, older_than_seconds=3600)

    assert summary == {"checked": 0, "updated": 0, "resubmitted": 0, "failed": 0}
    assert gateway.count("fetch_transfer") == 0


@pytest.mark.asyncio
async def test_reconcile_resubmits_payouts_whose_response_was_lost(payouts, uow_factory, gateway):
    creator = await seed_creator(uow_factory, balance=100000)
    gateway.lose_transfer_responses = [GatewayTimeoutError("read timed out") for _ in range(4)]
    with pytest.raises(GatewayTimeoutException):
        await payouts.create_artist_payout(creator.id, 20000)

    summary = await reconcile_payouts(payouts, older_than_seconds=-3600)

    assert summary == {"checked": 1, "updated": 0, "resubmitted": 1, "failed": 0}
    assert len(gateway.transfers) == 1
    (stored,) = await payouts.list_creator_payouts(creator.id)
    assert stored.status is PayoutStatus.PROCESSING
    assert stored.gateway_payout_id == "pout_1"
    assert (await load_creator(uow_factory, creator.id)).available_balance == 80000
