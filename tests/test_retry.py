import asyncio

import pytest

from application.ports.payment_gateway import (
    GatewayAuthError,
    GatewayConnectionError,
    GatewayNotFoundError,
    GatewayRequestError,
    GatewayServerError,
)
from application.utils.retry import GatewayCallExecutor, RetryPolicy
from domain.payment.exceptions import (
    GatewayAuthFailureException,
    GatewayRejectedException,
    GatewayTimeoutException,
    GatewayUnavailableException,
    PaymentNotFoundException,
)


class Flaky:
    def __init__(self, *errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


def test_policy_delays_follow_exponential_backoff():
    policy = RetryPolicy()
    assert [policy.delay_for(n) for n in range(3)] == [1.0, 2.0, 4.0]
    assert policy.total_backoff() == 7.0
    assert RetryPolicy(max_delay=3.0).delay_for(5) == 3.0


@pytest.mark.asyncio
async def test_retries_transient_errors_then_succeeds(executor, sleeper):
    op = Flaky(GatewayConnectionError("reset"), GatewayServerError("502", status_code=502))
    assert await executor.execute(op, "payment_fetch") == "ok"
    assert op.calls == 3
    assert sleeper.delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_exhausted_retries_surface_as_unavailable(executor, sleeper):
    op = Flaky(*[GatewayServerError("boom", status_code=503) for _ in range(4)])
    with pytest.raises(GatewayUnavailableException):
        await executor.execute(op, "order_creation")
    assert op.calls == 4
    assert sleeper.delays == [1.0, 2.0, 4.0]


@pytest.mark.asyncio
async def test_auth_failure_gets_a_single_attempt(executor, sleeper):
    op = Flaky(GatewayAuthError("bad key", status_code=401))
    with pytest.raises(GatewayAuthFailureException) as excinfo:
        await executor.execute(op, "payout_creation")
    assert op.calls == 1
    assert sleeper.delays == []
    assert "bad key" not in excinfo.value.message


@pytest.mark.asyncio
async def test_rejected_request_is_not_retried(executor):
    op = Flaky(GatewayRequestError("bad", status_code=400, code="BAD_REQUEST_ERROR", description="amount too low"))
    with pytest.raises(GatewayRejectedException) as excinfo:
        await executor.execute(op, "payout_creation")
    assert op.calls == 1
    assert excinfo.value.gateway_code == "BAD_REQUEST_ERROR"


@pytest.mark.asyncio
async def test_not_found_on_fetch_maps_to_resource_error(executor):
    op = Flaky(GatewayNotFoundError("missing", status_code=404))
    with pytest.raises(PaymentNotFoundException):
        await executor.execute(op, "payment_fetch")


@pytest.mark.asyncio
async def test_max_retries_override(executor, sleeper):
    op = Flaky(*[GatewayConnectionError("down") for _ in range(5)])
    with pytest.raises(GatewayUnavailableException):
        await executor.execute(op, "payment_fetch", max_retries=0)
    assert op.calls == 1
    assert sleeper.delays == []


@pytest.mark.asyncio
async def test_per_call_deadline_is_retried_as_timeout(sleeper):
    executor = GatewayCallExecutor(RetryPolicy(max_retries=1), sleep=sleeper)

    async def hang():
        await asyncio.sleep(10)

    with pytest.raises(GatewayTimeoutException):
        await executor.execute(hang, "payment_fetch", timeout=0.01)
    assert sleeper.delays == [1.0]


@pytest.mark.asyncio
async def test_total_timeout_bounds_the_whole_loop():
    executor = GatewayCallExecutor(RetryPolicy(max_retries=5))
    op = Flaky(*[GatewayConnectionError("down") for _ in range(6)])
    with pytest.raises(GatewayTimeoutException):
        await executor.execute(op, "payment_fetch", total_timeout=0.05)
    assert op.calls < 6


def test_timeouts_are_looked_up_by_operation():
    executor = GatewayCallExecutor(timeouts={"payment_fetch": 5.0}, default_timeout=12.0)
    assert executor.timeout_for("payment_fetch") == 5.0
    assert executor.timeout_for("order_creation") == 30.0
    assert executor.timeout_for("something_else") == 12.0
