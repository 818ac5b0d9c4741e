"""
Retry/timeout executor for outbound gateway calls.

``RetryPolicy`` is a plain value object (attempts, backoff, retryable
predicate) so it can be tested without any I/O; ``GatewayCallExecutor`` is
the single place that applies it, using tenacity for the loop and
``asyncio.wait_for`` for the per-call deadline.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Mapping, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from application.ports.payment_gateway import (
    GatewayAuthError,
    GatewayCallError,
    GatewayNotFoundError,
    GatewayRequestError,
    GatewayTimeoutError,
)
from core.logging_config import get_logger
from domain.common.exceptions import BusinessException
from domain.payment.exceptions import (
    GatewayAuthFailureException,
    GatewayRejectedException,
    GatewayTimeoutException,
    GatewayUnavailableException,
    PaymentNotFoundException,
    PayoutNotFoundException,
)


logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUTS = {
    "order_creation": 30.0,
    "payment_verification": 45.0,
    "payment_fetch": 15.0,
    "payout_creation": 30.0,
    "payout_fetch": 15.0,
}

_NOT_FOUND_BY_OPERATION = {
    "payment_fetch": PaymentNotFoundException,
    "payout_fetch": PayoutNotFoundException,
}


def is_retryable_gateway_error(exc: BaseException) -> bool:
    return isinstance(exc, GatewayCallError) and exc.retryable


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    base_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 10.0
    retryable: Callable[[BaseException], bool] = is_retryable_gateway_error

    def delay_for(self, retry_number: int) -> float:
        """Delay before retry ``retry_number`` (0-based)."""
        return min(self.base_delay * self.multiplier ** retry_number, self.max_delay)

    def total_backoff(self) -> float:
        """Worst-case sleep before the final failure."""
        return sum(self.delay_for(n) for n in range(self.max_retries))

    def wait_strategy(self):
        return wait_exponential(multiplier=self.base_delay, exp_base=self.multiplier, max=self.max_delay)

    def with_max_retries(self, max_retries: int) -> "RetryPolicy":
        return replace(self, max_retries=max_retries)


class GatewayCallExecutor:
    """Runs one gateway operation with bounded retries and hard deadlines.

    Retryable failures (timeouts, transport errors, 5xx) are retried up to
    the policy bound; authentication and malformed-request errors get
    exactly one attempt. Whatever finally escapes is translated into a
    user-safe ``BusinessException``; the raw detail is logged.
    """

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        timeouts: Optional[Mapping[str, float]] = None,
        *,
        default_timeout: float = 30.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.policy = policy or RetryPolicy()
        self.timeouts = dict(DEFAULT_TIMEOUTS)
        if timeouts:
            self.timeouts.update(timeouts)
        self.default_timeout = default_timeout
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings=None, **kwargs) -> "GatewayCallExecutor":
        if settings is None:
            from core.settings import payment_settings as settings
        retry = settings.retry
        timeouts = settings.timeouts
        return cls(
            RetryPolicy(
                max_retries=retry.max_retries,
                base_delay=retry.base_delay,
                multiplier=retry.multiplier,
                max_delay=retry.max_delay,
            ),
            {
                "order_creation": timeouts.order_creation,
                "payment_verification": timeouts.payment_verification,
                "payment_fetch": timeouts.payment_fetch,
                "payout_creation": timeouts.payout_creation,
                "payout_fetch": timeouts.payout_fetch,
            },
            **kwargs,
        )

    def timeout_for(self, name: str) -> float:
        return self.timeouts.get(name, self.default_timeout)

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        name: str,
        max_retries: Optional[int] = None,
        *,
        timeout: Optional[float] = None,
        total_timeout: Optional[float] = None,
    ) -> T:
        """Run ``operation`` under the retry policy.

        ``timeout`` bounds each individual call (defaults to the deadline
        configured for ``name``); ``total_timeout`` optionally bounds the
        whole retry loop, sleeps included.
        """
        policy = self.policy if max_retries is None else self.policy.with_max_retries(max_retries)
        deadline = timeout if timeout is not None else self.timeout_for(name)
        try:
            if total_timeout is None:
                return await self._run(operation, name, policy, deadline)
            try:
                return await asyncio.wait_for(self._run(operation, name, policy, deadline), timeout=total_timeout)
            except asyncio.TimeoutError as exc:
                raise GatewayTimeoutError(f"{name} exceeded overall deadline of {total_timeout}s") from exc
        except GatewayCallError as exc:
            raise self._translate(exc, name) from exc

    async def _run(self, operation, name: str, policy: RetryPolicy, deadline: float):
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(policy.max_retries + 1),
            wait=policy.wait_strategy(),
            retry=retry_if_exception(policy.retryable),
            before_sleep=self._log_retry(name),
            sleep=self._sleep,
            reraise=True,
        ):
            with attempt:
                return await self._call_with_deadline(operation, name, deadline)

    @staticmethod
    async def _call_with_deadline(operation, name: str, deadline: float):
        try:
            return await asyncio.wait_for(operation(), timeout=deadline)
        except asyncio.TimeoutError as exc:
            raise GatewayTimeoutError(f"{name} timed out after {deadline}s") from exc

    @staticmethod
    def _log_retry(name: str):
        def _before_sleep(retry_state: RetryCallState) -> None:
            exc = retry_state.outcome.exception() if retry_state.outcome else None
            logger.warning(
                "gateway_call_retry",
                operation=name,
                attempt=retry_state.attempt_number,
                delay=retry_state.next_action.sleep if retry_state.next_action else None,
                error_type=type(exc).__name__ if exc else None,
                error=str(exc) if exc else None,
            )
        return _before_sleep

    @staticmethod
    def _translate(exc: GatewayCallError, name: str) -> BusinessException:
        log_fields = {
            "operation": name,
            "status_code": exc.status_code,
            "gateway_code": exc.code,
            "detail": exc.description,
        }
        if isinstance(exc, GatewayAuthError):
            # Configuration problem: for operators, not end users
            logger.error("gateway_auth_failure", **log_fields)
            return GatewayAuthFailureException(operation=name)
        if isinstance(exc, GatewayNotFoundError) and name in _NOT_FOUND_BY_OPERATION:
            logger.warning("gateway_resource_not_found", **log_fields)
            return _NOT_FOUND_BY_OPERATION[name](None)
        if isinstance(exc, GatewayRequestError):
            logger.warning("gateway_request_rejected", **log_fields)
            return GatewayRejectedException(
                operation=name,
                gateway_code=exc.code,
                gateway_description=exc.description,
            )
        if isinstance(exc, GatewayTimeoutError):
            logger.error("gateway_call_timed_out", **log_fields)
            return GatewayTimeoutException(operation=name)
        logger.error("gateway_call_failed", error_type=type(exc).__name__, **log_fields)
        return GatewayUnavailableException(operation=name)
