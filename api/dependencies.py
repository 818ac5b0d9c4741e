"""
API依赖项 - 网关客户端、存储与应用服务的装配
"""
from functools import lru_cache
from typing import AsyncIterator

from fastapi import Depends, Request

from application.ports.payment_gateway import PaymentGateway
from application.ports.tracking import PaymentAttemptStore, ProcessedEventStore
from application.services.order_broker import OrderBroker
from application.services.payment_verification import PaymentVerificationService
from application.services.payout_service import PayoutService
from application.services.settlement_service import SettlementService, build_revenue_distributor
from application.services.webhook_dispatcher import WebhookDispatcher
from application.utils.retry import GatewayCallExecutor
from core.settings import payment_settings
from domain.revenue.service import RevenueDistributor
from domain.services.signature import SignatureVerifier
from infrastructure.external.payments import get_payment_gateway
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork


def get_uow_factory():
    return SQLAlchemyUnitOfWork


async def get_gateway() -> AsyncIterator[PaymentGateway]:
    """每个请求一个网关客户端，请求结束后关闭底层 HTTP 连接"""
    gateway = get_payment_gateway(payment_settings)
    try:
        yield gateway
    finally:
        await gateway.aclose()


def get_executor() -> GatewayCallExecutor:
    return GatewayCallExecutor.from_settings(payment_settings)


def get_signature_verifier() -> SignatureVerifier:
    razorpay = payment_settings.razorpay
    return SignatureVerifier(razorpay.key_secret, webhook_secret=razorpay.effective_webhook_secret)


@lru_cache
def get_revenue_distributor() -> RevenueDistributor:
    return build_revenue_distributor(payment_settings.revenue)


def get_attempt_store(request: Request) -> PaymentAttemptStore:
    return request.app.state.attempt_store


def get_processed_store(request: Request) -> ProcessedEventStore:
    return request.app.state.processed_store


async def get_order_broker(
    gateway: PaymentGateway = Depends(get_gateway),
    executor: GatewayCallExecutor = Depends(get_executor),
) -> OrderBroker:
    return OrderBroker(gateway, executor, allowed_currencies=payment_settings.orders.allowed_currencies)


async def get_verification_service(
    gateway: PaymentGateway = Depends(get_gateway),
    executor: GatewayCallExecutor = Depends(get_executor),
    verifier: SignatureVerifier = Depends(get_signature_verifier),
    attempt_store: PaymentAttemptStore = Depends(get_attempt_store),
) -> PaymentVerificationService:
    return PaymentVerificationService(gateway, executor, verifier, attempt_store)


async def get_settlement_service(
    uow_factory=Depends(get_uow_factory),
    distributor: RevenueDistributor = Depends(get_revenue_distributor),
) -> SettlementService:
    return SettlementService(uow_factory, distributor)


async def get_payout_service(
    uow_factory=Depends(get_uow_factory),
    gateway: PaymentGateway = Depends(get_gateway),
    executor: GatewayCallExecutor = Depends(get_executor),
) -> PayoutService:
    return PayoutService(
        uow_factory,
        gateway,
        executor,
        payment_settings.payout,
        source_account_number=payment_settings.razorpay.account_number,
    )


async def get_webhook_dispatcher(
    processed_store: ProcessedEventStore = Depends(get_processed_store),
    settlement: SettlementService = Depends(get_settlement_service),
    payouts: PayoutService = Depends(get_payout_service),
) -> WebhookDispatcher:
    return WebhookDispatcher(processed_store, settlement, payouts)
