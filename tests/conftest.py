"""Pytest bootstrap configuration.

Ensure mandatory environment variables are set before test collection
and module imports that depend on application settings.
"""
import os

os.environ.setdefault("DATABASE__URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("RAZORPAY__KEY_ID", "rzp_test_key")
os.environ.setdefault("RAZORPAY__KEY_SECRET", "test_key_secret")
os.environ.setdefault("RAZORPAY__WEBHOOK_SECRET", "test_webhook_secret")

from functools import partial

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker

from application.services.settlement_service import build_revenue_distributor
from application.utils.retry import GatewayCallExecutor, RetryPolicy
from core.settings import RevenueSettings
from domain.services.signature import SignatureVerifier
from infrastructure.database import build_engine, create_tables
from infrastructure.stores import InMemoryPaymentAttemptStore, InMemoryProcessedEventStore
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork

from helpers import KEY_SECRET, WEBHOOK_SECRET, RecordingSleep, StubGateway


@pytest.fixture
async def engine():
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    await create_tables(bind=engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def uow_factory(engine):
    return partial(SQLAlchemyUnitOfWork, session_factory=async_sessionmaker(engine, expire_on_commit=False))


@pytest.fixture
async def file_engine(tmp_path):
    # pooled connections, so concurrent units of work get separate transactions
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'settlement.db'}")
    await create_tables(bind=engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def file_uow_factory(file_engine):
    return partial(SQLAlchemyUnitOfWork, session_factory=async_sessionmaker(file_engine, expire_on_commit=False))


@pytest.fixture
def gateway():
    return StubGateway()


@pytest.fixture
def sleeper():
    return RecordingSleep()


@pytest.fixture
def executor(sleeper):
    return GatewayCallExecutor(RetryPolicy(), sleep=sleeper)


@pytest.fixture
def verifier():
    return SignatureVerifier(KEY_SECRET, webhook_secret=WEBHOOK_SECRET)


@pytest.fixture
def distributor():
    return build_revenue_distributor(RevenueSettings())


@pytest.fixture
def attempt_store():
    return InMemoryPaymentAttemptStore(ttl_seconds=3600)


@pytest.fixture
def processed_store():
    return InMemoryProcessedEventStore(max_size=100)
