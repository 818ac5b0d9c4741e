"""
结算流水与已处理回调事件模型
"""
from sqlalchemy import BigInteger, Column, DateTime, Integer, String, Text, UniqueConstraint
from datetime import datetime, timezone

from .base import Base


class LedgerTransactionModel(Base):
    __tablename__ = "ledger_transactions"

    id = Column(Integer, primary_key=True, index=True)
    transaction_type = Column(String(20), nullable=False, index=True, comment="subscription/event/merch/other")
    gross_amount = Column(BigInteger, nullable=False)
    creator_net = Column(BigInteger, nullable=False, default=0)
    platform_fee = Column(BigInteger, nullable=False, default=0)
    cost_recovery = Column(BigInteger, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="INR")

    line_ref = Column(String(64), nullable=False, comment="subscription:<id> / item:<id>")
    gateway_payment_id = Column(String(100), nullable=False, index=True)
    gateway_order_id = Column(String(100), nullable=True)

    buyer_id = Column(Integer, nullable=True, index=True)
    creator_id = Column(Integer, nullable=True, index=True)
    order_id = Column(Integer, nullable=True)
    subscription_id = Column(Integer, nullable=True)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="completed")

    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )

    __table_args__ = (
        # 同一笔支付的同一行只能入账一次
        UniqueConstraint("gateway_payment_id", "line_ref", name="uq_ledger_payment_line"),
    )

    def __repr__(self):
        return (
            f"<LedgerTransactionModel(id={self.id}, type='{self.transaction_type}', "
            f"gross={self.gross_amount}, creator_net={self.creator_net})>"
        )


class ProcessedWebhookEventModel(Base):
    __tablename__ = "processed_webhook_events"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(String(255), nullable=False, unique=True, comment="网关事件ID")
    event_type = Column(String(100), nullable=False)
    processed_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self):
        return f"<ProcessedWebhookEventModel(event_id='{self.event_id}', event_type='{self.event_type}')>"
