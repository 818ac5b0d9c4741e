"""
订阅数据库模型
"""
from sqlalchemy import BigInteger, Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text
from datetime import datetime, timezone

from .base import Base


class SubscriptionModel(Base):
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    subscriber_id = Column(Integer, nullable=False, index=True, comment="订阅用户ID")
    creator_id = Column(Integer, ForeignKey("creators.id"), nullable=True, index=True)
    tier = Column(String(20), nullable=False, comment="platform/creator")
    plan_id = Column(String(100), nullable=True)

    amount = Column(BigInteger, nullable=False)
    currency = Column(String(3), nullable=False, default="INR")
    status = Column(String(32), nullable=False, default="PENDING_PAYMENT", index=True)
    active = Column(Boolean, nullable=False, default=False)

    gateway_order_id = Column(String(100), nullable=True, index=True)
    gateway_payment_id = Column(String(100), nullable=True)
    gateway_subscription_id = Column(String(100), nullable=True, unique=True)
    failure_reason = Column(Text, nullable=True)

    activated_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_subscriptions_gateway_order_status", "gateway_order_id", "status"),
    )

    def __repr__(self):
        return f"<SubscriptionModel(id={self.id}, tier='{self.tier}', status='{self.status}')>"
