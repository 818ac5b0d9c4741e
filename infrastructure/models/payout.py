"""
提现数据库模型
"""
from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Index, Integer, JSON, String, Text
from datetime import datetime, timezone

from .base import Base


class PayoutModel(Base):
    __tablename__ = "payouts"

    id = Column(Integer, primary_key=True, index=True)
    creator_id = Column(Integer, ForeignKey("creators.id"), nullable=False, index=True)
    amount = Column(BigInteger, nullable=False)
    currency = Column(String(3), nullable=False, default="INR")
    status = Column(
        String(20),
        nullable=False,
        default="pending",
        index=True,
        comment="pending/processing/processed/failed/cancelled/reversed",
    )
    payout_type = Column(String(50), nullable=False, default="manual")

    idempotency_key = Column(String(200), nullable=False, unique=True)
    gateway_payout_id = Column(String(100), nullable=True, unique=True)
    reference_id = Column(String(100), nullable=True)
    mode = Column(String(20), nullable=True)
    narration = Column(String(200), nullable=True)
    notes = Column(JSON, nullable=True)
    failure_reason = Column(Text, nullable=True)

    processed_at = Column(DateTime(timezone=True), nullable=True)
    failed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_payouts_status_updated", "status", "updated_at"),
    )

    def __repr__(self):
        return f"<PayoutModel(id={self.id}, creator_id={self.creator_id}, amount={self.amount}, status='{self.status}')>"
