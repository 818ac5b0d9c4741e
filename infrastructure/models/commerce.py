"""
商品订单数据库模型 - 订单与明细行
"""
from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from .base import Base


class CommerceOrderModel(Base):
    __tablename__ = "commerce_orders"

    id = Column(Integer, primary_key=True, index=True)
    buyer_id = Column(Integer, nullable=False, index=True)
    total_amount = Column(BigInteger, nullable=False, comment="含税总额")
    currency = Column(String(3), nullable=False, default="INR")
    status = Column(String(20), nullable=False, default="PENDING", index=True)

    gateway_order_id = Column(String(100), nullable=True, index=True)
    gateway_payment_id = Column(String(100), nullable=True)
    failure_reason = Column(Text, nullable=True)

    paid_at = Column(DateTime(timezone=True), nullable=True)
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

    # 明细随订单一起加载，结算时逐行分账
    items = relationship(
        "CommerceOrderItemModel",
        back_populates="order",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="CommerceOrderItemModel.id",
    )

    __table_args__ = (
        Index("ix_commerce_orders_gateway_order_status", "gateway_order_id", "status"),
    )

    def __repr__(self):
        return f"<CommerceOrderModel(id={self.id}, status='{self.status}', total={self.total_amount})>"


class CommerceOrderItemModel(Base):
    __tablename__ = "commerce_order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(
        Integer,
        ForeignKey("commerce_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    item_type = Column(String(20), nullable=False, comment="merch/ticket/event/other")
    item_ref = Column(String(100), nullable=True)
    name = Column(String(200), nullable=True)
    category = Column(String(50), nullable=True, comment="周边成本分类")
    creator_id = Column(Integer, ForeignKey("creators.id"), nullable=True, index=True)
    unit_price = Column(BigInteger, nullable=False, comment="税前单价")
    quantity = Column(Integer, nullable=False, default=1)

    order = relationship("CommerceOrderModel", back_populates="items")

    def __repr__(self):
        return f"<CommerceOrderItemModel(id={self.id}, item_type='{self.item_type}', qty={self.quantity})>"
