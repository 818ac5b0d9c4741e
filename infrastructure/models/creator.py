"""
创作者账户数据库模型 - 余额与收款账户
"""
from sqlalchemy import BigInteger, Column, DateTime, Integer, String, CheckConstraint
from datetime import datetime, timezone

from .base import Base


class CreatorModel(Base):
    __tablename__ = "creators"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False, comment="创作者名称")
    email = Column(String(255), nullable=True)
    phone = Column(String(32), nullable=True)

    # 金额均为最小货币单位（INR 为 paise）
    available_balance = Column(BigInteger, nullable=False, default=0, comment="可提现余额")
    revenue_subscriptions = Column(BigInteger, nullable=False, default=0, comment="订阅收入")
    revenue_merchandise = Column(BigInteger, nullable=False, default=0, comment="周边收入")
    revenue_events = Column(BigInteger, nullable=False, default=0, comment="活动门票收入")
    revenue_ads = Column(BigInteger, nullable=False, default=0, comment="广告收入")
    total_paid_out = Column(BigInteger, nullable=False, default=0, comment="累计已提现")
    payout_sequence = Column(Integer, nullable=False, default=0, comment="提现序号，参与幂等键")

    # 收款银行账户
    bank_account_holder = Column(String(200), nullable=True)
    bank_account_number = Column(String(64), nullable=True)
    bank_ifsc = Column(String(32), nullable=True)

    # 网关侧注册信息
    gateway_contact_id = Column(String(100), nullable=True)
    gateway_fund_account_id = Column(String(100), nullable=True)

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
        CheckConstraint("available_balance >= 0", name="ck_creators_balance_non_negative"),
    )

    def __repr__(self):
        return f"<CreatorModel(id={self.id}, name='{self.name}', available_balance={self.available_balance})>"
