"""create_settlement_tables

Revision ID: 3f1c9a2b7d10
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3f1c9a2b7d10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'creators',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False, comment='创作者名称'),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('available_balance', sa.BigInteger(), nullable=False, server_default='0', comment='可提现余额'),
        sa.Column('revenue_subscriptions', sa.BigInteger(), nullable=False, server_default='0', comment='订阅收入'),
        sa.Column('revenue_merchandise', sa.BigInteger(), nullable=False, server_default='0', comment='周边收入'),
        sa.Column('revenue_events', sa.BigInteger(), nullable=False, server_default='0', comment='活动门票收入'),
        sa.Column('revenue_ads', sa.BigInteger(), nullable=False, server_default='0', comment='广告收入'),
        sa.Column('total_paid_out', sa.BigInteger(), nullable=False, server_default='0', comment='累计已提现'),
        sa.Column('payout_sequence', sa.Integer(), nullable=False, server_default='0', comment='提现序号，参与幂等键'),
        sa.Column('bank_account_holder', sa.String(length=200), nullable=True),
        sa.Column('bank_account_number', sa.String(length=64), nullable=True),
        sa.Column('bank_ifsc', sa.String(length=32), nullable=True),
        sa.Column('gateway_contact_id', sa.String(length=100), nullable=True),
        sa.Column('gateway_fund_account_id', sa.String(length=100), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('available_balance >= 0', name='ck_creators_balance_non_negative'),
    )
    op.create_index('ix_creators_id', 'creators', ['id'])

    op.create_table(
        'subscriptions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('subscriber_id', sa.Integer(), nullable=False, comment='订阅用户ID'),
        sa.Column('creator_id', sa.Integer(), nullable=True),
        sa.Column('tier', sa.String(length=20), nullable=False, comment='platform/creator'),
        sa.Column('plan_id', sa.String(length=100), nullable=True),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='INR'),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='PENDING_PAYMENT'),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('gateway_order_id', sa.String(length=100), nullable=True),
        sa.Column('gateway_payment_id', sa.String(length=100), nullable=True),
        sa.Column('gateway_subscription_id', sa.String(length=100), nullable=True),
        sa.Column('failure_reason', sa.Text(), nullable=True),
        sa.Column('activated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['creator_id'], ['creators.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('gateway_subscription_id'),
    )
    op.create_index('ix_subscriptions_id', 'subscriptions', ['id'])
    op.create_index('ix_subscriptions_subscriber_id', 'subscriptions', ['subscriber_id'])
    op.create_index('ix_subscriptions_creator_id', 'subscriptions', ['creator_id'])
    op.create_index('ix_subscriptions_status', 'subscriptions', ['status'])
    op.create_index('ix_subscriptions_gateway_order_id', 'subscriptions', ['gateway_order_id'])
    op.create_index('ix_subscriptions_gateway_order_status', 'subscriptions', ['gateway_order_id', 'status'])

    op.create_table(
        'commerce_orders',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('buyer_id', sa.Integer(), nullable=False),
        sa.Column('total_amount', sa.BigInteger(), nullable=False, comment='含税总额'),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='INR'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='PENDING'),
        sa.Column('gateway_order_id', sa.String(length=100), nullable=True),
        sa.Column('gateway_payment_id', sa.String(length=100), nullable=True),
        sa.Column('failure_reason', sa.Text(), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_commerce_orders_id', 'commerce_orders', ['id'])
    op.create_index('ix_commerce_orders_buyer_id', 'commerce_orders', ['buyer_id'])
    op.create_index('ix_commerce_orders_status', 'commerce_orders', ['status'])
    op.create_index('ix_commerce_orders_gateway_order_id', 'commerce_orders', ['gateway_order_id'])
    op.create_index('ix_commerce_orders_gateway_order_status', 'commerce_orders', ['gateway_order_id', 'status'])

    op.create_table(
        'commerce_order_items',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('item_type', sa.String(length=20), nullable=False, comment='merch/ticket/event/other'),
        sa.Column('item_ref', sa.String(length=100), nullable=True),
        sa.Column('name', sa.String(length=200), nullable=True),
        sa.Column('category', sa.String(length=50), nullable=True, comment='周边成本分类'),
        sa.Column('creator_id', sa.Integer(), nullable=True),
        sa.Column('unit_price', sa.BigInteger(), nullable=False, comment='税前单价'),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['order_id'], ['commerce_orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['creator_id'], ['creators.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_commerce_order_items_id', 'commerce_order_items', ['id'])
    op.create_index('ix_commerce_order_items_order_id', 'commerce_order_items', ['order_id'])
    op.create_index('ix_commerce_order_items_creator_id', 'commerce_order_items', ['creator_id'])

    op.create_table(
        'ledger_transactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('transaction_type', sa.String(length=20), nullable=False, comment='subscription/event/merch/other'),
        sa.Column('gross_amount', sa.BigInteger(), nullable=False),
        sa.Column('creator_net', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('platform_fee', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('cost_recovery', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='INR'),
        sa.Column('line_ref', sa.String(length=64), nullable=False, comment='subscription:<id> / item:<id>'),
        sa.Column('gateway_payment_id', sa.String(length=100), nullable=False),
        sa.Column('gateway_order_id', sa.String(length=100), nullable=True),
        sa.Column('buyer_id', sa.Integer(), nullable=True),
        sa.Column('creator_id', sa.Integer(), nullable=True),
        sa.Column('order_id', sa.Integer(), nullable=True),
        sa.Column('subscription_id', sa.Integer(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='completed'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('gateway_payment_id', 'line_ref', name='uq_ledger_payment_line'),
    )
    op.create_index('ix_ledger_transactions_id', 'ledger_transactions', ['id'])
    op.create_index('ix_ledger_transactions_transaction_type', 'ledger_transactions', ['transaction_type'])
    op.create_index('ix_ledger_transactions_gateway_payment_id', 'ledger_transactions', ['gateway_payment_id'])
    op.create_index('ix_ledger_transactions_buyer_id', 'ledger_transactions', ['buyer_id'])
    op.create_index('ix_ledger_transactions_creator_id', 'ledger_transactions', ['creator_id'])
    op.create_index('ix_ledger_transactions_created_at', 'ledger_transactions', ['created_at'])

    op.create_table(
        'processed_webhook_events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('event_id', sa.String(length=255), nullable=False, comment='网关事件ID'),
        sa.Column('event_type', sa.String(length=100), nullable=False),
        sa.Column('processed_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('event_id'),
    )
    op.create_index('ix_processed_webhook_events_id', 'processed_webhook_events', ['id'])

    op.create_table(
        'payouts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('creator_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='INR'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending',
                  comment='pending/processing/processed/failed/cancelled/reversed'),
        sa.Column('payout_type', sa.String(length=50), nullable=False, server_default='manual'),
        sa.Column('idempotency_key', sa.String(length=200), nullable=False),
        sa.Column('gateway_payout_id', sa.String(length=100), nullable=True),
        sa.Column('reference_id', sa.String(length=100), nullable=True),
        sa.Column('mode', sa.String(length=20), nullable=True),
        sa.Column('narration', sa.String(length=200), nullable=True),
        sa.Column('notes', sa.JSON(), nullable=True),
        sa.Column('failure_reason', sa.Text(), nullable=True),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('failed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['creator_id'], ['creators.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('idempotency_key'),
        sa.UniqueConstraint('gateway_payout_id'),
    )
    op.create_index('ix_payouts_id', 'payouts', ['id'])
    op.create_index('ix_payouts_creator_id', 'payouts', ['creator_id'])
    op.create_index('ix_payouts_status', 'payouts', ['status'])
    op.create_index('ix_payouts_created_at', 'payouts', ['created_at'])
    op.create_index('ix_payouts_status_updated', 'payouts', ['status', 'updated_at'])


def downgrade() -> None:
    op.drop_table('payouts')
    op.drop_table('processed_webhook_events')
    op.drop_table('ledger_transactions')
    op.drop_table('commerce_order_items')
    op.drop_table('commerce_orders')
    op.drop_table('subscriptions')
    op.drop_table('creators')
