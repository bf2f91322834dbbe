"""Initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-01-10 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def _id():
    return sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False)


def _account_fk():
    return sa.Column('account_id', postgresql.UUID(as_uuid=True),
                     sa.ForeignKey('accounts.id', ondelete='CASCADE'), nullable=False)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def _ledger_table(name: str) -> None:
    op.create_table(
        name,
        _id(),
        _account_fk(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=100), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_recurring', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(f'ix_{name}_account_id', name, ['account_id'])


def upgrade() -> None:
    op.create_table(
        'accounts',
        _id(),
        sa.Column('seller_id', sa.String(length=50), nullable=False),
        sa.Column('nickname', sa.String(length=255), nullable=True),
        sa.Column('site_id', sa.String(length=10), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_accounts_seller_id', 'accounts', ['seller_id'], unique=True)

    op.create_table(
        'account_tokens',
        _id(),
        _account_fk(),
        sa.Column('access_token_encrypted', sa.Text(), nullable=False),
        sa.Column('refresh_token_encrypted', sa.Text(), nullable=True),
        sa.Column('token_type', sa.String(length=50), nullable=True),
        sa.Column('scope', sa.Text(), nullable=True),
        sa.Column('expires_in', sa.Integer(), nullable=True),
        sa.Column('obtained_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_account_tokens_account_id', 'account_tokens', ['account_id'])

    op.create_table(
        'settings',
        _id(),
        _account_fk(),
        sa.Column('sync_interval', sa.Integer(), nullable=False, server_default='30'),
        sa.Column('sync_items', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('sync_orders', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('sync_questions', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('sync_history_days', sa.Integer(), nullable=False, server_default='30'),
        sa.Column('notifications_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('notify_new_questions', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('notify_new_orders', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('notify_low_stock', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('notify_questions_sla', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('theme', sa.String(length=20), nullable=False, server_default='system'),
        sa.Column('language', sa.String(length=10), nullable=False, server_default='pt-BR'),
        sa.Column('timezone', sa.String(length=64), nullable=False, server_default='America/Sao_Paulo'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('account_id'),
    )

    op.create_table(
        'items',
        _id(),
        _account_fk(),
        sa.Column('meli_item_id', sa.String(length=50), nullable=False),
        sa.Column('title', sa.String(length=500), nullable=True),
        sa.Column('status', sa.String(length=30), nullable=True),
        sa.Column('price', sa.Float(), nullable=True),
        sa.Column('available', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('sold', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('thumbnail', sa.Text(), nullable=True),
        sa.Column('picture', sa.Text(), nullable=True),
        sa.Column('permalink', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('meli_item_id'),
    )
    op.create_index('ix_items_account_id', 'items', ['account_id'])
    op.create_index('ix_items_account_status', 'items', ['account_id', 'status'])

    op.create_table(
        'orders',
        _id(),
        _account_fk(),
        sa.Column('meli_order_id', sa.String(length=50), nullable=False),
        sa.Column('status', sa.String(length=30), nullable=True),
        sa.Column('total_amount', sa.Float(), nullable=True),
        sa.Column('date_created', sa.DateTime(timezone=True), nullable=True),
        sa.Column('buyer_id', sa.String(length=50), nullable=True),
        sa.Column('buyer_nickname', sa.String(length=255), nullable=True),
        sa.Column('item_id', sa.String(length=50), nullable=True),
        sa.Column('item_title', sa.String(length=500), nullable=True),
        sa.Column('item_permalink', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('meli_order_id'),
    )
    op.create_index('ix_orders_account_id', 'orders', ['account_id'])
    op.create_index('ix_orders_account_date', 'orders', ['account_id', 'date_created'])

    op.create_table(
        'shipments',
        _id(),
        _account_fk(),
        sa.Column('meli_shipment_id', sa.String(length=50), nullable=False),
        sa.Column('order_id', sa.String(length=50), nullable=True),
        sa.Column('mode', sa.String(length=30), nullable=True),
        sa.Column('status', sa.String(length=30), nullable=True),
        sa.Column('substatus', sa.String(length=50), nullable=True),
        sa.Column('tracking_number', sa.String(length=100), nullable=True),
        sa.Column('tracking_method', sa.String(length=100), nullable=True),
        sa.Column('estimated_delivery', sa.DateTime(timezone=True), nullable=True),
        sa.Column('shipped_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivered_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('receiver_address', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('sender_address', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('cost', sa.Float(), nullable=True),
        sa.Column('sla_status', sa.String(length=30), nullable=True),
        sa.Column('sla_service', sa.String(length=50), nullable=True),
        sa.Column('sla_expected_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('sla_last_updated', sa.DateTime(timezone=True), nullable=True),
        sa.Column('handling_limit', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivery_limit', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivery_final', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('meli_shipment_id'),
    )
    op.create_index('ix_shipments_account_id', 'shipments', ['account_id'])
    op.create_index('ix_shipments_order_id', 'shipments', ['order_id'])
    op.create_index('ix_shipments_status_sla', 'shipments', ['status', 'sla_expected_date'])

    op.create_table(
        'questions',
        _id(),
        _account_fk(),
        sa.Column('meli_question_id', sa.String(length=50), nullable=False),
        sa.Column('item_id', sa.String(length=50), nullable=True),
        sa.Column('text', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=30), nullable=True),
        sa.Column('answer', sa.Text(), nullable=True),
        sa.Column('date_created', sa.DateTime(timezone=True), nullable=True),
        sa.Column('date_answered', sa.DateTime(timezone=True), nullable=True),
        sa.Column('from_id', sa.String(length=50), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('meli_question_id'),
    )
    op.create_index('ix_questions_account_id', 'questions', ['account_id'])
    op.create_index('ix_questions_account_status', 'questions', ['account_id', 'status'])

    op.create_table(
        'messages',
        _id(),
        _account_fk(),
        sa.Column('meli_message_id', sa.String(length=100), nullable=False),
        sa.Column('pack_id', sa.String(length=50), nullable=True),
        sa.Column('order_id', sa.String(length=50), nullable=True),
        sa.Column('item_id', sa.String(length=50), nullable=True),
        sa.Column('from_id', sa.String(length=50), nullable=True),
        sa.Column('to_id', sa.String(length=50), nullable=True),
        sa.Column('from_role', sa.String(length=20), nullable=True),
        sa.Column('to_role', sa.String(length=20), nullable=True),
        sa.Column('text', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=True),
        sa.Column('date_created', sa.DateTime(timezone=True), nullable=True),
        sa.Column('date_read', sa.DateTime(timezone=True), nullable=True),
        sa.Column('date_notified', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('meli_message_id'),
    )
    op.create_index('ix_messages_account_id', 'messages', ['account_id'])
    op.create_index('ix_messages_pack_id', 'messages', ['pack_id'])
    op.create_index('ix_messages_account_pack', 'messages', ['account_id', 'pack_id'])

    op.create_table(
        'billing_periods',
        _id(),
        _account_fk(),
        sa.Column('period_key', sa.String(length=30), nullable=False),
        sa.Column('date_from', sa.DateTime(timezone=True), nullable=True),
        sa.Column('date_to', sa.DateTime(timezone=True), nullable=True),
        sa.Column('expiration_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('period_status', sa.String(length=20), nullable=True, server_default='CLOSED'),
        sa.Column('total_amount', sa.Float(), nullable=True, server_default='0'),
        sa.Column('unpaid_amount', sa.Float(), nullable=True, server_default='0'),
        sa.Column('fees_amount', sa.Float(), nullable=True, server_default='0'),
        sa.Column('tax_amount', sa.Float(), nullable=True, server_default='0'),
        sa.Column('net_amount', sa.Float(), nullable=True, server_default='0'),
        sa.Column('raw_data', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('account_id', 'period_key', name='uq_billing_periods_account_key'),
    )
    op.create_index('ix_billing_periods_account_id', 'billing_periods', ['account_id'])
    op.create_index('ix_billing_periods_account_from', 'billing_periods', ['account_id', 'date_from'])

    op.create_table(
        'billing_charges',
        _id(),
        sa.Column('period_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('billing_periods.id', ondelete='CASCADE'), nullable=False),
        _account_fk(),
        sa.Column('charge_type', sa.String(length=20), nullable=False),
        sa.Column('category', sa.String(length=100), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('amount', sa.Float(), nullable=True, server_default='0'),
        sa.Column('charge_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('raw_data', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_billing_charges_period_id', 'billing_charges', ['period_id'])
    op.create_index('ix_billing_charges_account_id', 'billing_charges', ['account_id'])

    for name in ('expenses', 'taxes', 'extra_revenues'):
        _ledger_table(name)

    op.create_table(
        'webhook_events',
        _id(),
        sa.Column('event_id', sa.String(length=100), nullable=False),
        sa.Column('topic', sa.String(length=50), nullable=False),
        sa.Column('resource', sa.Text(), nullable=False),
        sa.Column('user_id', sa.String(length=50), nullable=True),
        sa.Column('application_id', sa.String(length=50), nullable=True),
        sa.Column('attempts', sa.Integer(), nullable=True, server_default='1'),
        sa.Column('payload', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('processed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('event_id'),
    )
    op.create_index('ix_webhook_events_user_id', 'webhook_events', ['user_id'])
    op.create_index('ix_webhook_events_pending', 'webhook_events', ['processed', 'received_at'])

    op.create_table(
        'sync_logs',
        _id(),
        _account_fk(),
        sa.Column('scope', sa.String(length=20), nullable=False, server_default='all'),
        sa.Column('days', sa.Integer(), nullable=False, server_default='30'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='running'),
        sa.Column('items_processed', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('orders_processed', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('errors', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('finished_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sync_logs_account_id', 'sync_logs', ['account_id'])
    op.create_index('ix_sync_logs_account_started', 'sync_logs', ['account_id', 'started_at'])


def downgrade() -> None:
    op.drop_table('sync_logs')
    op.drop_table('webhook_events')
    for name in ('extra_revenues', 'taxes', 'expenses'):
        op.drop_table(name)
    op.drop_table('billing_charges')
    op.drop_table('billing_periods')
    op.drop_table('messages')
    op.drop_table('questions')
    op.drop_table('shipments')
    op.drop_table('orders')
    op.drop_table('items')
    op.drop_table('settings')
    op.drop_table('account_tokens')
    op.drop_table('accounts')
