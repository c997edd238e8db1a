"""Initial schema: users, ledger, watchlist, market data, connections, snapshots

Revision ID: 20261018_01
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '20261018_01'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('user_id', sa.String(36), primary_key=True),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('first_name', sa.String(), nullable=True),
        sa.Column('last_name', sa.String(), nullable=True),
        sa.Column('identity_id', sa.String(), nullable=True),
        sa.Column('virtual_balance', sa.Float(), nullable=False, server_default='0'),
        sa.Column('version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('ix_users_user_id', 'users', ['user_id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_identity_id', 'users', ['identity_id'], unique=True)

    op.create_table(
        'positions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.user_id', ondelete='CASCADE'), nullable=False),
        sa.Column('symbol', sa.String(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('average_price', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_invested', sa.Float(), nullable=False, server_default='0'),
        sa.Column('last_updated', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.UniqueConstraint('user_id', 'symbol', name='uq_position_user_symbol'),
    )
    op.create_index('ix_positions_id', 'positions', ['id'])
    op.create_index('ix_positions_user_id', 'positions', ['user_id'])

    op.create_table(
        'transactions',
        sa.Column('transaction_id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('symbol', sa.String(), nullable=False),
        sa.Column('type', sa.String(4), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('total_amount', sa.Float(), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('expires_at', sa.Integer(), nullable=False),
    )
    op.create_index('ix_transactions_user_timestamp', 'transactions', ['user_id', 'timestamp'])
    op.create_index('ix_transactions_expires_at', 'transactions', ['expires_at'])

    op.create_table(
        'watchlist_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.user_id', ondelete='CASCADE'), nullable=False),
        sa.Column('symbol', sa.String(), nullable=False),
        sa.Column('added_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.UniqueConstraint('user_id', 'symbol', name='uq_watchlist_user_symbol'),
    )
    op.create_index('ix_watchlist_items_id', 'watchlist_items', ['id'])
    op.create_index('ix_watchlist_items_user_id', 'watchlist_items', ['user_id'])

    op.create_table(
        'bars_daily',
        sa.Column('symbol', sa.String(), primary_key=True),
        sa.Column('date', sa.String(10), primary_key=True),
        sa.Column('open', sa.Float(), nullable=False),
        sa.Column('high', sa.Float(), nullable=False),
        sa.Column('low', sa.Float(), nullable=False),
        sa.Column('close', sa.Float(), nullable=False),
        sa.Column('volume', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('exchange', sa.String(), nullable=True),
        sa.Column('sector', sa.String(), nullable=True),
        sa.Column('expires_at', sa.Integer(), nullable=False),
    )
    op.create_index('ix_bars_daily_expires_at', 'bars_daily', ['expires_at'])

    op.create_table(
        'bars_intraday',
        sa.Column('symbol', sa.String(), primary_key=True),
        sa.Column('timestamp', sa.String(32), primary_key=True),
        sa.Column('open', sa.Float(), nullable=False),
        sa.Column('high', sa.Float(), nullable=False),
        sa.Column('low', sa.Float(), nullable=False),
        sa.Column('close', sa.Float(), nullable=False),
        sa.Column('volume', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('expires_at', sa.Integer(), nullable=False),
    )
    op.create_index('ix_bars_intraday_expires_at', 'bars_intraday', ['expires_at'])

    op.create_table(
        'movers',
        sa.Column('pk', sa.String(), primary_key=True),
        sa.Column('sk', sa.String(), primary_key=True),
        sa.Column('symbol', sa.String(), nullable=False),
        sa.Column('exchange', sa.String(), nullable=False),
        sa.Column('sector', sa.String(), nullable=False),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('change', sa.Float(), nullable=False),
        sa.Column('change_percent', sa.Float(), nullable=False),
        sa.Column('volume', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('rank', sa.Integer(), nullable=False),
        sa.Column('date', sa.String(10), nullable=True),
        sa.Column('timestamp', sa.String(32), nullable=False),
        sa.Column('expires_at', sa.Integer(), nullable=False),
    )
    op.create_index('ix_movers_expires_at', 'movers', ['expires_at'])

    op.create_table(
        'forecasts',
        sa.Column('symbol', sa.String(), primary_key=True),
        sa.Column('horizon', sa.String(8), primary_key=True),
        sa.Column('target', sa.Float(), nullable=False),
        sa.Column('confidence', sa.Float(), nullable=False),
        sa.Column('timestamp', sa.String(32), nullable=False),
    )

    op.create_table(
        'connections',
        sa.Column('connection_id', sa.String(64), primary_key=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('subscriptions', sa.JSON(), nullable=False),
        sa.Column('expires_at', sa.Integer(), nullable=False),
    )
    op.create_index('ix_connections_expires_at', 'connections', ['expires_at'])

    op.create_table(
        'portfolio_snapshots',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.user_id', ondelete='CASCADE'), nullable=False),
        sa.Column('snapshot_date', sa.Date(), nullable=False),
        sa.Column('total_value', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_invested', sa.Float(), nullable=False, server_default='0'),
        sa.Column('profit_loss', sa.Float(), nullable=False, server_default='0'),
        sa.Column('profit_loss_percent', sa.Float(), nullable=False, server_default='0'),
        sa.Column('cash_balance', sa.Float(), nullable=False, server_default='0'),
        sa.Column('positions', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.UniqueConstraint('user_id', 'snapshot_date', name='uq_snapshot_user_date'),
    )
    op.create_index('ix_portfolio_snapshots_user_id', 'portfolio_snapshots', ['user_id'])


def downgrade() -> None:
    op.drop_table('portfolio_snapshots')
    op.drop_table('connections')
    op.drop_table('forecasts')
    op.drop_table('movers')
    op.drop_table('bars_intraday')
    op.drop_table('bars_daily')
    op.drop_table('watchlist_items')
    op.drop_table('transactions')
    op.drop_table('positions')
    op.drop_table('users')
