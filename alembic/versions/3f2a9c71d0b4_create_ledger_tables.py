"""create ledger transaction and event tables

Revision ID: 3f2a9c71d0b4
Revises:
Create Date: 2026-10-19 10:12:45.301288

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f2a9c71d0b4'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the committed-call log and the notification log."""
    op.create_table(
        'ledger_transactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('ledger_name', sa.String(length=100), nullable=False),
        sa.Column('seq', sa.Integer(), nullable=False),
        sa.Column('operation', sa.String(length=50), nullable=False),
        sa.Column('caller', sa.String(length=255), nullable=False),
        sa.Column('args_json', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('ledger_name', 'seq', name='uq_ledger_tx_seq'),
    )
    op.create_index('ix_ledger_tx_seq', 'ledger_transactions', ['ledger_name', 'seq'])

    op.create_table(
        'ledger_events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('ledger_name', sa.String(length=100), nullable=False),
        sa.Column('seq', sa.Integer(), nullable=False),
        sa.Column('transaction_seq', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('payload_json', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('ledger_name', 'seq', name='uq_ledger_event_seq'),
    )
    op.create_index('ix_ledger_event_seq', 'ledger_events', ['ledger_name', 'seq'])
    op.create_index('ix_ledger_event_type', 'ledger_events', ['ledger_name', 'type'])


def downgrade() -> None:
    """Drop both ledger tables."""
    op.drop_index('ix_ledger_event_type', table_name='ledger_events')
    op.drop_index('ix_ledger_event_seq', table_name='ledger_events')
    op.drop_table('ledger_events')
    op.drop_index('ix_ledger_tx_seq', table_name='ledger_transactions')
    op.drop_table('ledger_transactions')
