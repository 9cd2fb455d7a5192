"""add ledgers table with creation parameters

Revision ID: 8c41e5d2a7f3
Revises: 3f2a9c71d0b4
Create Date: 2026-10-19 15:40:02.118734

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8c41e5d2a7f3'
down_revision: Union[str, Sequence[str], None] = '3f2a9c71d0b4'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Record each ledger's base URI and issuer."""
    op.create_table(
        'ledgers',
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('base_uri', sa.String(length=2048), nullable=False),
        sa.Column('issuer', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('name'),
    )


def downgrade() -> None:
    """Drop the ledgers table."""
    op.drop_table('ledgers')
