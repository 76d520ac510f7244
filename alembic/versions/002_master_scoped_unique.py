"""Unique master-scoped generation rows

prota and prosem rows have a NULL bab_id, which a plain unique constraint
treats as distinct. This partial index makes (master_id, jenis) unique for
them.

Revision ID: 002_master_scoped_unique
Revises: 001_initial
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '002_master_scoped_unique'
down_revision: Union[str, None] = '001_initial'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_index(
        'uq_generation_status_master_jenis_no_bab',
        'generation_status',
        ['master_id', 'jenis'],
        unique=True,
        postgresql_where=sa.text('bab_id IS NULL'),
    )


def downgrade() -> None:
    op.drop_index('uq_generation_status_master_jenis_no_bab', table_name='generation_status')
