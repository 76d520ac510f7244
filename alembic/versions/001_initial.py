"""Initial migration

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create masters table
    op.create_table(
        'masters',
        sa.Column('id', postgresql.UUID(as_uuid=False), primary_key=True),
        sa.Column('nama', sa.String(200), nullable=True),
        sa.Column(
            'generate_status',
            sa.Enum(
                'belum_siap', 'belum_mulai', 'menunggu', 'sedang_jalan',
                'sedang_proses', 'selesai', 'error',
                name='generate_status',
            ),
            nullable=False,
            server_default='belum_siap',
        ),
        sa.Column('generate_updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('percobaan', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('dokumen_total', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('dokumen_selesai', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('dokumen_error', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # Create babs table
    op.create_table(
        'babs',
        sa.Column('id', postgresql.UUID(as_uuid=False), primary_key=True),
        sa.Column('master_id', postgresql.UUID(as_uuid=False), sa.ForeignKey('masters.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('nomor', sa.Integer(), nullable=False),
        sa.Column('judul', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('master_id', 'nomor', name='uq_babs_master_nomor'),
    )

    # Create generation_status table
    op.create_table(
        'generation_status',
        sa.Column('id', postgresql.UUID(as_uuid=False), primary_key=True),
        sa.Column('master_id', postgresql.UUID(as_uuid=False), sa.ForeignKey('masters.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('jenis', sa.Enum('prota', 'prosem', 'rpm', 'lkpd', name='document_kind'), nullable=False),
        sa.Column('bab_id', postgresql.UUID(as_uuid=False), sa.ForeignKey('babs.id', ondelete='CASCADE'), nullable=True),
        sa.Column('status', sa.Enum('pending', 'generating', 'generating_ai', 'done', 'error', name='generation_state'), nullable=False, server_default='pending'),
        sa.Column('current_step', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_steps', sa.Integer(), nullable=True),
        sa.Column('file_path', sa.Text(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('master_id', 'jenis', 'bab_id', name='uq_generation_status_master_jenis_bab'),
    )

    # Create indexes
    op.create_index('ix_masters_generate_status', 'masters', ['generate_status'])
    op.create_index('ix_masters_generate_updated_at', 'masters', ['generate_updated_at'])


def downgrade() -> None:
    op.drop_index('ix_masters_generate_updated_at')
    op.drop_index('ix_masters_generate_status')
    op.drop_table('generation_status')
    op.drop_table('babs')
    op.drop_table('masters')
    op.execute('DROP TYPE IF EXISTS generation_state')
    op.execute('DROP TYPE IF EXISTS document_kind')
    op.execute('DROP TYPE IF EXISTS generate_status')
