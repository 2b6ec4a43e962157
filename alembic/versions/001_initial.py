"""Initial migration

Revision ID: 001_initial
Revises: 
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create reports table
    op.create_table(
        'reports',
        sa.Column('report_id', sa.String(32), primary_key=True),
        sa.Column('status', sa.Enum('processing', 'completed', 'failed', name='reportstatus', native_enum=False, length=20), nullable=False),
        sa.Column('source', sa.Enum('youtube', 'podcast', 'article', name='reportsource', native_enum=False, length=20), nullable=False),
        sa.Column('channel_id', sa.String(255), nullable=True),
        sa.Column('video_id', sa.String(255), nullable=True),
        sa.Column('url', sa.Text(), nullable=True),
        sa.Column('format', sa.Enum('summary', 'detailed', 'bullet_points', name='reportformat', native_enum=False, length=20), nullable=False),
        sa.Column('language', sa.Text(), nullable=False),
        sa.Column('summary_title', sa.Text(), nullable=True),
        sa.Column('summary_points', sa.JSON(), nullable=True),
        sa.Column('word_count', sa.Integer(), nullable=True),
        sa.Column('full_text', sa.Text(), nullable=True),
        sa.Column('delivery_method', sa.Enum('email', 'webhook', 'none', name='deliverymethod', native_enum=False, length=20), nullable=False),
        sa.Column('delivery_address', sa.Text(), nullable=True),
        sa.Column('delivery_status', sa.Enum('queued', 'sent', 'failed', 'none', name='deliverystatus', native_enum=False, length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_reports_status', 'reports', ['status'])
    op.create_index('ix_reports_created_at', 'reports', ['created_at'])

    # Create legacy_reports table
    op.create_table(
        'legacy_reports',
        sa.Column('id', sa.String(255), primary_key=True),
        sa.Column('title', sa.Text(), nullable=True),
        sa.Column('created_at', sa.String(40), nullable=False),
    )


def downgrade() -> None:
    op.drop_table('legacy_reports')
    op.drop_index('ix_reports_created_at', table_name='reports')
    op.drop_index('ix_reports_status', table_name='reports')
    op.drop_table('reports')
