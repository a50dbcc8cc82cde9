"""create videos table

Revision ID: 3f1c2a9d7e10
Revises:
Create Date: 2026-10-19 10:12:44.118204
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3f1c2a9d7e10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

platform_enum = sa.Enum('YOUTUBE', 'PEERTUBE', 'ODYSEE', name='platform')
videotype_enum = sa.Enum('VIDEO', 'SHORT', 'STREAM', name='videotype')
sponsorblockstatus_enum = sa.Enum('SPONSOR', 'SELFPROMO', 'EXCLUSIVE_ACCESS', name='sponsorblockstatus')


def upgrade() -> None:
    op.create_table(
        'videos',
        sa.Column('video_id', sa.String(length=100), nullable=False),
        sa.Column('platform', platform_enum, nullable=False),
        sa.Column('type', videotype_enum, nullable=False),
        sa.Column('title', sa.String(length=1000), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=True),
        sa.Column('display_name', sa.String(length=255), nullable=False),
        sa.Column('username', sa.String(length=255), nullable=False),
        sa.Column('channel_id', sa.String(length=255), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_currently_live', sa.Boolean(), nullable=False),
        sa.Column('unread', sa.Boolean(), nullable=False),
        sa.Column('sponsor_block_status', sponsorblockstatus_enum, nullable=True),
        sa.Column('url', sa.String(length=1000), nullable=False),
        sa.PrimaryKeyConstraint('video_id'),
    )
    op.create_index('ix_videos_channel_id', 'videos', ['channel_id'])
    op.create_index('ix_videos_date', 'videos', ['date'])
    op.create_index('ix_videos_unread', 'videos', ['unread'])
    op.create_index('ix_videos_platform_channel', 'videos', ['platform', 'channel_id'])


def downgrade() -> None:
    op.drop_index('ix_videos_platform_channel', table_name='videos')
    op.drop_index('ix_videos_unread', table_name='videos')
    op.drop_index('ix_videos_date', table_name='videos')
    op.drop_index('ix_videos_channel_id', table_name='videos')
    op.drop_table('videos')
    sponsorblockstatus_enum.drop(op.get_bind(), checkfirst=True)
    videotype_enum.drop(op.get_bind(), checkfirst=True)
    platform_enum.drop(op.get_bind(), checkfirst=True)
