"""Daily video records

Revision ID: 0001
Revises:
Create Date: 2025-10-01

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "daily_video_records",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("video_id", sa.String(64), nullable=False),
        sa.Column("day_key", sa.String(10), nullable=False),
        sa.Column("channel_id", sa.String(64), nullable=True),
        sa.Column("channel_name", sa.String(255), nullable=True),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("thumbnail_url", sa.Text(), nullable=True),
        sa.Column("view_count", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("like_count", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("comment_count", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("upload_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("collection_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("sub_category", sa.String(100), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="unclassified"),
        sa.Column("collection_type", sa.String(20), nullable=True),
        sa.Column("keyword", sa.String(255), nullable=True),
        sa.Column("source", sa.String(100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("video_id", "day_key", name="uq_video_day"),
    )
    op.create_index("ix_daily_video_records_day_key", "daily_video_records", ["day_key"])
    op.create_index("ix_daily_video_records_updated_at", "daily_video_records", ["updated_at"])


def downgrade() -> None:
    op.drop_index("ix_daily_video_records_updated_at", table_name="daily_video_records")
    op.drop_index("ix_daily_video_records_day_key", table_name="daily_video_records")
    op.drop_table("daily_video_records")
