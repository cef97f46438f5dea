"""Video library items

Revision ID: 0001
Revises:
Create Date: 2026-10-18

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "video_library_items",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("owner_user_id", sa.String(255), nullable=False),
        sa.Column("job_id", sa.String(255), nullable=False),
        sa.Column("channel_id", sa.String(100), nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default="planned"),
        sa.Column("manifest_version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("next_poll_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "document",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_video_library_items_owner_user_id", "video_library_items", ["owner_user_id"]
    )
    op.create_index("ix_video_library_items_job_id", "video_library_items", ["job_id"])
    op.create_index(
        "ix_video_library_items_next_poll_at", "video_library_items", ["next_poll_at"]
    )
    op.create_index(
        "ix_video_library_items_owner_status",
        "video_library_items",
        ["owner_user_id", "status"],
    )


def downgrade() -> None:
    op.drop_index("ix_video_library_items_owner_status", table_name="video_library_items")
    op.drop_index("ix_video_library_items_next_poll_at", table_name="video_library_items")
    op.drop_index("ix_video_library_items_job_id", table_name="video_library_items")
    op.drop_index("ix_video_library_items_owner_user_id", table_name="video_library_items")
    op.drop_table("video_library_items")
