"""feat: create dlq registry and replay audit tables

Revision ID: 4f8e2a6c1b90
Revises:
Create Date: 2026-10-19 09:00:00
"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "4f8e2a6c1b90"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "dlq_topics",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("dlq_topic_name", sa.String(), nullable=False),
        sa.Column("source_topic", sa.String(), nullable=False),
        sa.Column("detection_type", sa.String(), server_default="MANUAL", nullable=False),
        sa.Column("error_field_path", sa.String(), nullable=True),
        sa.Column("status", sa.String(), server_default="ACTIVE", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("dlq_topic_name"),
    )

    op.create_table(
        "replay_jobs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("dlq_topic_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("initiated_by", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("total_messages", sa.Integer(), nullable=False),
        sa.Column("succeeded", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("failed", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(["dlq_topic_id"], ["dlq_topics.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_replay_jobs_dlq_topic_id", "replay_jobs", ["dlq_topic_id"], unique=False)
    op.create_index("ix_replay_jobs_status", "replay_jobs", ["status"], unique=False)
    op.create_index("ix_replay_jobs_created_at", "replay_jobs", ["created_at"], unique=False)

    op.create_table(
        "replay_messages",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("replay_job_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("message_key", sa.String(), nullable=True),
        sa.Column("dlq_offset", sa.BigInteger(), nullable=False),
        sa.Column("dlq_partition", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("replayed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(["replay_job_id"], ["replay_jobs.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_replay_messages_job_created",
        "replay_messages",
        ["replay_job_id", "created_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_replay_messages_job_created", table_name="replay_messages")
    op.drop_table("replay_messages")
    op.drop_index("ix_replay_jobs_created_at", table_name="replay_jobs")
    op.drop_index("ix_replay_jobs_status", table_name="replay_jobs")
    op.drop_index("ix_replay_jobs_dlq_topic_id", table_name="replay_jobs")
    op.drop_table("replay_jobs")
    op.drop_table("dlq_topics")
