"""initial schema

Revision ID: 5b1e2c7d9a40
Revises:
Create Date: 2026-10-19 09:12:44.318201

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5b1e2c7d9a40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create queue, receiver, report, log and option tables."""
    op.create_table(
        "replication_queue",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("post_id", sa.BigInteger(), nullable=False),
        sa.Column("action", sa.VARCHAR(length=20), nullable=False),
        sa.Column("payload", sa.Text(), nullable=False),
        sa.Column("receivers", sa.Text(), nullable=False),
        sa.Column("status", sa.VARCHAR(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_replication_queue_post_id", "replication_queue", ["post_id"], unique=False
    )
    op.create_index(
        "ix_replication_queue_status_created",
        "replication_queue",
        ["status", "created_at"],
        unique=False,
    )

    op.create_table(
        "receivers",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.VARCHAR(length=255), nullable=False),
        sa.Column("url", sa.VARCHAR(length=500), nullable=False),
        sa.Column("auth_token", sa.Text(), nullable=True),
        sa.Column("status", sa.VARCHAR(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_receivers_status", "receivers", ["status"], unique=False)

    op.create_table(
        "reports",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("post_id", sa.BigInteger(), nullable=False),
        sa.Column("job_id", sa.Integer(), nullable=True),
        sa.Column("action", sa.VARCHAR(length=20), nullable=False),
        sa.Column("report_data", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_reports_post_id", "reports", ["post_id"], unique=False)
    op.create_index("ix_reports_created_at", "reports", ["created_at"], unique=False)

    op.create_table(
        "report_notifications",
        sa.Column("post_id", sa.BigInteger(), nullable=False),
        sa.Column("report_data", sa.Text(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("post_id"),
    )

    op.create_table(
        "logs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("level", sa.VARCHAR(length=20), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("context", sa.Text(), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("actor_id", sa.BigInteger(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_logs_level", "logs", ["level"], unique=False)
    op.create_index("ix_logs_timestamp", "logs", ["timestamp"], unique=False)

    op.create_table(
        "options",
        sa.Column("name", sa.VARCHAR(length=191), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("name"),
    )


def downgrade() -> None:
    """Drop every table created by this revision."""
    op.drop_table("options")
    op.drop_index("ix_logs_timestamp", table_name="logs")
    op.drop_index("ix_logs_level", table_name="logs")
    op.drop_table("logs")
    op.drop_table("report_notifications")
    op.drop_index("ix_reports_created_at", table_name="reports")
    op.drop_index("ix_reports_post_id", table_name="reports")
    op.drop_table("reports")
    op.drop_index("ix_receivers_status", table_name="receivers")
    op.drop_table("receivers")
    op.drop_index("ix_replication_queue_status_created", table_name="replication_queue")
    op.drop_index("ix_replication_queue_post_id", table_name="replication_queue")
    op.drop_table("replication_queue")
