"""Create scrape_jobs

Revision ID: 5d0c2a9e7f13
Revises:
Create Date: 2026-10-19 10:12:00.000000

Job table for the menu scrape queue.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "5d0c2a9e7f13"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Enum values match menuscout.common.models.JobStatus
    job_status_enum = sa.Enum(
        "queued",
        "active",
        "completed",
        "failed",
        name="job_status_enum",
    )
    op.create_table(
        "scrape_jobs",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("restaurant_query", sa.Text(), nullable=False),
        sa.Column("status", job_status_enum, nullable=False),
        sa.Column("result", sa.JSON(none_as_null=True), nullable=True,
                  comment="ScrapeResult payload once completed"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("item_count", sa.Integer(), nullable=True),
        sa.Column("empty_result", sa.Boolean(), nullable=False, server_default=sa.false(),
                  comment="Completed without any menu items"),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0",
                  comment="Number of times the job was claimed"),
        sa.Column("worker_id", sa.String(length=100), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration_seconds", sa.Numeric(10, 2), nullable=True,
                  comment="Time from claim to terminal state"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_scrape_jobs_status_created", "scrape_jobs", ["status", "created_at"])


def downgrade() -> None:
    op.drop_index("ix_scrape_jobs_status_created", table_name="scrape_jobs")
    op.drop_table("scrape_jobs")
    sa.Enum(name="job_status_enum").drop(op.get_bind(), checkfirst=True)
