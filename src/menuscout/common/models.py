"""SQLAlchemy ORM models for the menuscout job store."""
import uuid
from datetime import datetime, timezone
from enum import Enum as PyEnum
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class JobStatus(str, PyEnum):
    """Job status enumeration."""

    QUEUED = "queued"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = (JobStatus.COMPLETED, JobStatus.FAILED)


def _new_job_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScrapeJob(Base):
    """One menu scrape request and its outcome."""

    __tablename__ = "scrape_jobs"
    __table_args__ = (Index("ix_scrape_jobs_status_created", "status", "created_at"),)

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_job_id)
    restaurant_query: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[JobStatus] = mapped_column(
        Enum(JobStatus, name="job_status_enum", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=JobStatus.QUEUED,
    )
    result: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSON(none_as_null=True), nullable=True, comment="ScrapeResult payload once completed"
    )
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    item_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    empty_result: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, comment="Completed without any menu items"
    )
    attempts: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, comment="Number of times the job was claimed"
    )
    worker_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    claimed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    duration_seconds: Mapped[Optional[float]] = mapped_column(
        Numeric(10, 2), nullable=True, comment="Time from claim to terminal state"
    )

    def __repr__(self) -> str:
        return f"<ScrapeJob(id={self.id}, query='{self.restaurant_query}', status={self.status})>"
