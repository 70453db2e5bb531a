from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Index, CheckConstraint, Integer, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from slideit.models.base import Base

JOB_STATUS_VALUES = ("processing", "completed", "failed")

# JSONB on Postgres, plain JSON elsewhere (sqlite in tests)
JsonType = JSON().with_variant(JSONB(), "postgresql")


class ConversionJobRow(Base):
    __tablename__ = "conversion_jobs"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    owner_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    source_file_name: Mapped[str] = mapped_column(Text, nullable=False)
    # ai_topic | pdf | word | text | excel
    source_kind: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="processing")
    stage: Mapped[str] = mapped_column(Text, nullable=False, default="created")
    progress_percent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    slides: Mapped[list] = mapped_column(JsonType, nullable=False, default=list)
    artifact_location: Mapped[str | None] = mapped_column(Text, nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_code: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)

    __table_args__ = (
        CheckConstraint(
            f"status in {JOB_STATUS_VALUES}",
            name="conversion_jobs_status_check",
        ),
        CheckConstraint(
            "progress_percent between 0 and 100",
            name="conversion_jobs_progress_check",
        ),
        Index("ix_conversion_jobs_owner_created_desc", "owner_id", "created_at"),
        Index("ix_conversion_jobs_status", "status"),
    )
