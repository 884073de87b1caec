import uuid
from datetime import date, datetime
from enum import Enum

from sqlalchemy import Boolean, Date, DateTime, Enum as SAEnum, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from lessonforge.db.base import Base


class SeriesStatus(str, Enum):
    active = "active"
    paused = "paused"
    ended = "ended"


class ClassSeries(Base):
    __tablename__ = "class_series"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    teacher_id: Mapped[str | None] = mapped_column(String(36), index=True, nullable=True)
    student_id: Mapped[str | None] = mapped_column(String(36), index=True, nullable=True)
    subject_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    booth_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    days_of_week: Mapped[list[int]] = mapped_column(JSON, nullable=False, default=list)
    check_availability: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    status: Mapped[SeriesStatus] = mapped_column(
        SAEnum(SeriesStatus, name="series_status"),
        nullable=False,
        default=SeriesStatus.active,
    )
    last_generated_through: Mapped[date | None] = mapped_column(Date, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
