import uuid
from datetime import date as date_type, datetime
from enum import Enum

from sqlalchemy import Boolean, Date, DateTime, Enum as SAEnum, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from lessonforge.db.base import Base


class SessionStatus(str, Enum):
    confirmed = "confirmed"
    conflicted = "conflicted"


class ClassSession(Base):
    __tablename__ = "class_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    series_id: Mapped[str | None] = mapped_column(String(36), index=True, nullable=True)
    teacher_id: Mapped[str | None] = mapped_column(String(36), index=True, nullable=True)
    student_id: Mapped[str | None] = mapped_column(String(36), index=True, nullable=True)
    subject_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    booth_id: Mapped[str | None] = mapped_column(String(36), index=True, nullable=True)
    date: Mapped[date_type] = mapped_column(Date, index=True, nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    status: Mapped[SessionStatus] = mapped_column(
        SAEnum(SessionStatus, name="session_status"),
        nullable=False,
        default=SessionStatus.confirmed,
    )
    conflict_reasons: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    is_cancelled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
