import uuid
from datetime import date as date_type, datetime
from enum import Enum

from sqlalchemy import Boolean, Date, DateTime, Enum as SAEnum, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from lessonforge.db.base import Base
from lessonforge.models.person import PersonRole


class AvailabilityKind(str, Enum):
    regular = "regular"
    exception = "exception"


class UserAvailability(Base):
    """One availability range; rows sharing a weekday (or date) form one window."""

    __tablename__ = "user_availability"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_role: Mapped[PersonRole] = mapped_column(SAEnum(PersonRole, name="person_role"), nullable=False)
    owner_id: Mapped[str] = mapped_column(String(36), index=True, nullable=False)
    kind: Mapped[AvailabilityKind] = mapped_column(
        SAEnum(AvailabilityKind, name="availability_kind"),
        nullable=False,
    )
    day_of_week: Mapped[str | None] = mapped_column(String(10), nullable=True)
    date: Mapped[date_type | None] = mapped_column(Date, nullable=True)
    full_day: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    start_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    end_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
