from datetime import date, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from schoolday.db.base import Base
from schoolday.models.enums import DayOfWeek


class TimetableSlot(Base):
    __tablename__ = "timetable_slots"
    __table_args__ = (
        # HH:MM strings are zero padded, so lexical order is clock order.
        CheckConstraint("end_time > start_time", name="ck_timetable_slots_window_order"),
        CheckConstraint(
            "day_of_week IS NOT NULL OR full_date IS NOT NULL",
            name="ck_timetable_slots_day_or_date",
        ),
        Index("ix_timetable_slots_scope", "branch_id", "class_id", "room_number", "is_active"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    branch_id: Mapped[int] = mapped_column(ForeignKey("branches.id"), nullable=False, index=True)
    class_id: Mapped[int] = mapped_column(ForeignKey("school_classes.id"), nullable=False, index=True)
    academic_year_id: Mapped[int] = mapped_column(ForeignKey("academic_years.id"), nullable=False, index=True)
    day_of_week: Mapped[DayOfWeek | None] = mapped_column(SAEnum(DayOfWeek, name="day_of_week"), nullable=True)
    full_date: Mapped[date | None] = mapped_column(Date, nullable=True, index=True)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    room_number: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    building_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    subject_id: Mapped[int] = mapped_column(ForeignKey("subjects.id"), nullable=False, index=True)
    teacher_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    source: Mapped[str] = mapped_column(String(20), nullable=False, default="manual")
    upload_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
