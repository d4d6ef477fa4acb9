from datetime import date, datetime

from sqlalchemy import Date, DateTime, Enum as SAEnum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from schoolday.db.base import Base
from schoolday.models.enums import RecordStatus


class AcademicYear(Base):
    __tablename__ = "academic_years"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[RecordStatus] = mapped_column(
        SAEnum(RecordStatus, name="record_status"), nullable=False, default=RecordStatus.ACTIVE
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    def contains(self, value: date) -> bool:
        return self.start_date <= value <= self.end_date
