from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
import logging
import math

from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from schoolday.core.exceptions import AppError, DuplicateAttendanceError, SlotNotFoundError
from schoolday.models.attendance import AttendanceRecord, AttendanceStatus
from schoolday.models.timetable_slot import TimetableSlot
from schoolday.schemas.attendance import AttendanceCreate

logger = logging.getLogger(__name__)

SCOPE_FIELDS = ("branch_id", "class_id", "subject_id", "academic_year_id")


@dataclass
class ItemOutcome:
    index: int
    status: str
    data: AttendanceRecord | None = None
    error: str | None = None


@dataclass
class BulkUpsertResult:
    results: list[ItemOutcome] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return len(self.results)

    @property
    def successful(self) -> int:
        return sum(1 for item in self.results if item.status == "fulfilled")

    @property
    def failed(self) -> int:
        return sum(1 for item in self.results if item.status == "rejected")


@dataclass
class AttendanceFilters:
    branch_id: int | None = None
    class_id: int | None = None
    teacher_id: str | None = None
    student_id: str | None = None
    on_date: date | None = None
    status: AttendanceStatus | None = None
    academic_year_id: int | None = None

    def conditions(self, *, include_date: bool = True) -> list:
        conditions = []
        if self.branch_id is not None:
            conditions.append(AttendanceRecord.branch_id == self.branch_id)
        if self.class_id is not None:
            conditions.append(AttendanceRecord.class_id == self.class_id)
        if self.teacher_id:
            conditions.append(AttendanceRecord.teacher_id == self.teacher_id)
        if self.student_id:
            conditions.append(AttendanceRecord.student_id == self.student_id)
        if self.status is not None:
            conditions.append(AttendanceRecord.status == self.status)
        if self.academic_year_id is not None:
            conditions.append(AttendanceRecord.academic_year_id == self.academic_year_id)
        if include_date and self.on_date is not None:
            conditions.append(AttendanceRecord.date == self.on_date)
        return conditions


@dataclass
class AttendancePage:
    records: list[AttendanceRecord]
    pagination: dict
    summary: dict


def _validation_message(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(parts)


class AttendanceLedger:
    """One attendance record per (student, slot, date).

    ``record`` refuses to overwrite an existing key; ``bulk_upsert`` overwrites
    status and notes. Bulk items succeed or fail independently.
    """

    def __init__(
        self,
        db: Session,
        *,
        batch_size: int = 50,
        default_page_size: int = 20,
        max_page_size: int = 200,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.db = db
        self.batch_size = batch_size
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    def find(self, student_id: str, timetable_slot_id: int, on_date: date) -> AttendanceRecord | None:
        return self.db.execute(
            select(AttendanceRecord).where(
                AttendanceRecord.student_id == student_id,
                AttendanceRecord.timetable_slot_id == timetable_slot_id,
                AttendanceRecord.date == on_date,
            )
        ).scalar_one_or_none()

    def _scope_values(self, payload: AttendanceCreate) -> dict:
        values = {name: getattr(payload, name) for name in SCOPE_FIELDS}
        teacher_id = payload.teacher_id
        if any(value is None for value in values.values()) or teacher_id is None:
            slot = self.db.get(TimetableSlot, payload.timetable_slot_id)
            if slot is None:
                if any(value is None for value in values.values()):
                    raise SlotNotFoundError(payload.timetable_slot_id)
            else:
                for name in SCOPE_FIELDS:
                    if values[name] is None:
                        values[name] = getattr(slot, name)
                if teacher_id is None and slot.teacher_ids:
                    teacher_id = slot.teacher_ids[0]
        values["teacher_id"] = teacher_id
        return values

    def _new_record(self, payload: AttendanceCreate) -> AttendanceRecord:
        return AttendanceRecord(
            student_id=payload.student_id,
            timetable_slot_id=payload.timetable_slot_id,
            date=payload.date,
            status=payload.status,
            notes=payload.notes,
            **self._scope_values(payload),
        )

    def record(self, payload: AttendanceCreate) -> AttendanceRecord:
        if self.find(payload.student_id, payload.timetable_slot_id, payload.date) is not None:
            raise DuplicateAttendanceError(payload.student_id, payload.timetable_slot_id, payload.date)
        record = self._new_record(payload)
        self.db.add(record)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise DuplicateAttendanceError(payload.student_id, payload.timetable_slot_id, payload.date) from exc
        self.db.refresh(record)
        logger.info(
            "ATTENDANCE RECORD | student_id=%s | timetable_id=%s | date=%s | status=%s",
            record.student_id,
            record.timetable_slot_id,
            record.date,
            record.status.value,
        )
        return record

    @staticmethod
    def _apply_update(record: AttendanceRecord, payload: AttendanceCreate) -> None:
        record.status = payload.status
        record.notes = payload.notes
        if payload.teacher_id:
            record.teacher_id = payload.teacher_id

    def upsert(self, payload: AttendanceCreate) -> AttendanceRecord:
        """Create or overwrite one record inside its own savepoint."""
        try:
            with self.db.begin_nested():
                record = self.find(payload.student_id, payload.timetable_slot_id, payload.date)
                if record is None:
                    record = self._new_record(payload)
                    self.db.add(record)
                else:
                    self._apply_update(record, payload)
        except IntegrityError:
            # Another writer inserted the key between the read and the flush.
            with self.db.begin_nested():
                record = self.find(payload.student_id, payload.timetable_slot_id, payload.date)
                if record is None:
                    raise
                self._apply_update(record, payload)
        return record

    def bulk_upsert(self, records: Sequence[Mapping]) -> BulkUpsertResult:
        result = BulkUpsertResult()
        for start in range(0, len(records), self.batch_size):
            batch = records[start : start + self.batch_size]
            for offset, raw in enumerate(batch):
                index = start + offset
                try:
                    payload = AttendanceCreate.model_validate(raw)
                    record = self.upsert(payload)
                except ValidationError as exc:
                    result.results.append(ItemOutcome(index=index, status="rejected", error=_validation_message(exc)))
                except AppError as exc:
                    result.results.append(ItemOutcome(index=index, status="rejected", error=exc.message))
                except SQLAlchemyError:
                    logger.exception("ATTENDANCE UPSERT FAILED | index=%s", index)
                    result.results.append(ItemOutcome(index=index, status="rejected", error="Failed to save attendance record"))
                else:
                    result.results.append(ItemOutcome(index=index, status="fulfilled", data=record))
            self.db.commit()
            logger.info(
                "ATTENDANCE BATCH | start=%s | size=%s | successful=%s | failed=%s",
                start,
                len(batch),
                sum(1 for item in result.results[start:] if item.status == "fulfilled"),
                sum(1 for item in result.results[start:] if item.status == "rejected"),
            )
        for item in result.results:
            if item.data is not None:
                self.db.refresh(item.data)
        return result

    def query(self, filters: AttendanceFilters, *, page: int = 1, limit: int | None = None) -> AttendancePage:
        page = max(page, 1)
        limit = min(max(limit or self.default_page_size, 1), self.max_page_size)
        conditions = filters.conditions()

        total_count = self.db.execute(
            select(func.count()).select_from(AttendanceRecord).where(*conditions)
        ).scalar_one()
        records = list(
            self.db.execute(
                select(AttendanceRecord)
                .where(*conditions)
                .order_by(AttendanceRecord.date.desc(), AttendanceRecord.created_at.desc(), AttendanceRecord.id.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            ).scalars()
        )
        total_pages = math.ceil(total_count / limit) if total_count else 0

        # The summary ignores the date filter: overall distribution for the scope.
        counts = dict(
            self.db.execute(
                select(AttendanceRecord.status, func.count(AttendanceRecord.id))
                .where(*filters.conditions(include_date=False))
                .group_by(AttendanceRecord.status)
            ).all()
        )
        summary = {status.value.lower(): counts.get(status, 0) for status in AttendanceStatus}
        summary["total"] = sum(counts.values())

        return AttendancePage(
            records=records,
            pagination={
                "page": page,
                "limit": limit,
                "total_count": total_count,
                "total_pages": total_pages,
                "has_next": page < total_pages,
                "has_prev": page > 1,
            },
            summary=summary,
        )
