from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
import logging
import re
from typing import NoReturn

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from schoolday.core.exceptions import (
    BatchTooLargeError,
    InvalidWindowError,
    OutOfAcademicYearRangeError,
    SchedulingConflictError,
    UnresolvedReferenceError,
)
from schoolday.models.academic_year import AcademicYear
from schoolday.models.branch import Branch
from schoolday.models.bulk_upload import TimetableBulkUpload, UploadStatus
from schoolday.models.enums import AuditAction, RecordStatus
from schoolday.models.school_class import SchoolClass
from schoolday.models.subject import Subject
from schoolday.models.teacher import Teacher
from schoolday.models.timetable_slot import TimetableSlot
from schoolday.services.audit import log_activity
from schoolday.services.conflict_service import ConflictDetector, ScheduledWindow, ScopeKey
from schoolday.services.scope_locks import ScopeLockRegistry, scope_locks
from schoolday.services.time_window import TimeWindow

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (
    "branch",
    "class",
    "academicYear",
    "subject",
    "teacher",
    "date",
    "startTime",
    "endTime",
    "roomNumber",
)
ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
ROW_STATUSES = {"ACTIVE", "INACTIVE"}
# Spreadsheet numbering: row 1 is the header.
FIRST_DATA_ROW = 2


@dataclass
class RowError:
    row: int
    field: str
    code: str
    message: str
    value: object = None

    def as_dict(self) -> dict:
        value = self.value
        if value is not None and not isinstance(value, (str, int, float, bool)):
            value = str(value)
        return {"row": self.row, "field": self.field, "code": self.code, "message": self.message, "value": value}


class _RowRejected(Exception):
    def __init__(self, error: RowError):
        self.error = error
        super().__init__(error.message)


@dataclass
class _ValidRow:
    row: int
    window: TimeWindow
    scope: ScopeKey
    values: dict

    @property
    def is_active(self) -> bool:
        return self.values["is_active"]


@dataclass
class ImportResult:
    committed: list[TimetableSlot] = field(default_factory=list)
    errors: list[RowError] = field(default_factory=list)
    total_rows: int = 0
    validate_only: bool = False
    upload_id: int | None = None
    # Rows that passed every rule; equals ``committed`` unless validate_only.
    valid_rows: int = 0

    @property
    def committed_count(self) -> int:
        return len(self.committed)

    @property
    def error_count(self) -> int:
        return len(self.errors)


def _text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _parse_date(value: object) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = _text(value)
    if not ISO_DATE_PATTERN.match(raw):
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        return None


class ReferenceIndex:
    """Active reference rows keyed by lower-cased human-readable names."""

    def __init__(self, db: Session) -> None:
        active = RecordStatus.ACTIVE
        self.branches: dict[str, Branch] = {}
        for branch in db.execute(select(Branch).where(Branch.status == active).order_by(Branch.id)).scalars():
            self.branches.setdefault(branch.short_name.lower(), branch)
            self.branches.setdefault(branch.name.lower(), branch)

        self.years = {
            year.name.lower(): year
            for year in db.execute(select(AcademicYear).where(AcademicYear.status == active)).scalars()
        }
        self.subjects = {
            subject.name.lower(): subject
            for subject in db.execute(select(Subject).where(Subject.status == active)).scalars()
        }
        self.classes: dict[tuple[int, int, str], SchoolClass] = {}
        for school_class in db.execute(select(SchoolClass).where(SchoolClass.status == active)).scalars():
            key = (school_class.branch_id, school_class.academic_year_id, school_class.name.lower())
            self.classes[key] = school_class
        self.teachers: dict[tuple[int, str], Teacher] = {}
        for teacher in db.execute(select(Teacher).where(Teacher.status == active).order_by(Teacher.created_at)).scalars():
            self.teachers.setdefault((teacher.branch_id, teacher.full_name.lower()), teacher)

    def branch(self, name: str) -> Branch | None:
        return self.branches.get(name.lower())

    def year(self, name: str) -> AcademicYear | None:
        return self.years.get(name.lower())

    def school_class(self, branch_id: int, academic_year_id: int, name: str) -> SchoolClass | None:
        return self.classes.get((branch_id, academic_year_id, name.lower()))

    def subject(self, name: str) -> Subject | None:
        return self.subjects.get(name.lower())

    def teacher(self, branch_id: int, name: str) -> Teacher | None:
        return self.teachers.get((branch_id, " ".join(name.split()).lower()))


class BulkImportValidator:
    """Validate spreadsheet rows and commit the ones that pass.

    Each failing row yields exactly one error, for the first rule it breaks.
    Valid rows are committed even when other rows fail.
    """

    def __init__(
        self,
        db: Session,
        *,
        max_rows: int = 1000,
        actor_id: str | None = None,
        detector: ConflictDetector | None = None,
        locks: ScopeLockRegistry | None = None,
    ) -> None:
        self.db = db
        self.max_rows = max_rows
        self.actor_id = actor_id
        self.detector = detector or ConflictDetector()
        self.locks = locks or scope_locks()

    def _reject(self, row: int, field_name: str, code: str, message: str, value: object = None) -> NoReturn:
        raise _RowRejected(RowError(row=row, field=field_name, code=code, message=message, value=value))

    def check_row(self, row_number: int, raw: Mapping[str, object], refs: ReferenceIndex) -> _ValidRow:
        """Apply every per-row rule except conflict detection."""
        for name in REQUIRED_FIELDS:
            if not _text(raw.get(name)):
                self._reject(row_number, name, "MissingField", f"{name} is required", raw.get(name))

        branch_name = _text(raw.get("branch"))
        branch = refs.branch(branch_name)
        if branch is None:
            self._reject(row_number, "branch", UnresolvedReferenceError.code, "Branch not found", branch_name)

        year_name = _text(raw.get("academicYear"))
        year = refs.year(year_name)
        if year is None:
            self._reject(
                row_number, "academicYear", UnresolvedReferenceError.code, "Academic year not found", year_name
            )

        class_name = _text(raw.get("class"))
        school_class = refs.school_class(branch.id, year.id, class_name)
        if school_class is None:
            self._reject(
                row_number,
                "class",
                UnresolvedReferenceError.code,
                "Class not found in specified branch and academic year",
                class_name,
            )

        subject_name = _text(raw.get("subject"))
        subject = refs.subject(subject_name)
        if subject is None:
            self._reject(row_number, "subject", UnresolvedReferenceError.code, "Subject not found", subject_name)

        teacher_name = _text(raw.get("teacher"))
        teacher = refs.teacher(branch.id, teacher_name)
        if teacher is None:
            self._reject(
                row_number,
                "teacher",
                UnresolvedReferenceError.code,
                "Teacher not found in specified branch",
                teacher_name,
            )

        on_date = _parse_date(raw.get("date"))
        if on_date is None:
            self._reject(row_number, "date", "InvalidDate", "Invalid date format (use YYYY-MM-DD)", raw.get("date"))

        try:
            window = TimeWindow.from_values(raw.get("startTime"), raw.get("endTime"), full_date=on_date)
        except InvalidWindowError as exc:
            self._reject(row_number, exc.field or "time", "InvalidWindow", exc.message, exc.value)

        if not year.contains(on_date):
            self._reject(
                row_number,
                "date",
                OutOfAcademicYearRangeError.code,
                f"Date is outside academic year range {year.start_date} to {year.end_date}",
                on_date.isoformat(),
            )

        status = _text(raw.get("status")).upper() or "ACTIVE"
        if status not in ROW_STATUSES:
            self._reject(row_number, "status", "InvalidStatus", "Status must be ACTIVE or INACTIVE", raw.get("status"))

        room_number = _text(raw.get("roomNumber"))
        scope = ScopeKey.for_window(
            window,
            branch_id=branch.id,
            class_id=school_class.id,
            room_number=room_number,
            academic_year_id=year.id,
        )
        values = {
            "branch_id": branch.id,
            "class_id": school_class.id,
            "academic_year_id": year.id,
            "day_of_week": window.day_of_week,
            "full_date": window.full_date,
            "start_time": window.start_time,
            "end_time": window.end_time,
            "room_number": room_number,
            "building_name": _text(raw.get("buildingName")) or None,
            "subject_id": subject.id,
            "teacher_ids": [teacher.id],
            "is_active": status == "ACTIVE",
            "source": "import",
        }
        return _ValidRow(row=row_number, window=window, scope=scope, values=values)

    def _check_conflicts(self, candidates: Sequence[_ValidRow]) -> tuple[list[_ValidRow], list[RowError]]:
        accepted: list[_ValidRow] = []
        batch: list[ScheduledWindow] = []
        errors: list[RowError] = []
        for candidate in candidates:
            if not candidate.is_active:
                accepted.append(candidate)
                continue
            in_batch = self.detector.find_conflicts(candidate.window, candidate.scope, batch)
            if in_batch:
                errors.append(
                    RowError(
                        row=candidate.row,
                        field="time",
                        code=SchedulingConflictError.code,
                        message=f"Time conflict with row {in_batch.slot_ids[0]} in upload data",
                        value=f"{candidate.window.start_time} - {candidate.window.end_time}",
                    )
                )
                continue
            persisted = self.detector.check_persisted(self.db, candidate.window, candidate.scope)
            if persisted:
                errors.append(
                    RowError(
                        row=candidate.row,
                        field="time",
                        code=SchedulingConflictError.code,
                        message=f"Time conflict with existing timetable slot {persisted.slot_ids[0]}",
                        value=f"{candidate.window.start_time} - {candidate.window.end_time}",
                    )
                )
                continue
            batch.append(ScheduledWindow(ref=candidate.row, scope=candidate.scope, window=candidate.window))
            accepted.append(candidate)
        return accepted, errors

    def validate(
        self,
        rows: Sequence[Mapping[str, object]],
        *,
        validate_only: bool = False,
        file_name: str = "upload",
    ) -> ImportResult:
        result = ImportResult(total_rows=len(rows), validate_only=validate_only)
        upload = TimetableBulkUpload(
            file_name=file_name,
            uploaded_by=self.actor_id,
            status=UploadStatus.PROCESSING,
            validate_only=validate_only,
            total_rows=len(rows),
        )
        self.db.add(upload)
        self.db.flush()
        result.upload_id = upload.id

        refs = ReferenceIndex(self.db)
        candidates: list[_ValidRow] = []
        row_errors: list[RowError] = []
        for offset, raw in enumerate(rows[: self.max_rows]):
            try:
                candidates.append(self.check_row(offset + FIRST_DATA_ROW, raw, refs))
            except _RowRejected as exc:
                row_errors.append(exc.error)
        for offset in range(self.max_rows, len(rows)):
            row_errors.append(
                RowError(
                    row=offset + FIRST_DATA_ROW,
                    field="row",
                    code=BatchTooLargeError.code,
                    message=f"Maximum {self.max_rows} rows per upload",
                )
            )

        with self.locks.hold(candidate.scope for candidate in candidates):
            accepted, conflicts = self._check_conflicts(candidates)
            result.errors = sorted(row_errors + conflicts, key=lambda error: error.row)
            result.valid_rows = len(accepted)

            try:
                if not validate_only:
                    for candidate in accepted:
                        slot = TimetableSlot(upload_id=upload.id, **candidate.values)
                        self.db.add(slot)
                        result.committed.append(slot)
                    self.db.flush()
                    if result.committed:
                        log_activity(
                            self.db,
                            actor_id=self.actor_id,
                            action=AuditAction.TIMETABLE_IMPORT,
                            entity_id=upload.id,
                            details={"committed": len(result.committed), "errors": len(result.errors)},
                        )
                self._finish_upload(upload, result)
                self.db.commit()
            except SQLAlchemyError:
                self.db.rollback()
                logger.exception("BULK IMPORT FAILED | file=%s | rolled back", file_name)
                raise

        for slot in result.committed:
            self.db.refresh(slot)
        logger.info(
            "BULK IMPORT | upload_id=%s | validate_only=%s | total=%s | committed=%s | errors=%s",
            upload.id,
            validate_only,
            result.total_rows,
            result.committed_count,
            result.error_count,
        )
        return result

    @staticmethod
    def _finish_upload(upload: TimetableBulkUpload, result: ImportResult) -> None:
        passed = result.valid_rows
        if not result.errors:
            upload.status = UploadStatus.COMPLETED
        elif passed:
            upload.status = UploadStatus.PARTIAL
        else:
            upload.status = UploadStatus.FAILED
        upload.success_rows = passed
        upload.error_rows = len(result.errors)
        upload.errors = [error.as_dict() for error in result.errors]
        upload.completed_at = datetime.now(timezone.utc)
