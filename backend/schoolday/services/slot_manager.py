from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date
import logging

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from schoolday.core.exceptions import (
    InvalidWindowError,
    OutOfAcademicYearRangeError,
    SchedulingConflictError,
    SlotNotFoundError,
    UnresolvedReferenceError,
)
from schoolday.models.academic_year import AcademicYear
from schoolday.models.branch import Branch
from schoolday.models.enums import AuditAction, DayOfWeek
from schoolday.models.school_class import SchoolClass
from schoolday.models.subject import Subject
from schoolday.models.timetable_slot import TimetableSlot
from schoolday.schemas.timetable import ReplaceEntry, SlotCreate
from schoolday.services.audit import log_activity
from schoolday.services.conflict_service import ConflictDetector, ScheduledWindow, ScopeKey, normalize_room
from schoolday.services.scope_locks import ScopeLockRegistry, scope_locks
from schoolday.services.teacher_assignment import TeacherAutoAssigner, dedupe
from schoolday.services.time_window import TimeWindow

logger = logging.getLogger(__name__)


@dataclass
class ReplaceResult:
    slots: list[TimetableSlot]
    removed_ids: list[int] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.slots)


@dataclass
class _PlannedSlot:
    window: TimeWindow
    scope: ScopeKey
    values: dict


def period_key(slot: TimetableSlot) -> tuple:
    """Identity of the period a slot belongs to; parallel subjects share it."""
    return (
        slot.full_date.isoformat() if slot.full_date else None,
        slot.day_of_week.value if slot.day_of_week and slot.full_date is None else None,
        slot.start_time,
        slot.end_time,
        slot.branch_id,
        slot.class_id,
        slot.academic_year_id,
        normalize_room(slot.room_number),
    )


def require_matching_weekday(day_of_week: str, full_date: date) -> None:
    """A dated slot may repeat its weekday but never contradict it."""
    try:
        requested = DayOfWeek.parse(day_of_week)
    except ValueError as exc:
        raise InvalidWindowError(str(exc), field="dayOfWeek", value=day_of_week) from exc
    if requested != DayOfWeek.from_date(full_date):
        raise InvalidWindowError(
            f"dayOfWeek {requested.value} does not match date {full_date.isoformat()}",
            field="dayOfWeek",
            value=day_of_week,
        )


_WEEKDAYS = list(DayOfWeek)


def _period_order(period: dict) -> tuple:
    # Recurring periods first in weekday order, then dated ones chronologically.
    day = period["day_of_week"]
    return (
        period["full_date"] is not None,
        period["full_date"] or date.min,
        _WEEKDAYS.index(day) if day is not None else 0,
        period["start_time"],
        period["room_number"],
    )


class TimetableSlotManager:
    """Create, replace and retire timetable slots.

    Every write re-reads the active slots of the affected scopes while holding
    the per-scope locks, so two writers in one process cannot both pass the
    conflict check for the same room and period.
    """

    def __init__(
        self,
        db: Session,
        *,
        actor_id: str | None = None,
        detector: ConflictDetector | None = None,
        assigner: TeacherAutoAssigner | None = None,
        locks: ScopeLockRegistry | None = None,
    ) -> None:
        self.db = db
        self.actor_id = actor_id
        self.detector = detector or ConflictDetector()
        self.assigner = assigner or TeacherAutoAssigner(db)
        self.locks = locks or scope_locks()

    def get_slot(self, slot_id: int) -> TimetableSlot:
        slot = self.db.get(TimetableSlot, slot_id)
        if slot is None:
            raise SlotNotFoundError(slot_id)
        return slot

    def _require(self, model, ident: int, field_name: str):
        record = self.db.get(model, ident)
        if record is None:
            raise UnresolvedReferenceError(field_name, ident)
        return record

    def _check_scope(self, *, branch_id: int, class_id: int, academic_year_id: int) -> AcademicYear:
        self._require(Branch, branch_id, "branchId")
        year = self._require(AcademicYear, academic_year_id, "academicYearId")
        school_class = self._require(SchoolClass, class_id, "classId")
        if school_class.branch_id != branch_id or school_class.academic_year_id != academic_year_id:
            raise UnresolvedReferenceError(
                "classId",
                class_id,
                f"Class {class_id} does not belong to branch {branch_id} in academic year {academic_year_id}",
            )
        return year

    @staticmethod
    def _check_in_year(window: TimeWindow, year: AcademicYear) -> None:
        if window.full_date is not None and not year.contains(window.full_date):
            raise OutOfAcademicYearRangeError(window.full_date, year.start_date, year.end_date)

    def _raise_conflict(self, window: TimeWindow, slot_ids: Sequence) -> None:
        logger.info(
            "SLOT CONFLICT | window=%s | conflicting_ids=%s",
            window.label(),
            list(slot_ids),
        )
        raise SchedulingConflictError(
            f"Time slot {window.start_time}-{window.end_time} conflicts with an existing timetable entry",
            conflicting_ids=list(slot_ids),
        )

    def create_slots(self, payload: SlotCreate) -> list[TimetableSlot]:
        """Create one slot per subject, all sharing the same period."""
        if payload.day_of_week and payload.full_date is not None:
            require_matching_weekday(payload.day_of_week, payload.full_date)
        window = TimeWindow.from_values(
            payload.start_time,
            payload.end_time,
            day_of_week=payload.day_of_week,
            full_date=payload.full_date,
        )
        year = self._check_scope(
            branch_id=payload.branch_id,
            class_id=payload.class_id,
            academic_year_id=payload.academic_year_id,
        )
        self._check_in_year(window, year)
        for pair in payload.subject_teacher_pairs:
            self._require(Subject, pair.subject_id, "subjectId")

        scope = ScopeKey.for_window(
            window,
            branch_id=payload.branch_id,
            class_id=payload.class_id,
            room_number=payload.room_number,
            academic_year_id=payload.academic_year_id,
        )
        with self.locks.hold([scope]):
            if payload.is_active:
                result = self.detector.check_persisted(self.db, window, scope)
                if result:
                    self._raise_conflict(window, result.slot_ids)

            slots: list[TimetableSlot] = []
            try:
                for pair in payload.subject_teacher_pairs:
                    teacher_ids = self.assigner.resolve(
                        class_id=payload.class_id,
                        subject_id=pair.subject_id,
                        academic_year_id=payload.academic_year_id,
                        explicit=pair.teacher_ids,
                    )
                    slot = TimetableSlot(
                        branch_id=payload.branch_id,
                        class_id=payload.class_id,
                        academic_year_id=payload.academic_year_id,
                        day_of_week=window.day_of_week,
                        full_date=window.full_date,
                        start_time=window.start_time,
                        end_time=window.end_time,
                        room_number=payload.room_number.strip(),
                        building_name=payload.building_name,
                        subject_id=pair.subject_id,
                        teacher_ids=teacher_ids,
                        is_active=payload.is_active,
                        source="manual",
                    )
                    self.db.add(slot)
                    slots.append(slot)
                self.db.flush()
                log_activity(
                    self.db,
                    actor_id=self.actor_id,
                    action=AuditAction.TIMETABLE_CREATE,
                    entity_id=slots[0].id,
                    details={"slot_ids": [slot.id for slot in slots], "window": window.label()},
                )
                self.db.commit()
            except SQLAlchemyError:
                self.db.rollback()
                logger.exception("SLOT CREATE FAILED | window=%s | class_id=%s", window.label(), payload.class_id)
                raise

        for slot in slots:
            self.db.refresh(slot)
        logger.info(
            "SLOT CREATE | slot_ids=%s | class_id=%s | window=%s",
            [slot.id for slot in slots],
            payload.class_id,
            window.label(),
        )
        return slots

    def period_group(self, slot: TimetableSlot) -> list[TimetableSlot]:
        """Active slots sharing ``slot``'s exact period, plus ``slot`` itself."""
        query = select(TimetableSlot).where(
            TimetableSlot.is_active.is_(True),
            TimetableSlot.branch_id == slot.branch_id,
            TimetableSlot.class_id == slot.class_id,
            TimetableSlot.academic_year_id == slot.academic_year_id,
            TimetableSlot.start_time == slot.start_time,
            TimetableSlot.end_time == slot.end_time,
            func.lower(func.trim(TimetableSlot.room_number)) == normalize_room(slot.room_number),
        )
        if slot.full_date is not None:
            query = query.where(TimetableSlot.full_date == slot.full_date)
        else:
            query = query.where(
                TimetableSlot.full_date.is_(None),
                TimetableSlot.day_of_week == slot.day_of_week,
            )
        group = list(self.db.execute(query.order_by(TimetableSlot.id.asc())).scalars().all())
        if all(member.id != slot.id for member in group):
            group.insert(0, slot)
        return group

    def _plan_entry(self, original: TimetableSlot, entry: ReplaceEntry) -> _PlannedSlot:
        branch_id = entry.branch_id or original.branch_id
        class_id = entry.class_id or original.class_id
        academic_year_id = entry.academic_year_id or original.academic_year_id

        day_of_week: DayOfWeek | str | None = original.day_of_week
        if entry.day_of_week:
            if original.full_date is not None:
                require_matching_weekday(entry.day_of_week, original.full_date)
            else:
                day_of_week = entry.day_of_week

        window = TimeWindow.from_values(
            entry.start_time or original.start_time,
            entry.end_time or original.end_time,
            day_of_week=day_of_week,
            full_date=original.full_date,
        )
        year = self._check_scope(branch_id=branch_id, class_id=class_id, academic_year_id=academic_year_id)
        self._check_in_year(window, year)
        self._require(Subject, entry.subject_id, "subjectId")

        room_number = entry.room_number if entry.room_number is not None else original.room_number
        teacher_ids = self.assigner.resolve(
            class_id=class_id,
            subject_id=entry.subject_id,
            academic_year_id=academic_year_id,
            explicit=entry.teacher_ids,
        )
        scope = ScopeKey.for_window(
            window,
            branch_id=branch_id,
            class_id=class_id,
            room_number=room_number,
            academic_year_id=academic_year_id,
        )
        values = {
            "branch_id": branch_id,
            "class_id": class_id,
            "academic_year_id": academic_year_id,
            "day_of_week": window.day_of_week,
            "full_date": window.full_date,
            "start_time": window.start_time,
            "end_time": window.end_time,
            "room_number": (room_number or "").strip(),
            "building_name": entry.building_name if entry.building_name is not None else original.building_name,
            "subject_id": entry.subject_id,
            "teacher_ids": dedupe(teacher_ids),
            "is_active": original.is_active,
            "source": "manual",
        }
        return _PlannedSlot(window=window, scope=scope, values=values)

    def replace_slot(self, original_id: int, entries: Sequence[ReplaceEntry]) -> ReplaceResult:
        """Swap the whole period of ``original_id`` for ``entries``.

        All entries are validated before anything is deleted. The delete and
        the inserts commit together or not at all.
        """
        original = self.get_slot(original_id)
        group = self.period_group(original)
        group_ids = [slot.id for slot in group]
        logger.info(
            "SLOT REPLACE | original_id=%s | group_ids=%s | entries=%s",
            original_id,
            group_ids,
            len(entries),
        )

        planned = [self._plan_entry(original, entry) for entry in entries]
        lock_keys = {ScopeKey.of_slot(original), *(plan.scope for plan in planned)}

        with self.locks.hold(lock_keys):
            # Another writer may have replaced this period while we waited.
            original = self.db.get(TimetableSlot, original_id, populate_existing=True)
            if original is None:
                raise SlotNotFoundError(original_id)
            group = self.period_group(original)
            group_ids = [slot.id for slot in group]

            if original.is_active:
                accepted: list[ScheduledWindow] = []
                for index, plan in enumerate(planned):
                    result = self.detector.check_persisted(self.db, plan.window, plan.scope, exclude_ids=group_ids)
                    if result:
                        self._raise_conflict(plan.window, result.slot_ids)
                    # Parallel subjects in one period are expected; only partial overlaps collide.
                    clashes = [
                        other
                        for other in accepted
                        if other.scope.matches(plan.scope)
                        and other.window.overlaps(plan.window)
                        and not other.window.same_period(plan.window)
                    ]
                    if clashes:
                        raise SchedulingConflictError(
                            f"Entry {index + 1} ({plan.window.label()}) overlaps another replacement entry",
                            conflicting_ids=[],
                        )
                    accepted.append(ScheduledWindow(ref=index, scope=plan.scope, window=plan.window))

            created: list[TimetableSlot] = []
            try:
                for slot in group:
                    self.db.delete(slot)
                self.db.flush()
                for plan in planned:
                    slot = TimetableSlot(**plan.values)
                    self.db.add(slot)
                    created.append(slot)
                self.db.flush()
                log_activity(
                    self.db,
                    actor_id=self.actor_id,
                    action=AuditAction.TIMETABLE_REPLACE,
                    entity_id=original_id,
                    details={
                        "removed_ids": group_ids,
                        "created_ids": [slot.id for slot in created],
                    },
                )
                self.db.commit()
            except SQLAlchemyError:
                self.db.rollback()
                logger.exception("SLOT REPLACE FAILED | original_id=%s | rolled back", original_id)
                raise

        for slot in created:
            self.db.refresh(slot)
        logger.info(
            "SLOT REPLACE DONE | original_id=%s | removed=%s | created_ids=%s",
            original_id,
            len(group_ids),
            [slot.id for slot in created],
        )
        return ReplaceResult(slots=created, removed_ids=group_ids)

    def deactivate_slot(self, slot_id: int) -> TimetableSlot:
        slot = self.get_slot(slot_id)
        if slot.is_active:
            slot.is_active = False
            log_activity(
                self.db,
                actor_id=self.actor_id,
                action=AuditAction.TIMETABLE_DEACTIVATE,
                entity_id=slot.id,
            )
            self.db.commit()
            self.db.refresh(slot)
            logger.info("SLOT DEACTIVATE | slot_id=%s", slot_id)
        return slot

    def delete_slot(self, slot_id: int) -> None:
        slot = self.get_slot(slot_id)
        self.db.delete(slot)
        log_activity(
            self.db,
            actor_id=self.actor_id,
            action=AuditAction.TIMETABLE_DELETE,
            entity_id=slot_id,
        )
        self.db.commit()
        logger.info("SLOT DELETE | slot_id=%s", slot_id)

    def list_slots(
        self,
        *,
        branch_id: int | None = None,
        class_id: int | None = None,
        academic_year_id: int | None = None,
        is_active: bool | None = None,
    ) -> list[TimetableSlot]:
        query = select(TimetableSlot)
        if branch_id is not None:
            query = query.where(TimetableSlot.branch_id == branch_id)
        if class_id is not None:
            query = query.where(TimetableSlot.class_id == class_id)
        if academic_year_id is not None:
            query = query.where(TimetableSlot.academic_year_id == academic_year_id)
        if is_active is not None:
            query = query.where(TimetableSlot.is_active.is_(is_active))
        query = query.order_by(TimetableSlot.start_time.asc(), TimetableSlot.id.asc())
        return list(self.db.execute(query).scalars().all())

    def list_periods(self, **filters) -> list[dict]:
        """Group slots into periods, merging their subjects and teachers."""
        periods: dict[tuple, dict] = {}
        for slot in self.list_slots(**filters):
            key = period_key(slot) + (slot.is_active,)
            period = periods.get(key)
            if period is None:
                period = {
                    "id": slot.id,
                    "branch_id": slot.branch_id,
                    "class_id": slot.class_id,
                    "academic_year_id": slot.academic_year_id,
                    "day_of_week": slot.day_of_week,
                    "full_date": slot.full_date,
                    "start_time": slot.start_time,
                    "end_time": slot.end_time,
                    "room_number": slot.room_number,
                    "building_name": slot.building_name,
                    "is_active": slot.is_active,
                    "slot_ids": [],
                    "subject_ids": [],
                    "teacher_ids": [],
                    "needs_staffing": False,
                }
                periods[key] = period
            period["slot_ids"].append(slot.id)
            if slot.subject_id not in period["subject_ids"]:
                period["subject_ids"].append(slot.subject_id)
            for teacher_id in slot.teacher_ids or []:
                if teacher_id not in period["teacher_ids"]:
                    period["teacher_ids"].append(teacher_id)
            if not slot.teacher_ids:
                period["needs_staffing"] = True
        return sorted(periods.values(), key=_period_order)
