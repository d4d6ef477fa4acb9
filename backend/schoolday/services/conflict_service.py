from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from schoolday.models.enums import DayOfWeek
from schoolday.models.timetable_slot import TimetableSlot
from schoolday.services.time_window import TimeWindow, window_of


def normalize_room(value: str | None) -> str:
    return (value or "").strip().lower()


@dataclass(frozen=True)
class ScopeKey:
    """Slots can only collide when every field here matches.

    Teachers are not part of the key: double-booking a teacher across rooms is
    not treated as a conflict.
    """

    branch_id: int
    class_id: int
    room_number: str
    academic_year_id: int | None = None
    day_of_week: DayOfWeek | None = None
    full_date: date | None = None

    @classmethod
    def for_window(
        cls,
        window: TimeWindow,
        *,
        branch_id: int,
        class_id: int,
        room_number: str | None,
        academic_year_id: int | None = None,
    ) -> "ScopeKey":
        return cls(
            branch_id=branch_id,
            class_id=class_id,
            room_number=normalize_room(room_number),
            academic_year_id=academic_year_id,
            day_of_week=None if window.full_date is not None else window.day_of_week,
            full_date=window.full_date,
        )

    @classmethod
    def of_slot(cls, slot: TimetableSlot) -> "ScopeKey":
        return cls.for_window(
            window_of(slot),
            branch_id=slot.branch_id,
            class_id=slot.class_id,
            room_number=slot.room_number,
            academic_year_id=slot.academic_year_id,
        )

    def matches(self, other: "ScopeKey") -> bool:
        if (self.branch_id, self.class_id, self.room_number) != (other.branch_id, other.class_id, other.room_number):
            return False
        if self.academic_year_id is not None and other.academic_year_id is not None:
            if self.academic_year_id != other.academic_year_id:
                return False
        return (self.day_of_week, self.full_date) == (other.day_of_week, other.full_date)


@dataclass(frozen=True)
class ScheduledWindow:
    """A slot, persisted or still in memory, as the detector sees it."""

    ref: object
    scope: ScopeKey
    window: TimeWindow


@dataclass
class ConflictResult:
    conflict: bool
    slot_ids: list = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.conflict


class ConflictDetector:
    def find_conflicts(
        self,
        window: TimeWindow,
        scope: ScopeKey,
        candidates: Iterable[ScheduledWindow],
        *,
        exclude_ids: Iterable[object] = (),
    ) -> ConflictResult:
        excluded = set(exclude_ids)
        hits = [
            candidate.ref
            for candidate in candidates
            if candidate.ref not in excluded
            and candidate.scope.matches(scope)
            and candidate.window.overlaps(window)
        ]
        return ConflictResult(conflict=bool(hits), slot_ids=hits)

    def load_active(self, db: Session, scope: ScopeKey) -> list[ScheduledWindow]:
        """Re-read active slots for ``scope``; call at write time, never cache."""
        query = select(TimetableSlot).where(
            TimetableSlot.is_active.is_(True),
            TimetableSlot.branch_id == scope.branch_id,
            TimetableSlot.class_id == scope.class_id,
            func.lower(func.trim(TimetableSlot.room_number)) == scope.room_number,
        )
        if scope.academic_year_id is not None:
            query = query.where(TimetableSlot.academic_year_id == scope.academic_year_id)
        if scope.full_date is not None:
            query = query.where(TimetableSlot.full_date == scope.full_date)
        else:
            query = query.where(
                TimetableSlot.full_date.is_(None),
                TimetableSlot.day_of_week == scope.day_of_week,
            )
        slots = db.execute(query.order_by(TimetableSlot.start_time.asc())).scalars().all()
        return [ScheduledWindow(ref=slot.id, scope=ScopeKey.of_slot(slot), window=window_of(slot)) for slot in slots]

    def check_persisted(
        self,
        db: Session,
        window: TimeWindow,
        scope: ScopeKey,
        *,
        exclude_ids: Iterable[int] = (),
    ) -> ConflictResult:
        return self.find_conflicts(window, scope, self.load_active(db, scope), exclude_ids=exclude_ids)
