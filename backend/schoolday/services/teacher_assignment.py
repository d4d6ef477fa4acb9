from __future__ import annotations

from collections.abc import Iterable
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from schoolday.models.enums import AssignmentRole, RecordStatus
from schoolday.models.teacher import TeacherAssignment

logger = logging.getLogger(__name__)


def dedupe(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        ordered.append(value)
    return ordered


class TeacherAutoAssigner:
    """Fills in the teachers of a slot created without an explicit list."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def assigned_teachers(self, *, class_id: int, subject_id: int, academic_year_id: int) -> list[str]:
        rows = self.db.execute(
            select(TeacherAssignment.teacher_id)
            .where(
                TeacherAssignment.class_id == class_id,
                TeacherAssignment.subject_id == subject_id,
                TeacherAssignment.academic_year_id == academic_year_id,
                TeacherAssignment.status == RecordStatus.ACTIVE,
                TeacherAssignment.role == AssignmentRole.TEACHER,
            )
            .order_by(TeacherAssignment.id.asc())
        ).scalars()
        return dedupe(rows)

    def resolve(
        self,
        *,
        class_id: int,
        subject_id: int,
        academic_year_id: int,
        explicit: Iterable[str] | None = None,
    ) -> list[str]:
        explicit_ids = dedupe(teacher_id for teacher_id in (explicit or []) if teacher_id)
        if explicit_ids:
            return explicit_ids

        teacher_ids = self.assigned_teachers(
            class_id=class_id,
            subject_id=subject_id,
            academic_year_id=academic_year_id,
        )
        if not teacher_ids:
            logger.warning(
                "SLOT NEEDS STAFFING | class_id=%s | subject_id=%s | academic_year_id=%s",
                class_id,
                subject_id,
                academic_year_id,
            )
        return teacher_ids
