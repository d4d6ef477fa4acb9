from __future__ import annotations

from datetime import date
from enum import Enum


class RecordStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class AssignmentRole(str, Enum):
    TEACHER = "TEACHER"
    SUPERVISOR = "SUPERVISOR"


class DayOfWeek(str, Enum):
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"

    @classmethod
    def from_date(cls, value: date) -> "DayOfWeek":
        return list(cls)[value.weekday()]

    @classmethod
    def parse(cls, value: str) -> "DayOfWeek":
        normalized = value.strip().upper()
        for member in cls:
            if normalized in (member.value, member.value[:3]):
                return member
        raise ValueError(f"Invalid day of week: {value}")


class AuditAction(str, Enum):
    TIMETABLE_CREATE = "timetable.create"
    TIMETABLE_REPLACE = "timetable.replace"
    TIMETABLE_DEACTIVATE = "timetable.deactivate"
    TIMETABLE_DELETE = "timetable.delete"
    TIMETABLE_IMPORT = "timetable.import"
