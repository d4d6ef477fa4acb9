class AppError(Exception):
    """Base class for all application exceptions."""

    code = "AppError"

    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = {"code": self.code, **(details or {})}
        super().__init__(self.message)


class InvalidWindowError(AppError):
    """Raised when a time range cannot be parsed or ends before it starts."""

    code = "InvalidWindow"

    def __init__(self, message: str, *, field: str | None = None, value: object = None):
        self.field = field
        self.value = value
        super().__init__(message, status_code=422, details={"field": field, "value": value})


class UnresolvedReferenceError(AppError):
    """Raised when a name or id does not resolve to a reference record."""

    code = "UnresolvedReference"

    def __init__(self, field: str, value: object, message: str | None = None):
        self.field = field
        self.value = value
        super().__init__(
            message or f"{field} '{value}' not found",
            status_code=422,
            details={"field": field, "value": value},
        )


class OutOfAcademicYearRangeError(AppError):
    code = "OutOfAcademicYearRange"

    def __init__(self, value: object, start: object, end: object):
        self.field = "date"
        self.value = value
        super().__init__(
            f"Date {value} is outside academic year range {start} to {end}",
            status_code=422,
            details={"field": "date", "value": str(value), "start": str(start), "end": str(end)},
        )


class SchedulingConflictError(AppError):
    """Raised when a window overlaps an active slot in the same scope."""

    code = "SchedulingConflict"

    def __init__(self, message: str, conflicting_ids: list | None = None):
        self.conflicting_ids = list(conflicting_ids or [])
        super().__init__(message, status_code=409, details={"conflicting_ids": self.conflicting_ids})


class BatchTooLargeError(AppError):
    """Upload rows past the row cap. Reported per row in the import result."""

    code = "BatchTooLarge"


class SlotNotFoundError(AppError):
    code = "SlotNotFound"

    def __init__(self, slot_id: object):
        self.slot_id = slot_id
        super().__init__(f"Timetable slot with id {slot_id} not found", status_code=404, details={"slot_id": slot_id})


class DuplicateAttendanceError(AppError):
    code = "DuplicateAttendance"

    def __init__(self, student_id: str, timetable_slot_id: int, on_date: object):
        super().__init__(
            "Attendance already recorded for this student, timetable, and date",
            status_code=409,
            details={
                "student_id": student_id,
                "timetable_id": timetable_slot_id,
                "date": str(on_date),
            },
        )


class ImportFileError(AppError):
    code = "InvalidImportFile"

    def __init__(self, message: str):
        super().__init__(message, status_code=400)
