from datetime import date, datetime

from sqlalchemy import select

from schoolday.models.bulk_upload import TimetableBulkUpload, UploadStatus
from schoolday.models.enums import DayOfWeek
from schoolday.models.timetable_slot import TimetableSlot
from schoolday.schemas.timetable import SlotCreate
from schoolday.services.bulk_import import BulkImportValidator
from schoolday.services.slot_manager import TimetableSlotManager


def _row(**overrides):
    row = {
        "branch": "SCI",
        "class": "Grade 10A",
        "academicYear": "2024-2025",
        "subject": "Physics",
        "teacher": "John Smith",
        "date": "2024-09-06",
        "startTime": "09:00",
        "endTime": "10:00",
        "roomNumber": "204",
    }
    row.update(overrides)
    return row


def _slots(db_session):
    db_session.expire_all()
    return db_session.execute(select(TimetableSlot).order_by(TimetableSlot.id)).scalars().all()


def test_single_row_commits_against_empty_store(db_session, school):
    result = BulkImportValidator(db_session, actor_id="user-1").validate([_row()], file_name="week1.xlsx")

    assert result.committed_count == 1
    assert result.errors == []
    slot = _slots(db_session)[0]
    assert slot.full_date == date(2024, 9, 6)
    assert slot.day_of_week == DayOfWeek.FRIDAY
    assert slot.teacher_ids == [school.john]
    assert slot.source == "import"
    assert slot.upload_id == result.upload_id

    upload = db_session.get(TimetableBulkUpload, result.upload_id)
    assert upload.status == UploadStatus.COMPLETED
    assert upload.uploaded_by == "user-1"
    assert (upload.total_rows, upload.success_rows, upload.error_rows) == (1, 1, 0)


def test_duplicate_row_in_batch_is_a_conflict(db_session, school):
    result = BulkImportValidator(db_session).validate([_row(), _row()])

    assert result.committed_count == 1
    assert len(result.errors) == 1
    error = result.errors[0]
    assert (error.row, error.code) == (3, "SchedulingConflict")
    assert error.message == "Time conflict with row 2 in upload data"


def test_one_bad_row_does_not_block_the_rest(db_session, school):
    rows = [
        _row(),
        _row(subject="Astrology", startTime="10:00", endTime="11:00"),
        _row(subject="Chemistry", teacher="jane  doe", startTime="11:00", endTime="12:00"),
    ]

    result = BulkImportValidator(db_session).validate(rows)

    assert result.committed_count == 2
    assert [error.as_dict() for error in result.errors] == [
        {
            "row": 3,
            "field": "subject",
            "code": "UnresolvedReference",
            "message": "Subject not found",
            "value": "Astrology",
        }
    ]
    assert db_session.get(TimetableBulkUpload, result.upload_id).status == UploadStatus.PARTIAL


def test_first_failing_rule_wins(db_session, school):
    rows = [
        _row(roomNumber=""),
        _row(branch="XYZ"),
        _row(teacher="Alice Johnson"),
        _row(date="06/09/2024"),
        _row(startTime="10:00", endTime="09:00"),
        _row(date="2025-08-01"),
        _row(status="ARCHIVED"),
    ]

    result = BulkImportValidator(db_session).validate(rows)

    assert result.committed_count == 0
    assert [(error.row, error.field, error.code) for error in result.errors] == [
        (2, "roomNumber", "MissingField"),
        (3, "branch", "UnresolvedReference"),
        (4, "teacher", "UnresolvedReference"),
        (5, "date", "InvalidDate"),
        (6, "endTime", "InvalidWindow"),
        (7, "date", "OutOfAcademicYearRange"),
        (8, "status", "InvalidStatus"),
    ]
    assert db_session.get(TimetableBulkUpload, result.upload_id).status == UploadStatus.FAILED


def test_conflict_with_persisted_slot(db_session, school):
    existing = TimetableSlotManager(db_session).create_slots(
        SlotCreate.model_validate(
            {
                "branchId": school.sci,
                "classId": school.grade_10a,
                "academicYearId": school.year,
                "date": "2024-09-06",
                "startTime": "09:30",
                "endTime": "10:30",
                "roomNumber": "204",
                "subjectTeacherPairs": [{"subjectId": school.chemistry}],
            }
        )
    )[0]

    result = BulkImportValidator(db_session).validate([_row()])

    assert result.committed_count == 0
    assert result.errors[0].code == "SchedulingConflict"
    assert result.errors[0].message == f"Time conflict with existing timetable slot {existing.id}"


def test_validate_only_writes_no_slots(db_session, school):
    result = BulkImportValidator(db_session).validate([_row(), _row(subject="Astrology")], validate_only=True)

    assert result.committed_count == 0
    assert result.valid_rows == 1
    assert result.error_count == 1
    assert _slots(db_session) == []
    upload = db_session.get(TimetableBulkUpload, result.upload_id)
    assert upload.validate_only is True
    assert upload.success_rows == 1


def test_rows_beyond_the_cap_are_rejected(db_session, school):
    rows = [_row(startTime=f"{hour:02d}:00", endTime=f"{hour:02d}:30") for hour in (8, 9, 10)]

    result = BulkImportValidator(db_session, max_rows=2).validate(rows)

    assert result.committed_count == 2
    assert [(error.row, error.code) for error in result.errors] == [(4, "BatchTooLarge")]
    assert result.errors[0].message == "Maximum 2 rows per upload"


def test_inactive_rows_skip_conflict_detection(db_session, school):
    result = BulkImportValidator(db_session).validate([_row(), _row(status="inactive")])

    assert result.committed_count == 2
    assert [slot.is_active for slot in _slots(db_session)] == [True, False]


def test_spreadsheet_cell_types_are_accepted(db_session, school):
    row = _row(date=datetime(2024, 9, 6), roomNumber=204.0, branch="science branch")

    result = BulkImportValidator(db_session).validate([row])

    assert result.errors == []
    assert _slots(db_session)[0].room_number == "204"
