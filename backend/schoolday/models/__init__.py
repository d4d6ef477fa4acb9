from schoolday.models.academic_year import AcademicYear  # noqa: F401
from schoolday.models.activity_log import ActivityLog  # noqa: F401
from schoolday.models.attendance import AttendanceRecord, AttendanceStatus  # noqa: F401
from schoolday.models.branch import Branch  # noqa: F401
from schoolday.models.bulk_upload import TimetableBulkUpload, UploadStatus  # noqa: F401
from schoolday.models.enums import AssignmentRole, DayOfWeek, RecordStatus  # noqa: F401
from schoolday.models.school_class import SchoolClass  # noqa: F401
from schoolday.models.subject import Subject  # noqa: F401
from schoolday.models.teacher import Teacher, TeacherAssignment  # noqa: F401
from schoolday.models.timetable_slot import TimetableSlot  # noqa: F401
