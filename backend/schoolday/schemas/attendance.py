from __future__ import annotations

import datetime as dt
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from schoolday.models.attendance import AttendanceStatus


class AttendanceCreate(BaseModel):
    student_id: str = Field(alias="studentId", min_length=1, max_length=36)
    timetable_slot_id: int = Field(alias="timetableId", ge=1)
    date: dt.date
    status: AttendanceStatus
    teacher_id: str | None = Field(default=None, alias="teacherId", max_length=36)
    branch_id: int | None = Field(default=None, alias="branchId", ge=1)
    class_id: int | None = Field(default=None, alias="classId", ge=1)
    subject_id: int | None = Field(default=None, alias="subjectId", ge=1)
    academic_year_id: int | None = Field(default=None, alias="academicYearId", ge=1)
    notes: str | None = Field(default=None, max_length=2000)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("status", mode="before")
    @classmethod
    def upper_status(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("student_id")
    @classmethod
    def strip_student_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("studentId is required")
        return value


class AttendanceOut(BaseModel):
    id: int
    student_id: str = Field(alias="studentId")
    timetable_slot_id: int = Field(alias="timetableId")
    date: dt.date
    status: AttendanceStatus
    teacher_id: str | None = Field(default=None, alias="teacherId")
    branch_id: int = Field(alias="branchId")
    class_id: int = Field(alias="classId")
    subject_id: int = Field(alias="subjectId")
    academic_year_id: int = Field(alias="academicYearId")
    notes: str | None = None
    created_at: dt.datetime | None = Field(default=None, alias="createdAt")
    updated_at: dt.datetime | None = Field(default=None, alias="updatedAt")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class AttendanceCreateResponse(BaseModel):
    success: bool = True
    message: str
    data: AttendanceOut


class Pagination(BaseModel):
    page: int
    limit: int
    total_count: int = Field(alias="totalCount")
    total_pages: int = Field(alias="totalPages")
    has_next: bool = Field(alias="hasNext")
    has_prev: bool = Field(alias="hasPrev")

    model_config = ConfigDict(populate_by_name=True)


class AttendanceSummary(BaseModel):
    present: int = 0
    absent: int = 0
    late: int = 0
    excused: int = 0
    total: int = 0


class AttendanceListData(BaseModel):
    attendance: list[AttendanceOut]
    pagination: Pagination
    summary: AttendanceSummary


class AttendanceListResponse(BaseModel):
    success: bool = True
    data: AttendanceListData


class BulkAttendanceRequest(BaseModel):
    # Items stay raw so one malformed record cannot reject the whole request.
    attendance_records: list[dict[str, Any]] = Field(alias="attendanceRecords", min_length=1)

    model_config = ConfigDict(populate_by_name=True)


class BulkItemOut(BaseModel):
    index: int
    status: Literal["fulfilled", "rejected"]
    data: AttendanceOut | None = None
    error: str | None = None


class BulkAttendanceData(BaseModel):
    processed: int
    successful: int
    failed: int
    results: list[BulkItemOut]


class BulkAttendanceResponse(BaseModel):
    success: bool = True
    message: str
    data: BulkAttendanceData
