from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from schoolday.models.enums import DayOfWeek


class SubjectTeacherPair(BaseModel):
    subject_id: int = Field(alias="subjectId", ge=1)
    teacher_ids: list[str] = Field(default_factory=list, alias="teacherIds", max_length=20)

    model_config = ConfigDict(populate_by_name=True)


class SlotCreate(BaseModel):
    branch_id: int = Field(alias="branchId", ge=1)
    class_id: int = Field(alias="classId", ge=1)
    academic_year_id: int = Field(alias="academicYearId", ge=1)
    day_of_week: str | None = Field(default=None, alias="dayOfWeek", max_length=20)
    full_date: date | None = Field(default=None, alias="date")
    start_time: str = Field(alias="startTime", max_length=8)
    end_time: str = Field(alias="endTime", max_length=8)
    room_number: str = Field(default="", alias="roomNumber", max_length=50)
    building_name: str | None = Field(default=None, alias="buildingName", max_length=200)
    is_active: bool = Field(default=True, alias="isActive")
    subject_teacher_pairs: list[SubjectTeacherPair] = Field(
        default_factory=list, alias="subjectTeacherPairs", max_length=20
    )
    # Older clients send one teacher list shared by every subject.
    subject_ids: list[int] = Field(default_factory=list, alias="subjectIds", max_length=20)
    teacher_ids: list[str] = Field(default_factory=list, alias="teacherIds", max_length=20)

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def normalize_pairs(self) -> "SlotCreate":
        if self.day_of_week is None and self.full_date is None:
            raise ValueError("Either dayOfWeek or date is required")
        if not self.subject_teacher_pairs and self.subject_ids:
            self.subject_teacher_pairs = [
                SubjectTeacherPair(subject_id=subject_id, teacher_ids=list(self.teacher_ids))
                for subject_id in self.subject_ids
            ]
        if not self.subject_teacher_pairs:
            raise ValueError("At least one subject must be specified")
        return self


class ReplaceEntry(BaseModel):
    subject_id: int = Field(alias="subjectId", ge=1)
    teacher_ids: list[str] | None = Field(default=None, alias="teacherIds", max_length=20)
    start_time: str | None = Field(default=None, alias="startTime", max_length=8)
    end_time: str | None = Field(default=None, alias="endTime", max_length=8)
    room_number: str | None = Field(default=None, alias="roomNumber", max_length=50)
    building_name: str | None = Field(default=None, alias="buildingName", max_length=200)
    day_of_week: str | None = Field(default=None, alias="dayOfWeek", max_length=20)
    class_id: int | None = Field(default=None, alias="classId", ge=1)
    branch_id: int | None = Field(default=None, alias="branchId", ge=1)
    academic_year_id: int | None = Field(default=None, alias="academicYearId", ge=1)

    model_config = ConfigDict(populate_by_name=True)


class SlotReplaceRequest(BaseModel):
    original_timetable_id: int = Field(alias="originalTimetableId", ge=1)
    entries: list[ReplaceEntry] = Field(min_length=1, max_length=20)

    model_config = ConfigDict(populate_by_name=True)


class TimetableSlotOut(BaseModel):
    id: int
    branch_id: int = Field(alias="branchId")
    class_id: int = Field(alias="classId")
    academic_year_id: int = Field(alias="academicYearId")
    day_of_week: DayOfWeek | None = Field(default=None, alias="dayOfWeek")
    full_date: date | None = Field(default=None, alias="date")
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    room_number: str = Field(alias="roomNumber")
    building_name: str | None = Field(default=None, alias="buildingName")
    subject_id: int = Field(alias="subjectId")
    teacher_ids: list[str] = Field(default_factory=list, alias="teacherIds")
    is_active: bool = Field(alias="isActive")
    source: str
    upload_id: int | None = Field(default=None, alias="uploadId")
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class SlotOut(BaseModel):
    message: str | None = None
    data: TimetableSlotOut


class SlotCreateResponse(BaseModel):
    message: str
    data: list[TimetableSlotOut]
    count: int


class SlotReplaceResponse(BaseModel):
    message: str
    data: TimetableSlotOut
    all_timetables: list[TimetableSlotOut] = Field(alias="allTimetables")
    count: int
    removed_ids: list[int] = Field(default_factory=list, alias="removedIds")

    model_config = ConfigDict(populate_by_name=True)


class PeriodOut(BaseModel):
    """All slots sharing one (day/date, window, class, room) tuple."""

    id: int
    branch_id: int = Field(alias="branchId")
    class_id: int = Field(alias="classId")
    academic_year_id: int = Field(alias="academicYearId")
    day_of_week: DayOfWeek | None = Field(default=None, alias="dayOfWeek")
    full_date: date | None = Field(default=None, alias="date")
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    room_number: str = Field(alias="roomNumber")
    building_name: str | None = Field(default=None, alias="buildingName")
    is_active: bool = Field(alias="isActive")
    slot_ids: list[int] = Field(default_factory=list, alias="slotIds")
    subject_ids: list[int] = Field(default_factory=list, alias="subjectIds")
    teacher_ids: list[str] = Field(default_factory=list, alias="teacherIds")
    needs_staffing: bool = Field(default=False, alias="needsStaffing")

    model_config = ConfigDict(populate_by_name=True)


class PeriodListResponse(BaseModel):
    timetables: list[PeriodOut]
    total: int
