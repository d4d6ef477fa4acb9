from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from schoolday.models.bulk_upload import UploadStatus
from schoolday.schemas.timetable import TimetableSlotOut


class ImportRowError(BaseModel):
    row: int
    field: str
    code: str
    message: str
    value: Any = None


class ImportResultOut(BaseModel):
    upload_id: int | None = Field(default=None, alias="uploadId")
    total_rows: int = Field(alias="totalRows")
    committed_count: int = Field(alias="committedCount")
    error_count: int = Field(alias="errorCount")
    validate_only: bool = Field(alias="validateOnly")
    committed: list[TimetableSlotOut] = Field(default_factory=list)
    errors: list[ImportRowError] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


class UploadOut(BaseModel):
    id: int
    file_name: str = Field(alias="fileName")
    uploaded_by: str | None = Field(default=None, alias="uploadedBy")
    status: UploadStatus
    validate_only: bool = Field(alias="validateOnly")
    total_rows: int = Field(alias="totalRows")
    success_rows: int = Field(alias="successRows")
    error_rows: int = Field(alias="errorRows")
    errors: list[ImportRowError] = Field(default_factory=list)
    created_at: datetime | None = Field(default=None, alias="createdAt")
    completed_at: datetime | None = Field(default=None, alias="completedAt")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)
