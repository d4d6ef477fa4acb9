from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from schoolday.api.deps import ATTENDANCE_ROLES, Actor, get_app_settings, get_current_actor, get_db, require_roles
from schoolday.core.config import Settings
from schoolday.models.attendance import AttendanceStatus
from schoolday.schemas.attendance import (
    AttendanceCreate,
    AttendanceCreateResponse,
    AttendanceListData,
    AttendanceListResponse,
    AttendanceOut,
    AttendanceSummary,
    BulkAttendanceData,
    BulkAttendanceRequest,
    BulkAttendanceResponse,
    BulkItemOut,
    Pagination,
)
from schoolday.services.attendance_ledger import AttendanceFilters, AttendanceLedger

router = APIRouter()


def _ledger(db: Session, settings: Settings) -> AttendanceLedger:
    return AttendanceLedger(
        db,
        batch_size=settings.attendance_batch_size,
        default_page_size=settings.attendance_default_page_size,
        max_page_size=settings.attendance_max_page_size,
    )


@router.get("", response_model=AttendanceListResponse)
def list_attendance(
    branch_id: int | None = Query(default=None, alias="branchId"),
    class_id: int | None = Query(default=None, alias="classId"),
    teacher_id: str | None = Query(default=None, alias="teacherId"),
    student_id: str | None = Query(default=None, alias="studentId"),
    on_date: date | None = Query(default=None, alias="date"),
    attendance_status: AttendanceStatus | None = Query(default=None, alias="status"),
    academic_year_id: int | None = Query(default=None, alias="academicYearId"),
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    current_actor: Actor = Depends(get_current_actor),
    settings: Settings = Depends(get_app_settings),
    db: Session = Depends(get_db),
) -> AttendanceListResponse:
    filters = AttendanceFilters(
        branch_id=branch_id,
        class_id=class_id,
        teacher_id=teacher_id,
        student_id=student_id,
        on_date=on_date,
        status=attendance_status,
        academic_year_id=academic_year_id,
    )
    result = _ledger(db, settings).query(filters, page=page, limit=limit)
    return AttendanceListResponse(
        data=AttendanceListData(
            attendance=[AttendanceOut.model_validate(record) for record in result.records],
            pagination=Pagination(**result.pagination),
            summary=AttendanceSummary(**result.summary),
        )
    )


@router.post("", response_model=AttendanceCreateResponse, status_code=status.HTTP_201_CREATED)
def create_attendance(
    payload: AttendanceCreate,
    current_actor: Actor = Depends(require_roles(*ATTENDANCE_ROLES)),
    settings: Settings = Depends(get_app_settings),
    db: Session = Depends(get_db),
) -> AttendanceCreateResponse:
    record = _ledger(db, settings).record(payload)
    return AttendanceCreateResponse(
        message="Attendance recorded successfully",
        data=AttendanceOut.model_validate(record),
    )


@router.put("", response_model=BulkAttendanceResponse)
def bulk_upsert_attendance(
    payload: BulkAttendanceRequest,
    current_actor: Actor = Depends(require_roles(*ATTENDANCE_ROLES)),
    settings: Settings = Depends(get_app_settings),
    db: Session = Depends(get_db),
) -> BulkAttendanceResponse:
    result = _ledger(db, settings).bulk_upsert(payload.attendance_records)
    return BulkAttendanceResponse(
        message=f"Processed {result.processed} attendance records",
        data=BulkAttendanceData(
            processed=result.processed,
            successful=result.successful,
            failed=result.failed,
            results=[
                BulkItemOut(
                    index=item.index,
                    status=item.status,
                    data=AttendanceOut.model_validate(item.data) if item.data is not None else None,
                    error=item.error,
                )
                for item in result.results
            ],
        ),
    )
