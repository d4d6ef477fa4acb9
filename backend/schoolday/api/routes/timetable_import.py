from datetime import date

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import JSONResponse, Response
from sqlalchemy import select
from sqlalchemy.orm import Session

from schoolday.api.deps import SCHEDULER_ROLES, Actor, get_app_settings, get_db, require_roles
from schoolday.core.config import Settings
from schoolday.models.bulk_upload import TimetableBulkUpload
from schoolday.schemas.bulk_import import ImportResultOut, UploadOut
from schoolday.schemas.timetable import TimetableSlotOut
from schoolday.services.bulk_import import BulkImportValidator
from schoolday.services.import_template import XLSX_MEDIA_TYPE, build_template, parse_upload

router = APIRouter()


@router.get("/template")
def download_template(
    current_actor: Actor = Depends(require_roles(*SCHEDULER_ROLES)),
    settings: Settings = Depends(get_app_settings),
) -> Response:
    filename = f"timetable-bulk-upload-template-{date.today().isoformat()}.xlsx"
    return Response(
        content=build_template(settings.import_max_rows),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("", response_model=ImportResultOut)
def upload_timetable(
    file: UploadFile = File(...),
    validate_only: bool = Form(default=False, alias="validateOnly"),
    current_actor: Actor = Depends(require_roles(*SCHEDULER_ROLES)),
    settings: Settings = Depends(get_app_settings),
    db: Session = Depends(get_db),
) -> JSONResponse:
    content = file.file.read()
    rows = parse_upload(file.filename, content)
    validator = BulkImportValidator(db, max_rows=settings.import_max_rows, actor_id=current_actor.id)
    result = validator.validate(rows, validate_only=validate_only, file_name=file.filename or "upload")

    body = ImportResultOut(
        upload_id=result.upload_id,
        total_rows=result.total_rows,
        committed_count=result.committed_count,
        error_count=result.error_count,
        validate_only=result.validate_only,
        committed=[TimetableSlotOut.model_validate(slot) for slot in result.committed],
        errors=[error.as_dict() for error in result.errors],
    )
    status_code = status.HTTP_201_CREATED if result.committed else status.HTTP_200_OK
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", by_alias=True))


@router.get("", response_model=list[UploadOut])
def list_uploads(
    current_actor: Actor = Depends(require_roles(*SCHEDULER_ROLES)),
    db: Session = Depends(get_db),
) -> list[TimetableBulkUpload]:
    query = (
        select(TimetableBulkUpload)
        .where(TimetableBulkUpload.uploaded_by == current_actor.id)
        .order_by(TimetableBulkUpload.created_at.desc(), TimetableBulkUpload.id.desc())
        .limit(20)
    )
    return list(db.execute(query).scalars())


@router.get("/{upload_id}", response_model=UploadOut)
def get_upload(
    upload_id: int,
    current_actor: Actor = Depends(require_roles(*SCHEDULER_ROLES)),
    db: Session = Depends(get_db),
) -> TimetableBulkUpload:
    upload = db.get(TimetableBulkUpload, upload_id)
    if upload is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Upload not found")
    return upload
