from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from schoolday.api.deps import SCHEDULER_ROLES, Actor, get_current_actor, get_db, require_roles
from schoolday.schemas.timetable import (
    PeriodListResponse,
    PeriodOut,
    SlotCreate,
    SlotCreateResponse,
    SlotOut,
    SlotReplaceRequest,
    SlotReplaceResponse,
    TimetableSlotOut,
)
from schoolday.services.slot_manager import TimetableSlotManager

router = APIRouter()


@router.get("", response_model=PeriodListResponse)
def list_timetables(
    branch_id: int | None = Query(default=None, alias="branchId"),
    class_id: int | None = Query(default=None, alias="classId"),
    academic_year_id: int | None = Query(default=None, alias="academicYearId"),
    is_active: bool | None = Query(default=None, alias="isActive"),
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> PeriodListResponse:
    periods = TimetableSlotManager(db).list_periods(
        branch_id=branch_id,
        class_id=class_id,
        academic_year_id=academic_year_id,
        is_active=is_active,
    )
    return PeriodListResponse(
        timetables=[PeriodOut.model_validate(period) for period in periods],
        total=len(periods),
    )


@router.post("", response_model=SlotCreateResponse, status_code=status.HTTP_201_CREATED)
def create_timetable(
    payload: SlotCreate,
    current_actor: Actor = Depends(require_roles(*SCHEDULER_ROLES)),
    db: Session = Depends(get_db),
) -> SlotCreateResponse:
    slots = TimetableSlotManager(db, actor_id=current_actor.id).create_slots(payload)
    return SlotCreateResponse(
        message=f"Created {len(slots)} timetable entr{'y' if len(slots) == 1 else 'ies'}",
        data=[TimetableSlotOut.model_validate(slot) for slot in slots],
        count=len(slots),
    )


@router.put("/replace", response_model=SlotReplaceResponse)
def replace_timetable(
    payload: SlotReplaceRequest,
    current_actor: Actor = Depends(require_roles(*SCHEDULER_ROLES)),
    db: Session = Depends(get_db),
) -> SlotReplaceResponse:
    result = TimetableSlotManager(db, actor_id=current_actor.id).replace_slot(
        payload.original_timetable_id, payload.entries
    )
    created = [TimetableSlotOut.model_validate(slot) for slot in result.slots]
    return SlotReplaceResponse(
        message=f"Timetable updated successfully with {result.count} entries",
        data=created[0],
        all_timetables=created,
        count=result.count,
        removed_ids=result.removed_ids,
    )


@router.get("/{slot_id}", response_model=SlotOut)
def get_timetable(
    slot_id: int,
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> SlotOut:
    slot = TimetableSlotManager(db).get_slot(slot_id)
    return SlotOut(data=TimetableSlotOut.model_validate(slot))


@router.post("/{slot_id}/deactivate", response_model=SlotOut)
def deactivate_timetable(
    slot_id: int,
    current_actor: Actor = Depends(require_roles(*SCHEDULER_ROLES)),
    db: Session = Depends(get_db),
) -> SlotOut:
    slot = TimetableSlotManager(db, actor_id=current_actor.id).deactivate_slot(slot_id)
    return SlotOut(message="Timetable entry deactivated", data=TimetableSlotOut.model_validate(slot))


@router.delete("/{slot_id}")
def delete_timetable(
    slot_id: int,
    current_actor: Actor = Depends(require_roles(*SCHEDULER_ROLES)),
    db: Session = Depends(get_db),
) -> dict:
    TimetableSlotManager(db, actor_id=current_actor.id).delete_slot(slot_id)
    return {"success": True, "id": slot_id}
