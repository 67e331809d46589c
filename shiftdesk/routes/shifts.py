from typing import Literal, Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from ..db import get_db
from ..models.models import User
from ..auth.security import get_current_user, require_admin
from ..schemas.shifts import (
    ISO_WEEK_PATTERN,
    AddInspectorIn,
    InspectorGroupIn,
    SetDayIn,
    ShiftResponseIn,
    WeeklyAssignmentCreate,
    WeeklyAssignmentUpdate,
)
from ..services import weekly_assignments as svc


router = APIRouter(prefix="/api", tags=["shifts"])

StatusFilter = Optional[Literal["PENDING", "ACCEPTED", "REJECTED"]]


# ---------- inspector lookups (declared before /admin/shifts/{shift_id}) ----------

@router.get("/admin/shifts/inspectors/availability")
def inspector_availability(
    shift_type_id: int,
    week: str = Query(..., pattern=ISO_WEEK_PATTERN),
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    return svc.inspector_availability(db, shift_type_id, week)


@router.get("/admin/shifts/inspectors")
def inspectors_for_shift_type(shift_type_id: int, db: Session = Depends(get_db), _=Depends(require_admin)):
    return svc.inspectors_for_shift_type(db, shift_type_id)


# ---------- admin CRUD ----------

@router.get("/admin/shifts")
def list_shifts(
    building_id: Optional[int] = None,
    week: Optional[str] = Query(None, pattern=ISO_WEEK_PATTERN),
    status: StatusFilter = None,
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    return svc.list_weekly_assignments(db, building_id=building_id, week=week, status=status)


@router.post("/admin/shifts")
def create_shift(payload: WeeklyAssignmentCreate, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return svc.create_weekly_assignment(db, payload, created_by=admin.id)


@router.get("/admin/shifts/{shift_id}")
def get_shift(shift_id: int, db: Session = Depends(get_db), _=Depends(require_admin)):
    return svc.get_weekly_assignment(db, shift_id)


@router.put("/admin/shifts/{shift_id}")
def update_shift(shift_id: int, payload: WeeklyAssignmentUpdate, db: Session = Depends(get_db), _=Depends(require_admin)):
    return svc.update_weekly_assignment(db, shift_id, payload)


@router.delete("/admin/shifts/{shift_id}")
def delete_shift(shift_id: int, db: Session = Depends(get_db), _=Depends(require_admin)):
    svc.delete_weekly_assignment(db, shift_id)
    return {"status": "ok"}


# ---------- incremental editing ----------

@router.post("/admin/shifts/{shift_id}/inspector-groups")
def add_inspector_group(shift_id: int, payload: InspectorGroupIn, db: Session = Depends(get_db), _=Depends(require_admin)):
    return svc.add_inspector_group(db, shift_id, payload)


@router.post("/admin/inspector-groups/{group_id}/inspectors")
def add_inspector(group_id: int, payload: AddInspectorIn, db: Session = Depends(get_db), _=Depends(require_admin)):
    return svc.add_inspector_to_group(db, group_id, payload.inspector_id, payload.is_primary)


@router.put("/admin/inspector-groups/{group_id}/days/{day_of_week}")
def set_group_day(
    group_id: int,
    payload: SetDayIn,
    day_of_week: int = Path(..., ge=0, le=6),
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    return svc.set_group_day(db, group_id, day_of_week, payload.shift_type_id)


# ---------- inspector side ----------

@router.get("/shifts")
def my_shifts(status: StatusFilter = None, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return svc.list_inspector_assignments(db, user.id, status=status)


@router.post("/shifts/{shift_id}/inspectors/{inspector_id}/response")
def respond_to_shift(
    shift_id: int,
    inspector_id: int,
    payload: ShiftResponseIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return svc.respond(db, shift_id, inspector_id, user, payload.action, payload.rejection_reason)


@router.post("/shifts/{shift_id}/respond")
def respond_as_caller(
    shift_id: int,
    payload: ShiftResponseIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return svc.respond(db, shift_id, user.id, user, payload.action, payload.rejection_reason)
