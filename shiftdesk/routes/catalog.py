from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..db import get_db
from ..models.models import (
    Agency,
    BuildingCoordinator,
    DailyShiftType,
    InspectorGroup,
    Role,
    ShiftType,
    Task,
    TaskType,
    User,
)
from ..auth.security import get_current_user, require_admin
from ..schemas.catalog import (
    NamedItemIn,
    NamedItemUpdate,
    ShiftTypeIn,
    ShiftTypeUpdate,
)


router = APIRouter(prefix="/api", tags=["catalog"])


def _named(row) -> dict:
    return {
        "id": row.id,
        "name": row.name,
        "description": row.description,
        "created_by": row.created_by,
        "created_at": row.created_at.isoformat() if row.created_at else None,
    }


def _shift_type(st: ShiftType) -> dict:
    data = _named(st)
    data["start_time"] = st.start_time
    data["end_time"] = st.end_time
    return data


def _ensure_unique_name(db: Session, model, name: str, exclude_id: int = None, label: str = "Name") -> None:
    q = db.query(model).filter(model.name == name)
    if exclude_id is not None:
        q = q.filter(model.id != exclude_id)
    if q.first():
        raise HTTPException(status_code=400, detail=f"{label} already exists")


def _get_or_404(db: Session, model, item_id: int, label: str):
    row = db.query(model).filter(model.id == item_id).first()
    if not row:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return row


# ---------- shift types ----------

@router.get("/shift-types")
def list_shift_types(db: Session = Depends(get_db), _=Depends(get_current_user)):
    rows = db.query(ShiftType).order_by(ShiftType.start_time.asc(), ShiftType.name.asc()).all()
    return [_shift_type(st) for st in rows]


@router.post("/admin/shift-types")
def create_shift_type(payload: ShiftTypeIn, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    name = payload.name.strip()
    _ensure_unique_name(db, ShiftType, name, label="Shift type")
    st = ShiftType(
        name=name,
        start_time=payload.start_time,
        end_time=payload.end_time,
        description=payload.description,
        created_by=admin.id,
    )
    db.add(st)
    db.commit()
    db.refresh(st)
    return _shift_type(st)


@router.put("/admin/shift-types/{shift_type_id}")
def update_shift_type(shift_type_id: int, payload: ShiftTypeUpdate, db: Session = Depends(get_db), _=Depends(require_admin)):
    st = _get_or_404(db, ShiftType, shift_type_id, "Shift type")
    if payload.name is not None:
        name = payload.name.strip()
        _ensure_unique_name(db, ShiftType, name, exclude_id=shift_type_id, label="Shift type")
        st.name = name
    if payload.start_time is not None:
        st.start_time = payload.start_time
    if payload.end_time is not None:
        st.end_time = payload.end_time
    if payload.description is not None:
        st.description = payload.description
    db.commit()
    db.refresh(st)
    return _shift_type(st)


@router.delete("/admin/shift-types/{shift_type_id}")
def delete_shift_type(shift_type_id: int, db: Session = Depends(get_db), _=Depends(require_admin)):
    st = _get_or_404(db, ShiftType, shift_type_id, "Shift type")
    if db.query(DailyShiftType).filter(DailyShiftType.shift_type_id == shift_type_id).first():
        raise HTTPException(status_code=400, detail="Shift type is used by shift assignments")
    db.query(BuildingCoordinator).filter(BuildingCoordinator.shift_type_id == shift_type_id).update(
        {BuildingCoordinator.shift_type_id: None}, synchronize_session=False
    )
    db.query(Task).filter(Task.shift_type_id == shift_type_id).update(
        {Task.shift_type_id: None}, synchronize_session=False
    )
    db.delete(st)
    db.commit()
    return {"status": "ok"}


# ---------- roles ----------

@router.get("/roles")
def list_roles(db: Session = Depends(get_db), _=Depends(get_current_user)):
    rows = db.query(Role).order_by(Role.name.asc()).all()
    return [{"id": r.id, "name": r.name} for r in rows]


@router.get("/admin/roles")
def list_roles_admin(db: Session = Depends(get_db), _=Depends(require_admin)):
    rows = db.query(Role).order_by(Role.name.asc()).all()
    return [_named(r) for r in rows]


@router.post("/admin/roles")
def create_role(payload: NamedItemIn, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    r = Role(name=payload.name.strip(), description=payload.description, created_by=admin.id)
    db.add(r)
    db.commit()
    db.refresh(r)
    return _named(r)


@router.put("/admin/roles/{role_id}")
def update_role(role_id: int, payload: NamedItemUpdate, db: Session = Depends(get_db), _=Depends(require_admin)):
    r = _get_or_404(db, Role, role_id, "Role")
    if payload.name is not None:
        r.name = payload.name.strip()
    if payload.description is not None:
        r.description = payload.description
    db.commit()
    db.refresh(r)
    return _named(r)


@router.delete("/admin/roles/{role_id}")
def delete_role(role_id: int, db: Session = Depends(get_db), _=Depends(require_admin)):
    r = _get_or_404(db, Role, role_id, "Role")
    if db.query(InspectorGroup).filter(InspectorGroup.role_id == role_id).first():
        raise HTTPException(status_code=400, detail="Role is used by inspector groups")
    db.delete(r)
    db.commit()
    return {"status": "ok"}


# ---------- task types ----------

@router.get("/task-types")
def list_task_types(db: Session = Depends(get_db), _=Depends(get_current_user)):
    rows = db.query(TaskType).order_by(TaskType.name.asc()).all()
    return [_named(t) for t in rows]


@router.post("/admin/task-types")
def create_task_type(payload: NamedItemIn, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    name = payload.name.strip()
    _ensure_unique_name(db, TaskType, name, label="Task type")
    t = TaskType(name=name, description=payload.description, created_by=admin.id)
    db.add(t)
    db.commit()
    db.refresh(t)
    return _named(t)


@router.put("/admin/task-types/{task_type_id}")
def update_task_type(task_type_id: int, payload: NamedItemUpdate, db: Session = Depends(get_db), _=Depends(require_admin)):
    t = _get_or_404(db, TaskType, task_type_id, "Task type")
    if payload.name is not None:
        name = payload.name.strip()
        _ensure_unique_name(db, TaskType, name, exclude_id=task_type_id, label="Task type")
        t.name = name
    if payload.description is not None:
        t.description = payload.description
    db.commit()
    db.refresh(t)
    return _named(t)


@router.delete("/admin/task-types/{task_type_id}")
def delete_task_type(task_type_id: int, db: Session = Depends(get_db), _=Depends(require_admin)):
    t = _get_or_404(db, TaskType, task_type_id, "Task type")
    if db.query(Task).filter(Task.task_type_id == task_type_id).first():
        raise HTTPException(status_code=400, detail="Task type is used by tasks")
    db.delete(t)
    db.commit()
    return {"status": "ok"}


# ---------- agencies ----------

@router.get("/admin/agencies")
def list_agencies(db: Session = Depends(get_db), _=Depends(get_current_user)):
    rows = db.query(Agency).order_by(Agency.name.asc()).all()
    return [_named(a) for a in rows]


@router.post("/admin/agencies")
def create_agency(payload: NamedItemIn, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    name = payload.name.strip()
    _ensure_unique_name(db, Agency, name, label="Agency")
    a = Agency(name=name, description=payload.description, created_by=admin.id)
    db.add(a)
    db.commit()
    db.refresh(a)
    return _named(a)


@router.put("/admin/agencies/{agency_id}")
def update_agency(agency_id: int, payload: NamedItemUpdate, db: Session = Depends(get_db), _=Depends(require_admin)):
    a = _get_or_404(db, Agency, agency_id, "Agency")
    if payload.name is not None:
        name = payload.name.strip()
        _ensure_unique_name(db, Agency, name, exclude_id=agency_id, label="Agency")
        a.name = name
    if payload.description is not None:
        a.description = payload.description
    db.commit()
    db.refresh(a)
    return _named(a)


@router.delete("/admin/agencies/{agency_id}")
def delete_agency(agency_id: int, db: Session = Depends(get_db), _=Depends(require_admin)):
    a = _get_or_404(db, Agency, agency_id, "Agency")
    if db.query(Task).filter(Task.assigned_to == agency_id).first():
        raise HTTPException(status_code=400, detail="Agency has tasks assigned")
    db.delete(a)
    db.commit()
    return {"status": "ok"}
