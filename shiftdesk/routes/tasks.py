from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..db import get_db
from ..models.models import Agency, ShiftType, Task, TaskType, User
from ..auth.security import get_current_user, require_admin
from ..schemas.catalog import TaskIn, TaskUpdate


router = APIRouter(prefix="/api/admin/tasks", tags=["tasks"])


def _task_to_dict(t: Task) -> dict:
    return {
        "id": t.id,
        "inspector_id": t.inspector_id,
        "inspector": {"id": t.inspector.id, "full_name": t.inspector.full_name} if t.inspector else None,
        "shift_type_id": t.shift_type_id,
        "shift_type": {"id": t.shift_type.id, "name": t.shift_type.name} if t.shift_type else None,
        "task_type_id": t.task_type_id,
        "task_type": {"id": t.task_type.id, "name": t.task_type.name} if t.task_type else None,
        "status": t.status,
        "date": t.date.isoformat() if t.date else None,
        "is_followup_needed": bool(t.is_followup_needed),
        "assigned_to": t.assigned_to,
        "agency": {"id": t.agency.id, "name": t.agency.name} if t.agency else None,
        "created_by": t.created_by,
        "created_at": t.created_at.isoformat() if t.created_at else None,
    }


def _check_refs(db: Session, agency_id: Optional[int], task_type_id: Optional[int]) -> None:
    if agency_id is not None and not db.query(Agency).filter(Agency.id == agency_id).first():
        raise HTTPException(status_code=400, detail="Agency not found")
    if task_type_id is not None and not db.query(TaskType).filter(TaskType.id == task_type_id).first():
        raise HTTPException(status_code=400, detail="Task type not found")


@router.get("/stats")
def task_stats(db: Session = Depends(get_db), _=Depends(get_current_user)):
    """Task counts per shift type, by status."""
    counts = {}
    rows = (
        db.query(Task.shift_type_id, Task.status, func.count(Task.id))
        .filter(Task.shift_type_id.isnot(None))
        .group_by(Task.shift_type_id, Task.status)
        .all()
    )
    for shift_type_id, status, n in rows:
        counts.setdefault(shift_type_id, {})[status] = n
    out = []
    for st in db.query(ShiftType).order_by(ShiftType.name.asc()).all():
        c = counts.get(st.id, {})
        out.append({
            "shift_type_id": st.id,
            "shift_type_name": st.name,
            "total": sum(c.values()),
            "pending": c.get("PENDING", 0),
            "in_progress": c.get("IN_PROGRESS", 0),
            "completed": c.get("COMPLETED", 0),
        })
    return out


@router.get("")
def list_tasks(
    status: Optional[str] = None,
    inspector_id: Optional[int] = None,
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    q = db.query(Task)
    if status:
        q = q.filter(Task.status == status)
    if inspector_id is not None:
        q = q.filter(Task.inspector_id == inspector_id)
    rows = q.order_by(Task.date.desc(), Task.id.desc()).all()
    return [_task_to_dict(t) for t in rows]


@router.get("/{task_id}")
def get_task(task_id: int, db: Session = Depends(get_db), _=Depends(require_admin)):
    t = db.query(Task).filter(Task.id == task_id).first()
    if not t:
        raise HTTPException(status_code=404, detail="Task not found")
    return _task_to_dict(t)


@router.post("")
def create_task(payload: TaskIn, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    _check_refs(db, payload.assigned_to, payload.task_type_id)
    t = Task(
        inspector_id=payload.inspector_id,
        shift_type_id=payload.shift_type_id,
        task_type_id=payload.task_type_id,
        status=payload.status,
        date=payload.date,
        is_followup_needed=payload.is_followup_needed,
        assigned_to=payload.assigned_to,
        created_by=admin.id,
    )
    db.add(t)
    db.commit()
    db.refresh(t)
    return _task_to_dict(t)


@router.put("/{task_id}")
def update_task(task_id: int, payload: TaskUpdate, db: Session = Depends(get_db), _=Depends(require_admin)):
    t = db.query(Task).filter(Task.id == task_id).first()
    if not t:
        raise HTTPException(status_code=404, detail="Task not found")
    _check_refs(db, payload.assigned_to, payload.task_type_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is None and field in ("task_type_id", "status", "date", "is_followup_needed", "assigned_to"):
            continue
        setattr(t, field, value)
    db.commit()
    db.refresh(t)
    return _task_to_dict(t)


@router.delete("/{task_id}")
def delete_task(task_id: int, db: Session = Depends(get_db), _=Depends(require_admin)):
    t = db.query(Task).filter(Task.id == task_id).first()
    if not t:
        raise HTTPException(status_code=404, detail="Task not found")
    db.delete(t)
    db.commit()
    return {"status": "ok"}
