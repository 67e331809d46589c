from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..db import get_db
from ..models.models import Building, BuildingCoordinator, User, WeeklyShiftAssignment
from ..auth.security import get_current_user, require_admin
from ..schemas.buildings import BuildingIn
from ..services.permissions import can_see_building
from ..services.weekly_assignments import serialize_assignment
from ..logging import structlog


router = APIRouter(prefix="/api", tags=["buildings"])


def _user_brief(u: User):
    if not u:
        return None
    return {"id": u.id, "username": u.username, "full_name": u.full_name}


def _serialize_building(b: Building) -> dict:
    return {
        "id": b.id,
        "name": b.name,
        "code": b.code,
        "area": b.area,
        "supervisor_id": b.supervisor_id,
        "supervisor": _user_brief(b.supervisor),
        "coordinators": [
            {
                "id": c.id,
                "coordinator_id": c.coordinator_id,
                "coordinator": _user_brief(c.coordinator),
                "shift_type_id": c.shift_type_id,
                "shift_type": {"id": c.shift_type.id, "name": c.shift_type.name} if c.shift_type else None,
            }
            for c in b.coordinators
        ],
        "created_at": b.created_at.isoformat() if b.created_at else None,
        "updated_at": b.updated_at.isoformat() if b.updated_at else None,
    }


def _validate_building(db: Session, payload: BuildingIn, building_id: int = None) -> None:
    supervisor = db.query(User).filter(User.id == payload.supervisor_id).first()
    if not supervisor or not supervisor.is_admin:
        raise HTTPException(status_code=400, detail="Supervisor must be an admin user")
    q = db.query(Building).filter(Building.code == payload.code)
    if building_id is not None:
        q = q.filter(Building.id != building_id)
    if q.first():
        raise HTTPException(status_code=400, detail="Building code already exists")


@router.get("/admin/buildings")
def list_buildings(db: Session = Depends(get_db), _=Depends(get_current_user)):
    rows = db.query(Building).order_by(Building.name.asc()).all()
    return [_serialize_building(b) for b in rows]


@router.post("/admin/buildings")
def create_building(payload: BuildingIn, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    _validate_building(db, payload)
    b = Building(
        name=payload.name.strip(),
        code=payload.code.strip(),
        area=payload.area,
        supervisor_id=payload.supervisor_id,
    )
    b.coordinators = [
        BuildingCoordinator(coordinator_id=c.coordinator_id, shift_type_id=c.shift_type_id)
        for c in payload.coordinators
    ]
    db.add(b)
    db.commit()
    db.refresh(b)
    structlog.get_logger("shiftdesk.buildings").info("building_created", building_id=b.id, by=admin.id)
    return _serialize_building(b)


@router.put("/admin/buildings/{building_id}")
def update_building(building_id: int, payload: BuildingIn, db: Session = Depends(get_db), _=Depends(require_admin)):
    b = db.query(Building).filter(Building.id == building_id).first()
    if not b:
        raise HTTPException(status_code=404, detail="Building not found")
    _validate_building(db, payload, building_id)
    b.name = payload.name.strip()
    b.code = payload.code.strip()
    b.area = payload.area
    b.supervisor_id = payload.supervisor_id
    # Coordinator list is replaced wholesale
    b.coordinators = [
        BuildingCoordinator(coordinator_id=c.coordinator_id, shift_type_id=c.shift_type_id)
        for c in payload.coordinators
    ]
    b.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(b)
    return _serialize_building(b)


@router.delete("/admin/buildings/{building_id}")
def delete_building(building_id: int, db: Session = Depends(get_db), _=Depends(require_admin)):
    b = db.query(Building).filter(Building.id == building_id).first()
    if not b:
        raise HTTPException(status_code=404, detail="Building not found")
    in_use = db.query(WeeklyShiftAssignment).filter(WeeklyShiftAssignment.building_id == building_id).first()
    if in_use:
        raise HTTPException(status_code=400, detail="Building has shift assignments and cannot be deleted")
    db.delete(b)
    db.commit()
    return {"status": "ok"}


@router.get("/buildings/with-shifts")
def buildings_with_shifts(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    buildings = [b for b in db.query(Building).order_by(Building.name.asc()).all() if can_see_building(user, b)]
    ids = [b.id for b in buildings]
    by_building = {}
    if ids:
        rows = (
            db.query(WeeklyShiftAssignment)
            .filter(WeeklyShiftAssignment.building_id.in_(ids))
            .order_by(WeeklyShiftAssignment.week.desc(), WeeklyShiftAssignment.id.desc())
            .all()
        )
        for a in rows:
            by_building.setdefault(a.building_id, []).append(serialize_assignment(a))
    out = []
    for b in buildings:
        data = _serialize_building(b)
        data["shifts"] = by_building.get(b.id, [])
        out.append(data)
    return {"buildings": out}
