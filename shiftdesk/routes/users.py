from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..db import get_db
from ..models.models import User, GroupInspector
from ..auth.security import get_current_user, require_admin, get_password_hash
from ..schemas.users import UserCreate, UserUpdate
from ..logging import structlog


router = APIRouter(prefix="/api", tags=["users"])


def _user_to_dict(u: User) -> dict:
    return {
        "id": u.id,
        "username": u.username,
        "full_name": u.full_name,
        "is_admin": bool(u.is_admin),
        "is_manager": bool(u.is_manager),
        "is_inspector": bool(u.is_inspector),
        "created_at": u.created_at.isoformat() if u.created_at else None,
        "last_login_at": u.last_login_at.isoformat() if u.last_login_at else None,
    }


@router.get("/users")
def list_users_brief(db: Session = Depends(get_db), _=Depends(get_current_user)):
    rows = db.query(User).order_by(User.full_name.asc()).all()
    return [{"id": u.id, "username": u.username, "full_name": u.full_name} for u in rows]


@router.get("/admin/users")
def list_users(db: Session = Depends(get_db), _=Depends(require_admin)):
    rows = db.query(User).order_by(User.created_at.desc(), User.id.desc()).all()
    return [_user_to_dict(u) for u in rows]


def _list_by_flags(db: Session, **flags) -> list:
    q = db.query(User)
    for name, value in flags.items():
        q = q.filter(getattr(User, name).is_(value))
    return [_user_to_dict(u) for u in q.order_by(User.full_name.asc()).all()]


@router.get("/admin/users/admins")
def list_admins(db: Session = Depends(get_db), _=Depends(require_admin)):
    return _list_by_flags(db, is_admin=True)


@router.get("/admin/users/managers")
def list_managers(db: Session = Depends(get_db), _=Depends(require_admin)):
    return _list_by_flags(db, is_manager=True)


@router.get("/admin/users/inspectors")
def list_inspectors(db: Session = Depends(get_db), _=Depends(require_admin)):
    return _list_by_flags(db, is_inspector=True)


@router.get("/admin/users/employees")
def list_employees(db: Session = Depends(get_db), _=Depends(require_admin)):
    return _list_by_flags(db, is_admin=False, is_manager=False, is_inspector=False)


@router.post("/admin/users")
def create_user(payload: UserCreate, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    username = str(payload.username).lower()
    if db.query(User).filter(User.username == username).first():
        raise HTTPException(status_code=400, detail="Username already exists")
    u = User(
        username=username,
        full_name=payload.full_name.strip(),
        password_hash=get_password_hash(payload.password),
        is_admin=payload.is_admin,
        is_manager=payload.is_manager,
        is_inspector=payload.is_inspector,
    )
    db.add(u)
    db.commit()
    db.refresh(u)
    structlog.get_logger("shiftdesk.users").info("user_created", user_id=u.id, by=admin.id)
    return _user_to_dict(u)


@router.put("/admin/users/{user_id}")
def update_user(user_id: int, payload: UserUpdate, db: Session = Depends(get_db), _=Depends(require_admin)):
    u = db.query(User).filter(User.id == user_id).first()
    if not u:
        raise HTTPException(status_code=404, detail="User not found")
    if payload.username is not None:
        username = str(payload.username).lower()
        taken = db.query(User).filter(User.username == username, User.id != user_id).first()
        if taken:
            raise HTTPException(status_code=400, detail="Username already exists")
        u.username = username
    if payload.full_name is not None:
        u.full_name = payload.full_name.strip()
    if payload.password:
        u.password_hash = get_password_hash(payload.password)
    for flag in ("is_admin", "is_manager", "is_inspector"):
        value = getattr(payload, flag)
        if value is not None:
            setattr(u, flag, value)
    db.commit()
    db.refresh(u)
    return _user_to_dict(u)


@router.delete("/admin/users/{user_id}")
def delete_user(user_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    u = db.query(User).filter(User.id == user_id).first()
    if not u:
        raise HTTPException(status_code=404, detail="User not found")
    if u.id == admin.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    if db.query(GroupInspector).filter(GroupInspector.inspector_id == user_id).first():
        raise HTTPException(status_code=400, detail="User is assigned to shifts; remove those assignments first")
    db.delete(u)
    db.commit()
    structlog.get_logger("shiftdesk.users").info("user_deleted", user_id=user_id, by=admin.id)
    return {"status": "ok"}
