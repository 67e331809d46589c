from datetime import datetime, timezone

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy import case
from sqlalchemy.orm import Session

from ..db import get_db
from ..models.models import Request, User, WeeklyShiftAssignment
from ..auth.security import get_current_user, require_admin
from ..schemas.requests import (
    AssignManagerIn,
    LeaveRequestIn,
    RequestIn,
    ResolveRequestIn,
)
from ..services.permissions import can_review_request, is_admin, is_manager
from ..logging import structlog


router = APIRouter(prefix="/api", tags=["requests"])


def _user_brief(u: User):
    if not u:
        return None
    return {"id": u.id, "username": u.username, "full_name": u.full_name}


def _serialize_request(r: Request) -> dict:
    return {
        "id": r.id,
        "type": r.type,
        "requester_id": r.requester_id,
        "requester": _user_brief(r.requester),
        "shift_id": r.shift_id,
        "target_shift_id": r.target_shift_id,
        "start_date": r.start_date.isoformat() if r.start_date else None,
        "end_date": r.end_date.isoformat() if r.end_date else None,
        "reason": r.reason,
        "status": r.status,
        "manager_id": r.manager_id,
        "manager": _user_brief(r.manager),
        "reviewer_id": r.reviewer_id,
        "reviewer": _user_brief(r.reviewer),
        "reviewed_at": r.reviewed_at.isoformat() if r.reviewed_at else None,
        "created_at": r.created_at.isoformat() if r.created_at else None,
    }


@router.post("/requests")
def create_request(
    payload: RequestIn = Body(..., discriminator="type"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if isinstance(payload, LeaveRequestIn):
        r = Request(
            requester_id=user.id,
            type="LEAVE",
            start_date=payload.start_date,
            end_date=payload.end_date,
            reason=payload.reason,
            status="PENDING",
        )
    else:
        for sid in (payload.shift_id, payload.target_shift_id):
            if not db.query(WeeklyShiftAssignment).filter(WeeklyShiftAssignment.id == sid).first():
                raise HTTPException(status_code=400, detail=f"Shift {sid} not found")
        r = Request(
            requester_id=user.id,
            type="SHIFT_SWAP",
            shift_id=payload.shift_id,
            target_shift_id=payload.target_shift_id,
            reason=payload.reason,
            status="PENDING",
        )
    db.add(r)
    db.commit()
    db.refresh(r)
    structlog.get_logger("shiftdesk.requests").info("request_created", request_id=r.id, type=r.type, requester_id=user.id)
    return _serialize_request(r)


@router.get("/requests")
def list_requests(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    q = db.query(Request)
    if is_admin(user):
        pass
    elif is_manager(user):
        q = q.filter(Request.manager_id == user.id)
    else:
        q = q.filter(Request.requester_id == user.id)
    pending_first = case((Request.status == "PENDING", 0), else_=1)
    rows = q.order_by(pending_first, Request.created_at.desc(), Request.id.desc()).all()
    return [_serialize_request(r) for r in rows]


@router.post("/admin/requests/{request_id}/assign")
def assign_manager(request_id: int, payload: AssignManagerIn, db: Session = Depends(get_db), _=Depends(require_admin)):
    r = db.query(Request).filter(Request.id == request_id).first()
    if not r:
        raise HTTPException(status_code=404, detail="Request not found")
    manager = db.query(User).filter(User.id == payload.manager_id).first()
    if not manager or not manager.is_manager:
        raise HTTPException(status_code=400, detail="Assignee must be a manager")
    r.manager_id = manager.id
    db.commit()
    db.refresh(r)
    return _serialize_request(r)


@router.put("/admin/requests/{request_id}")
def resolve_request(
    request_id: int,
    payload: ResolveRequestIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    r = db.query(Request).filter(Request.id == request_id).first()
    if not r:
        raise HTTPException(status_code=404, detail="Request not found")
    if not can_review_request(user, r):
        raise HTTPException(status_code=403, detail="Not allowed to review this request")
    r.status = payload.status
    r.reviewer_id = user.id
    r.reviewed_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(r)
    structlog.get_logger("shiftdesk.requests").info("request_resolved", request_id=r.id, status=r.status, reviewer_id=user.id)
    return _serialize_request(r)
