"""
Weekly shift assignments.

An assignment covers one building for one ISO week. It owns inspector groups,
each with a job role, a set of bound inspectors (one usually primary, the
rest backups) and a day-of-week -> shift type mapping. Every inspector binding
carries that inspector's own response (PENDING, ACCEPTED or REJECTED).

Writes that touch more than one row run in a single transaction: either the
whole change (including the notifications it produces) is committed or the
session is rolled back and the error propagates.
"""
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

import structlog
from fastapi import HTTPException
from sqlalchemy.orm import Session

from ..models.models import (
    DailyShiftType,
    GroupInspector,
    InspectorGroup,
    Request,
    Role,
    ShiftType,
    User,
    WeeklyShiftAssignment,
)
from ..schemas.shifts import (
    InspectorGroupIn,
    WeeklyAssignmentCreate,
    WeeklyAssignmentUpdate,
)
from .mailer import send_shift_assignment_email
from .notifications import notify_shift_assigned


DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

PENDING = "PENDING"
ACCEPTED = "ACCEPTED"
REJECTED = "REJECTED"

# (inspector_id, group_id) pairs that still need an assignment email
EmailJobs = List[Tuple[int, int]]

log = structlog.get_logger("shiftdesk.shifts")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None


# ---------- serialization ----------

def _serialize_user(u: Optional[User]) -> Optional[dict]:
    if not u:
        return None
    return {"id": u.id, "username": u.username, "full_name": u.full_name}


def _serialize_shift_type(st: Optional[ShiftType]) -> Optional[dict]:
    if not st:
        return None
    return {"id": st.id, "name": st.name, "start_time": st.start_time, "end_time": st.end_time}


def _serialize_group(g: InspectorGroup) -> dict:
    return {
        "id": g.id,
        "role_id": g.role_id,
        "role": {"id": g.role.id, "name": g.role.name} if g.role else None,
        "inspectors": [
            {
                "id": gi.id,
                "inspector_id": gi.inspector_id,
                "inspector": _serialize_user(gi.inspector),
                "is_primary": bool(gi.is_primary),
                "status": gi.status,
                "rejection_reason": gi.rejection_reason,
                "response_at": _iso(gi.response_at),
            }
            for gi in g.inspectors
        ],
        "days": [
            {
                "day_of_week": d.day_of_week,
                "shift_type_id": d.shift_type_id,
                "shift_type": _serialize_shift_type(d.shift_type),
            }
            for d in g.daily_shifts
        ],
    }


def serialize_assignment(a: WeeklyShiftAssignment, viewer_id: Optional[int] = None) -> dict:
    data = {
        "id": a.id,
        "building_id": a.building_id,
        "building": {"id": a.building.id, "name": a.building.name, "code": a.building.code} if a.building else None,
        "week": a.week,
        "status": a.status,
        "rejection_reason": a.rejection_reason,
        "created_by": a.created_by,
        "created_at": _iso(a.created_at),
        "updated_at": _iso(a.updated_at),
        "inspector_groups": [_serialize_group(g) for g in a.inspector_groups],
    }
    if viewer_id is not None:
        mine = [gi for g in a.inspector_groups for gi in g.inspectors if gi.inspector_id == viewer_id]
        data["my_status"] = mine[0].status if mine else None
    return data


# ---------- helpers ----------

def _get_assignment_or_404(db: Session, assignment_id: int) -> WeeklyShiftAssignment:
    a = db.query(WeeklyShiftAssignment).filter(WeeklyShiftAssignment.id == assignment_id).first()
    if not a:
        raise HTTPException(status_code=404, detail="Shift not found")
    return a


def _get_group_or_404(db: Session, group_id: int) -> InspectorGroup:
    g = db.query(InspectorGroup).filter(InspectorGroup.id == group_id).first()
    if not g:
        raise HTTPException(status_code=404, detail="Inspector group not found")
    return g


def _role_name(db: Session, role_id: int) -> Optional[str]:
    role = db.query(Role).filter(Role.id == role_id).first()
    return role.name if role else None


def _bind_inspectors_and_days(
    db: Session,
    assignment: WeeklyShiftAssignment,
    group: InspectorGroup,
    group_in: InspectorGroupIn,
    notify_ids: set,
    email_jobs: EmailJobs,
) -> None:
    role_name = _role_name(db, group.role_id)
    for insp in group_in.inspectors:
        db.add(GroupInspector(
            weekly_inspector_group_id=group.id,
            inspector_id=insp.inspector_id,
            is_primary=insp.is_primary,
            status=PENDING,
        ))
        if insp.inspector_id in notify_ids:
            notify_shift_assigned(db, insp.inspector_id, assignment.id, group.id, assignment.week, role_name)
            email_jobs.append((insp.inspector_id, group.id))
    for day in group_in.days:
        db.add(DailyShiftType(
            weekly_inspector_group_id=group.id,
            day_of_week=day.day_of_week,
            shift_type_id=day.shift_type_id,
        ))
    db.flush()


def _add_group(db: Session, assignment: WeeklyShiftAssignment, group_in: InspectorGroupIn, email_jobs: EmailJobs) -> InspectorGroup:
    group = InspectorGroup(weekly_shift_assignment_id=assignment.id, role_id=group_in.role_id)
    db.add(group)
    db.flush()
    notify_ids = {i.inspector_id for i in group_in.inspectors}
    _bind_inspectors_and_days(db, assignment, group, group_in, notify_ids, email_jobs)
    return group


def _replace_group(db: Session, assignment: WeeklyShiftAssignment, group_in: InspectorGroupIn, email_jobs: EmailJobs) -> InspectorGroup:
    group = db.query(InspectorGroup).filter(InspectorGroup.id == group_in.id).first()
    if not group or group.weekly_shift_assignment_id != assignment.id:
        raise HTTPException(status_code=400, detail=f"Inspector group {group_in.id} does not belong to this shift")
    previous = {
        r[0]
        for r in db.query(GroupInspector.inspector_id)
        .filter(GroupInspector.weekly_inspector_group_id == group.id)
        .all()
    }
    db.query(GroupInspector).filter(GroupInspector.weekly_inspector_group_id == group.id).delete(synchronize_session=False)
    db.query(DailyShiftType).filter(DailyShiftType.weekly_inspector_group_id == group.id).delete(synchronize_session=False)
    group.role_id = group_in.role_id
    db.flush()
    notify_ids = {i.inspector_id for i in group_in.inspectors} - previous
    _bind_inspectors_and_days(db, assignment, group, group_in, notify_ids, email_jobs)
    return group


def _send_assignment_emails(db: Session, assignment_id: int, email_jobs: EmailJobs) -> None:
    """Runs after commit; a failed email never affects the stored assignment."""
    if not email_jobs:
        return
    assignment = _get_assignment_or_404(db, assignment_id)
    building_name = assignment.building.name if assignment.building else f"Building {assignment.building_id}"
    groups = {g.id: g for g in assignment.inspector_groups}
    for inspector_id, group_id in email_jobs:
        user = db.query(User).filter(User.id == inspector_id).first()
        group = groups.get(group_id)
        if not user or not group:
            continue
        days = [
            {
                "day_name": DAY_NAMES[d.day_of_week] if 0 <= d.day_of_week < 7 else str(d.day_of_week),
                "shift_type_name": d.shift_type.name if d.shift_type else "N/A",
                "start_time": d.shift_type.start_time if d.shift_type else "N/A",
                "end_time": d.shift_type.end_time if d.shift_type else "N/A",
            }
            for d in group.daily_shifts
        ]
        role_name = group.role.name if group.role else None
        sent = send_shift_assignment_email(user.username, assignment.week, building_name, role_name, days)
        if not sent:
            log.warning("shift_assignment_email_not_sent", shift_id=assignment_id, inspector_id=inspector_id)


# ---------- operations ----------

def create_weekly_assignment(db: Session, payload: WeeklyAssignmentCreate, created_by: Optional[int]) -> dict:
    email_jobs: EmailJobs = []
    try:
        assignment = WeeklyShiftAssignment(
            building_id=payload.building_id,
            week=payload.week,
            status=PENDING,
            created_by=created_by,
        )
        db.add(assignment)
        db.flush()
        for group_in in payload.inspector_groups:
            _add_group(db, assignment, group_in, email_jobs)
        db.commit()
    except Exception as e:
        db.rollback()
        log.warning("weekly_assignment_create_failed", building_id=payload.building_id, week=payload.week, error=str(e))
        raise
    log.info(
        "weekly_assignment_created",
        shift_id=assignment.id,
        building_id=payload.building_id,
        week=payload.week,
        groups=len(payload.inspector_groups),
    )
    _send_assignment_emails(db, assignment.id, email_jobs)
    return get_weekly_assignment(db, assignment.id)


def get_weekly_assignment(db: Session, assignment_id: int, viewer_id: Optional[int] = None) -> dict:
    db.expire_all()
    return serialize_assignment(_get_assignment_or_404(db, assignment_id), viewer_id)


def list_weekly_assignments(
    db: Session,
    building_id: Optional[int] = None,
    week: Optional[str] = None,
    status: Optional[str] = None,
) -> List[dict]:
    q = db.query(WeeklyShiftAssignment)
    if building_id is not None:
        q = q.filter(WeeklyShiftAssignment.building_id == building_id)
    if week:
        q = q.filter(WeeklyShiftAssignment.week == week)
    if status:
        q = q.filter(WeeklyShiftAssignment.status == status)
    rows = q.order_by(WeeklyShiftAssignment.week.desc(), WeeklyShiftAssignment.id.desc()).all()
    return [serialize_assignment(a) for a in rows]


def list_inspector_assignments(db: Session, inspector_id: int, status: Optional[str] = None) -> List[dict]:
    """Assignments the inspector is bound to; status filters on the inspector's own response."""
    q = (
        db.query(InspectorGroup.weekly_shift_assignment_id)
        .join(GroupInspector, GroupInspector.weekly_inspector_group_id == InspectorGroup.id)
        .filter(GroupInspector.inspector_id == inspector_id)
    )
    if status:
        q = q.filter(GroupInspector.status == status)
    ids = {r[0] for r in q.distinct().all()}
    if not ids:
        return []
    rows = (
        db.query(WeeklyShiftAssignment)
        .filter(WeeklyShiftAssignment.id.in_(list(ids)))
        .order_by(WeeklyShiftAssignment.week.desc(), WeeklyShiftAssignment.id.desc())
        .all()
    )
    return [serialize_assignment(a, viewer_id=inspector_id) for a in rows]


def update_weekly_assignment(db: Session, assignment_id: int, payload: WeeklyAssignmentUpdate) -> dict:
    assignment = _get_assignment_or_404(db, assignment_id)
    email_jobs: EmailJobs = []
    try:
        if payload.building_id is not None:
            assignment.building_id = payload.building_id
        if payload.week is not None:
            assignment.week = payload.week
        if payload.status is not None:
            assignment.status = payload.status
        if payload.rejection_reason is not None:
            assignment.rejection_reason = payload.rejection_reason
        for group_in in payload.inspector_groups or []:
            if group_in.id is not None:
                _replace_group(db, assignment, group_in, email_jobs)
            else:
                _add_group(db, assignment, group_in, email_jobs)
        assignment.updated_at = _now()
        db.commit()
    except Exception as e:
        db.rollback()
        log.warning("weekly_assignment_update_failed", shift_id=assignment_id, error=str(e))
        raise
    log.info("weekly_assignment_updated", shift_id=assignment_id)
    _send_assignment_emails(db, assignment_id, email_jobs)
    return get_weekly_assignment(db, assignment_id)


def delete_weekly_assignment(db: Session, assignment_id: int) -> None:
    _get_assignment_or_404(db, assignment_id)
    group_ids = db.query(InspectorGroup.id).filter(InspectorGroup.weekly_shift_assignment_id == assignment_id)
    try:
        db.query(DailyShiftType).filter(
            DailyShiftType.weekly_inspector_group_id.in_(group_ids.scalar_subquery())
        ).delete(synchronize_session=False)
        db.query(GroupInspector).filter(
            GroupInspector.weekly_inspector_group_id.in_(group_ids.scalar_subquery())
        ).delete(synchronize_session=False)
        db.query(InspectorGroup).filter(
            InspectorGroup.weekly_shift_assignment_id == assignment_id
        ).delete(synchronize_session=False)
        # Swap requests keep their row but lose the reference
        db.query(Request).filter(Request.shift_id == assignment_id).update(
            {Request.shift_id: None}, synchronize_session=False
        )
        db.query(Request).filter(Request.target_shift_id == assignment_id).update(
            {Request.target_shift_id: None}, synchronize_session=False
        )
        db.query(WeeklyShiftAssignment).filter(
            WeeklyShiftAssignment.id == assignment_id
        ).delete(synchronize_session=False)
        db.commit()
    except Exception as e:
        db.rollback()
        log.warning("weekly_assignment_delete_failed", shift_id=assignment_id, error=str(e))
        raise
    db.expire_all()
    log.info("weekly_assignment_deleted", shift_id=assignment_id)


# ---------- incremental editing ----------

def add_inspector_group(db: Session, assignment_id: int, group_in: InspectorGroupIn) -> dict:
    assignment = _get_assignment_or_404(db, assignment_id)
    email_jobs: EmailJobs = []
    try:
        group = _add_group(db, assignment, group_in, email_jobs)
        assignment.updated_at = _now()
        db.commit()
    except Exception:
        db.rollback()
        raise
    log.info("inspector_group_added", shift_id=assignment_id, group_id=group.id)
    _send_assignment_emails(db, assignment_id, email_jobs)
    db.expire_all()
    return _serialize_group(_get_group_or_404(db, group.id))


def add_inspector_to_group(db: Session, group_id: int, inspector_id: int, is_primary: bool = False) -> dict:
    group = _get_group_or_404(db, group_id)
    assignment = _get_assignment_or_404(db, group.weekly_shift_assignment_id)
    exists = (
        db.query(GroupInspector)
        .filter(GroupInspector.weekly_inspector_group_id == group_id, GroupInspector.inspector_id == inspector_id)
        .first()
    )
    if exists:
        raise HTTPException(status_code=400, detail="Inspector already in this group")
    try:
        db.add(GroupInspector(
            weekly_inspector_group_id=group_id,
            inspector_id=inspector_id,
            is_primary=is_primary,
            status=PENDING,
        ))
        notify_shift_assigned(db, inspector_id, assignment.id, group_id, assignment.week, _role_name(db, group.role_id))
        db.commit()
    except Exception:
        db.rollback()
        raise
    log.info("inspector_added_to_group", shift_id=assignment.id, group_id=group_id, inspector_id=inspector_id)
    _send_assignment_emails(db, assignment.id, [(inspector_id, group_id)])
    db.expire_all()
    return _serialize_group(_get_group_or_404(db, group_id))


def set_group_day(db: Session, group_id: int, day_of_week: int, shift_type_id: Optional[int]) -> dict:
    """Set the shift type for one day of the group; None clears the day."""
    _get_group_or_404(db, group_id)
    try:
        db.query(DailyShiftType).filter(
            DailyShiftType.weekly_inspector_group_id == group_id,
            DailyShiftType.day_of_week == day_of_week,
        ).delete(synchronize_session=False)
        if shift_type_id is not None:
            db.add(DailyShiftType(
                weekly_inspector_group_id=group_id,
                day_of_week=day_of_week,
                shift_type_id=shift_type_id,
            ))
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.expire_all()
    return _serialize_group(_get_group_or_404(db, group_id))


# ---------- inspector responses ----------

def respond(
    db: Session,
    assignment_id: int,
    inspector_id: int,
    caller: User,
    action: str,
    rejection_reason: Optional[str] = None,
) -> dict:
    """
    Record an inspector's ACCEPT or REJECT for an assignment.

    All of the inspector's bindings inside the assignment take the new status.
    Responding again overwrites the previous answer.
    """
    if caller.id != inspector_id:
        raise HTTPException(status_code=403, detail="You can only respond to your own shift assignments")
    _get_assignment_or_404(db, assignment_id)
    bindings = (
        db.query(GroupInspector)
        .join(InspectorGroup, GroupInspector.weekly_inspector_group_id == InspectorGroup.id)
        .filter(
            InspectorGroup.weekly_shift_assignment_id == assignment_id,
            GroupInspector.inspector_id == inspector_id,
        )
        .all()
    )
    if not bindings:
        raise HTTPException(status_code=404, detail="Inspector is not assigned to this shift")
    reason = (rejection_reason or "").strip()
    if action == "REJECT" and not reason:
        raise HTTPException(status_code=400, detail="Rejection reason is required")

    now = _now()
    for b in bindings:
        if action == "ACCEPT":
            b.status = ACCEPTED
            b.rejection_reason = None
        else:
            b.status = REJECTED
            b.rejection_reason = reason
        b.response_at = now
    db.commit()
    log.info("shift_response_recorded", shift_id=assignment_id, inspector_id=inspector_id, action=action)
    return get_weekly_assignment(db, assignment_id, viewer_id=inspector_id)


# ---------- availability ----------

def _accepted_counts(db: Session, shift_type_id: int, week: Optional[str] = None) -> Dict[int, int]:
    """Inspector id -> number of distinct assignments where they accepted a group bound to the shift type."""
    q = (
        db.query(GroupInspector.inspector_id, InspectorGroup.weekly_shift_assignment_id)
        .join(InspectorGroup, GroupInspector.weekly_inspector_group_id == InspectorGroup.id)
        .join(DailyShiftType, DailyShiftType.weekly_inspector_group_id == InspectorGroup.id)
        .join(WeeklyShiftAssignment, WeeklyShiftAssignment.id == InspectorGroup.weekly_shift_assignment_id)
        .filter(
            DailyShiftType.shift_type_id == shift_type_id,
            GroupInspector.status == ACCEPTED,
        )
    )
    if week:
        q = q.filter(WeeklyShiftAssignment.week == week)
    counts: Dict[int, int] = {}
    for inspector_id, _assignment_id in q.distinct().all():
        counts[inspector_id] = counts.get(inspector_id, 0) + 1
    return counts


def inspector_availability(db: Session, shift_type_id: int, week: str) -> List[dict]:
    counts = _accepted_counts(db, shift_type_id, week)
    inspectors = db.query(User).filter(User.is_inspector.is_(True)).order_by(User.full_name.asc()).all()
    out = []
    for u in inspectors:
        n = counts.get(u.id, 0)
        out.append({
            **_serialize_user(u),
            "is_available": n == 0,
            "reason": f"Already assigned to {n} shift(s) in week {week}" if n else None,
        })
    return out


def inspectors_for_shift_type(db: Session, shift_type_id: int) -> List[dict]:
    counts = _accepted_counts(db, shift_type_id)
    if not counts:
        return []
    users = db.query(User).filter(User.id.in_(list(counts))).order_by(User.full_name.asc()).all()
    return [_serialize_user(u) for u in users]

