"""
In-app notifications.

Shift-scoped notifications carry the weekly assignment id in their metadata
(``{"shift_id": ...}``) and are only shown while the recipient is still bound
to one of that assignment's inspector groups.
"""
from typing import Dict, List, Optional, Set

from sqlalchemy.orm import Session

from ..models.models import Notification, GroupInspector, InspectorGroup


SHIFT_ASSIGNED = "SHIFT_ASSIGNED"


def create_notification(
    db: Session,
    user_id: int,
    message: str,
    title: Optional[str] = None,
    type: Optional[str] = None,
    metadata: Optional[Dict] = None,
) -> Notification:
    """
    Stage a notification on the session.

    The caller owns the transaction, so the notification is committed together
    with whatever change triggered it.
    """
    notification = Notification(
        user_id=user_id,
        title=title,
        message=message,
        type=type,
        metadata_json=metadata,
        is_read=False,
    )
    db.add(notification)
    return notification


def notify_shift_assigned(db: Session, user_id: int, shift_id: int, group_id: int, week: str, role_name: Optional[str]) -> Notification:
    message = f"You have been assigned to a new shift for week {week}"
    if role_name:
        message += f" as {role_name}"
    return create_notification(
        db,
        user_id,
        message=message,
        title="New Shift Assignment",
        type=SHIFT_ASSIGNED,
        metadata={"shift_id": shift_id, "group_id": group_id, "week": week},
    )


def _shift_id_of(notification: Notification) -> Optional[int]:
    meta = notification.metadata_json or {}
    if not isinstance(meta, dict):
        return None
    raw = meta.get("shift_id")
    if raw is None:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def _bound_shift_ids(db: Session, user_id: int, shift_ids: Set[int]) -> Set[int]:
    if not shift_ids:
        return set()
    rows = (
        db.query(InspectorGroup.weekly_shift_assignment_id)
        .join(GroupInspector, GroupInspector.weekly_inspector_group_id == InspectorGroup.id)
        .filter(
            GroupInspector.inspector_id == user_id,
            InspectorGroup.weekly_shift_assignment_id.in_(list(shift_ids)),
        )
        .distinct()
        .all()
    )
    return {r[0] for r in rows}


def visible_notifications(db: Session, user_id: int, unread_only: bool = False) -> List[Notification]:
    """Newest-first notifications for the user, hiding those for shifts they are no longer on."""
    q = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        q = q.filter(Notification.is_read.is_(False))
    rows = q.order_by(Notification.created_at.desc(), Notification.id.desc()).all()

    wanted = {sid for sid in (_shift_id_of(n) for n in rows) if sid is not None}
    bound = _bound_shift_ids(db, user_id, wanted)

    result = []
    for n in rows:
        sid = _shift_id_of(n)
        if sid is None or sid in bound:
            result.append(n)
    return result


def unread_count(db: Session, user_id: int) -> int:
    return len(visible_notifications(db, user_id, unread_only=True))


def mark_read(db: Session, user_id: int, notification_id: int) -> Optional[Notification]:
    n = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == user_id)
        .first()
    )
    if not n:
        return None
    sid = _shift_id_of(n)
    if sid is not None and sid not in _bound_shift_ids(db, user_id, {sid}):
        return None
    n.is_read = True
    db.commit()
    db.refresh(n)
    return n


def serialize_notification(n: Notification) -> dict:
    return {
        "id": n.id,
        "user_id": n.user_id,
        "title": n.title,
        "message": n.message,
        "type": n.type,
        "metadata": n.metadata_json,
        "is_read": bool(n.is_read),
        "created_at": n.created_at.isoformat() if n.created_at else None,
    }
