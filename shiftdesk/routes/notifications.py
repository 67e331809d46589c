from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import Optional

from ..db import get_db
from ..models.models import User
from ..auth.security import get_current_user
from ..services.notifications import (
    mark_read,
    serialize_notification,
    unread_count,
    visible_notifications,
)

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("")
def list_notifications(
    unread_only: Optional[bool] = False,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """
    Notifications for the current user, newest first.
    Shift notifications are dropped once the user is no longer on that shift.
    """
    return [serialize_notification(n) for n in visible_notifications(db, user.id, unread_only=bool(unread_only))]


@router.get("/unread-count")
def get_unread_count(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return {"count": unread_count(db, user.id)}


@router.post("/{notification_id}/read")
def read_notification(notification_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    n = mark_read(db, user.id, notification_id)
    if not n:
        raise HTTPException(status_code=404, detail="Notification not found")
    return serialize_notification(n)
