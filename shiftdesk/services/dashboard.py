from datetime import datetime
from typing import Optional

import pytz
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..config import settings
from ..models.models import (
    Building,
    GroupInspector,
    InspectorGroup,
    Task,
    User,
    WeeklyShiftAssignment,
)


def current_iso_week(now: Optional[datetime] = None, tz_name: Optional[str] = None) -> str:
    """ISO week label (e.g. 2024-W12) for "now" in the configured time zone."""
    tz = pytz.timezone(tz_name or settings.tz_default)
    local = (now or datetime.now(pytz.utc)).astimezone(tz)
    year, week, _ = local.isocalendar()
    return f"{year}-W{week:02d}"


def _percent(part: int, whole: int) -> float:
    if not whole:
        return 0
    return round(part * 100.0 / whole, 1)


def dashboard_stats(db: Session, week: Optional[str] = None) -> dict:
    week = week or current_iso_week()

    total_employees = (
        db.query(func.count(User.id))
        .filter(User.is_admin.is_(False), User.is_manager.is_(False))
        .scalar()
    ) or 0

    total_tasks = db.query(func.count(Task.id)).scalar() or 0
    completed_tasks = db.query(func.count(Task.id)).filter(Task.status == "COMPLETED").scalar() or 0
    active_tasks = db.query(func.count(Task.id)).filter(Task.status != "COMPLETED").scalar() or 0

    total_buildings = db.query(func.count(Building.id)).scalar() or 0

    group_ids = [
        r[0]
        for r in db.query(InspectorGroup.id)
        .join(WeeklyShiftAssignment, WeeklyShiftAssignment.id == InspectorGroup.weekly_shift_assignment_id)
        .filter(WeeklyShiftAssignment.week == week)
        .all()
    ]
    covered = set()
    if group_ids:
        covered = {
            r[0]
            for r in db.query(GroupInspector.weekly_inspector_group_id)
            .filter(
                GroupInspector.weekly_inspector_group_id.in_(group_ids),
                GroupInspector.status == "ACCEPTED",
            )
            .distinct()
            .all()
        }

    return {
        "week": week,
        "total_employees": total_employees,
        "active_tasks": active_tasks,
        "task_completion": _percent(completed_tasks, total_tasks),
        "total_buildings": total_buildings,
        "shift_coverage": _percent(len(covered), len(group_ids)),
        "open_shifts": len(group_ids) - len(covered),
    }
