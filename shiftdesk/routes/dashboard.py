from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import require_admin
from ..services.dashboard import dashboard_stats


router = APIRouter(prefix="/api/admin/dashboard", tags=["dashboard"])


@router.get("/stats")
def get_stats(db: Session = Depends(get_db), _=Depends(require_admin)):
    return dashboard_stats(db)
