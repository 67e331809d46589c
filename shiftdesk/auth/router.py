from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from ..db import get_db
from ..models.models import User
from ..schemas.auth import (
    RegisterRequest,
    RegisterResponse,
    LoginRequest,
    MeResponse,
)
from .security import (
    get_password_hash,
    verify_password,
    get_current_user,
    get_optional_user,
    set_session_cookie,
    clear_session_cookie,
)


router = APIRouter(prefix="/api", tags=["auth"])


def _me(user: User) -> MeResponse:
    return MeResponse(
        id=user.id,
        username=user.username,
        full_name=user.full_name,
        is_admin=bool(user.is_admin),
        is_manager=bool(user.is_manager),
        is_inspector=bool(user.is_inspector),
        last_login_at=user.last_login_at.isoformat() if user.last_login_at else None,
    )


@router.post("/register", response_model=RegisterResponse)
def register(
    req: RegisterRequest,
    response: Response,
    db: Session = Depends(get_db),
    caller: Optional[User] = Depends(get_optional_user),
):
    username = str(req.username).lower()
    if db.query(User).filter(User.username == username).first():
        raise HTTPException(status_code=400, detail="Username already exists")
    user = User(
        username=username,
        full_name=req.full_name.strip(),
        password_hash=get_password_hash(req.password),
        is_admin=False,
        is_manager=False,
        is_inspector=False,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    structlog.get_logger("shiftdesk.auth").info("user_registered", user_id=user.id, by_admin=bool(caller and caller.is_admin))
    # An admin registering someone keeps their own session
    if not (caller and caller.is_admin):
        set_session_cookie(response, user)
    return RegisterResponse(message="Registration successful", user={"id": user.id, "username": user.username})


@router.post("/login", response_model=MeResponse)
def login(req: LoginRequest, response: Response, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.username == req.username.strip().lower()).first()
    if not user or not verify_password(req.password, user.password_hash):
        structlog.get_logger("shiftdesk.auth").info("login_failed", username=req.username)
        raise HTTPException(status_code=400, detail="Invalid username or password")
    user.last_login_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)
    set_session_cookie(response, user)
    return _me(user)


@router.post("/logout")
def logout(response: Response):
    clear_session_cookie(response)
    return {"message": "Logged out"}


@router.get("/user", response_model=MeResponse)
def me(user: User = Depends(get_current_user)):
    return _me(user)
