from pydantic import BaseModel, EmailStr, Field
from typing import Optional


class RegisterRequest(BaseModel):
    username: EmailStr
    password: str = Field(min_length=6)
    full_name: str = Field(min_length=1)


class LoginRequest(BaseModel):
    username: str
    password: str


class UserSummary(BaseModel):
    id: int
    username: str


class RegisterResponse(BaseModel):
    message: str
    user: UserSummary


class MeResponse(BaseModel):
    id: int
    username: str
    full_name: str
    is_admin: bool
    is_manager: bool
    is_inspector: bool
    last_login_at: Optional[str] = None
