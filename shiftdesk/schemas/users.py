from pydantic import BaseModel, EmailStr, Field
from typing import Optional


class UserCreate(BaseModel):
    username: EmailStr
    password: str = Field(min_length=6)
    full_name: str = Field(min_length=1)
    is_admin: bool = False
    is_manager: bool = False
    is_inspector: bool = False


class UserUpdate(BaseModel):
    username: Optional[EmailStr] = None
    full_name: Optional[str] = None
    password: Optional[str] = Field(default=None, min_length=6)
    is_admin: Optional[bool] = None
    is_manager: Optional[bool] = None
    is_inspector: Optional[bool] = None
