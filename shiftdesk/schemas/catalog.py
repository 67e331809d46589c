import datetime as dt
from typing import Literal, Optional

from pydantic import BaseModel, Field


HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"

TaskStatus = Literal["PENDING", "IN_PROGRESS", "COMPLETED"]


class ShiftTypeIn(BaseModel):
    name: str = Field(min_length=1)
    start_time: str = Field(pattern=HHMM_PATTERN)
    end_time: str = Field(pattern=HHMM_PATTERN)
    description: Optional[str] = None


class ShiftTypeUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    start_time: Optional[str] = Field(default=None, pattern=HHMM_PATTERN)
    end_time: Optional[str] = Field(default=None, pattern=HHMM_PATTERN)
    description: Optional[str] = None


class NamedItemIn(BaseModel):
    """Roles, task types and agencies share this shape."""
    name: str = Field(min_length=1)
    description: Optional[str] = None


class NamedItemUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None


class TaskIn(BaseModel):
    inspector_id: Optional[int] = None
    shift_type_id: Optional[int] = None
    task_type_id: int
    status: TaskStatus = "PENDING"
    date: dt.date
    is_followup_needed: bool = False
    assigned_to: int


class TaskUpdate(BaseModel):
    inspector_id: Optional[int] = None
    shift_type_id: Optional[int] = None
    task_type_id: Optional[int] = None
    status: Optional[TaskStatus] = None
    date: Optional[dt.date] = None
    is_followup_needed: Optional[bool] = None
    assigned_to: Optional[int] = None
