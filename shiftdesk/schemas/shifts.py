from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


ISO_WEEK_PATTERN = r"^\d{4}-W(0[1-9]|[1-4]\d|5[0-3])$"

AssignmentStatus = Literal["PENDING", "ACCEPTED", "REJECTED"]


class GroupInspectorIn(BaseModel):
    inspector_id: int
    is_primary: bool = False


class DailyShiftIn(BaseModel):
    day_of_week: int = Field(ge=0, le=6)  # 0=Sun .. 6=Sat
    shift_type_id: int


class InspectorGroupIn(BaseModel):
    id: Optional[int] = None  # set on update to replace an existing group
    role_id: int
    inspectors: List[GroupInspectorIn] = Field(default_factory=list)
    days: List[DailyShiftIn] = Field(default_factory=list)


class WeeklyAssignmentCreate(BaseModel):
    building_id: int
    week: str = Field(pattern=ISO_WEEK_PATTERN)
    inspector_groups: List[InspectorGroupIn] = Field(default_factory=list)


class WeeklyAssignmentUpdate(BaseModel):
    building_id: Optional[int] = None
    week: Optional[str] = Field(default=None, pattern=ISO_WEEK_PATTERN)
    status: Optional[AssignmentStatus] = None
    rejection_reason: Optional[str] = None
    inspector_groups: Optional[List[InspectorGroupIn]] = None

    @model_validator(mode="after")
    def _unique_group_ids(self):
        ids = [g.id for g in (self.inspector_groups or []) if g.id is not None]
        if len(ids) != len(set(ids)):
            raise ValueError("Each inspector group id may appear only once")
        return self


class AddInspectorIn(BaseModel):
    inspector_id: int
    is_primary: bool = False


class SetDayIn(BaseModel):
    shift_type_id: Optional[int] = None  # None clears the day


class ShiftResponseIn(BaseModel):
    action: Literal["ACCEPT", "REJECT"]
    rejection_reason: Optional[str] = None

    @field_validator("rejection_reason")
    @classmethod
    def _strip(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None
