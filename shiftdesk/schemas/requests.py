import datetime as dt
from typing import Literal, Optional, Union

from pydantic import BaseModel, model_validator


class LeaveRequestIn(BaseModel):
    type: Literal["LEAVE"]
    start_date: dt.date
    end_date: dt.date
    reason: Optional[str] = None

    @model_validator(mode="after")
    def _check_range(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class ShiftSwapRequestIn(BaseModel):
    type: Literal["SHIFT_SWAP"]
    shift_id: int
    target_shift_id: int
    reason: Optional[str] = None


RequestIn = Union[LeaveRequestIn, ShiftSwapRequestIn]


class AssignManagerIn(BaseModel):
    manager_id: int


class ResolveRequestIn(BaseModel):
    status: Literal["APPROVED", "REJECTED"]
