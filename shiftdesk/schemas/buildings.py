from pydantic import BaseModel, Field
from typing import List, Optional


class CoordinatorIn(BaseModel):
    coordinator_id: int
    shift_type_id: Optional[int] = None


class BuildingIn(BaseModel):
    name: str = Field(min_length=1)
    code: str = Field(min_length=1)
    area: str = ""
    supervisor_id: int
    coordinators: List[CoordinatorIn] = Field(default_factory=list)
