from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TimeStartRequest(BaseModel):
    file_id: int
    note: Optional[str] = Field(default=None, max_length=2000)


class TimeStopRequest(BaseModel):
    file_id: Optional[int] = None


class TimeEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: int
    file_id: int
    department_id: int
    started_at: datetime
    ended_at: Optional[datetime]
    duration_seconds: Optional[int]
    note: Optional[str]
    is_active: bool = False
