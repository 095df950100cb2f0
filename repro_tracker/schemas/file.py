from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class AssignFileRequest(BaseModel):
    file_id: int
    assignee_id: int
    note: Optional[str] = Field(default=None, max_length=2000)


class BulkAssignRequest(BaseModel):
    file_ids: List[int] = Field(min_length=1, max_length=100)
    assignee_id: int
    note: Optional[str] = Field(default=None, max_length=1000)


class BulkAssignResult(BaseModel):
    file_id: int
    success: bool
    error: Optional[str] = None


class BulkAssignResponse(BaseModel):
    total: int
    success_count: int
    fail_count: int
    results: List[BulkAssignResult]
    skipped_ids: List[int]


class FileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    file_no: str
    customer_name: str
    stage: str
    status: str
    priority: str
    file_type: Optional[str]
    difficulty_weight: float
    assigned_designer_id: Optional[int]
    target_assignee_id: Optional[int]
    current_department_id: int
    pending_takeover: bool
    requires_approval: bool
    created_at: datetime
    updated_at: datetime


class AuditLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    file_id: int
    action_type: str
    by_user_id: int
    from_department_id: Optional[int]
    to_department_id: Optional[int]
    payload: Optional[dict[str, Any]]
    created_at: datetime
