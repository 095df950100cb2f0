from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String

from repro_tracker.database import Base


class Stage(Enum):
    PRE_REPRO = "PRE_REPRO"
    REPRO = "REPRO"


class FileStatus(Enum):
    AWAITING_ASSIGNMENT = "AWAITING_ASSIGNMENT"
    ASSIGNED = "ASSIGNED"
    IN_REPRO = "IN_REPRO"
    APPROVAL_PREP = "APPROVAL_PREP"
    CUSTOMER_APPROVAL = "CUSTOMER_APPROVAL"
    REVISION_REQUIRED = "REVISION_REQUIRED"
    IN_QUALITY = "IN_QUALITY"
    IN_KOLAJ = "IN_KOLAJ"
    SENT_TO_PRODUCTION = "SENT_TO_PRODUCTION"


class Priority(Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"


PRIORITY_RANK = {
    Priority.LOW.value: 0,
    Priority.NORMAL.value: 1,
    Priority.HIGH.value: 2,
    Priority.URGENT.value: 3,
}


class File(Base):
    __tablename__ = "files"

    id = Column(Integer, primary_key=True, index=True)
    file_no = Column(String, nullable=False, unique=True)
    customer_name = Column(String, nullable=False)

    stage = Column(String, nullable=False, index=True, default=Stage.PRE_REPRO.value)
    status = Column(String, nullable=False, index=True, default=FileStatus.AWAITING_ASSIGNMENT.value)
    priority = Column(String, nullable=False, default=Priority.NORMAL.value)

    file_type = Column(String, nullable=True, index=True)
    # hours on this file count this many times in weighted reports
    difficulty_weight = Column(Float, nullable=False, default=1.0)

    assigned_designer_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    target_assignee_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    current_department_id = Column(Integer, ForeignKey("departments.id"), nullable=False, index=True)

    pending_takeover = Column(Boolean, nullable=False, default=False)
    requires_approval = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
