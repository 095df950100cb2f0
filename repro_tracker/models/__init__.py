from repro_tracker.models.audit_log import AuditLog
from repro_tracker.models.department import Department
from repro_tracker.models.file import File, FileStatus, Priority, Stage
from repro_tracker.models.time_entry import TimeEntry
from repro_tracker.models.user import User
from repro_tracker.models.work_session import WorkSession

__all__ = [
    "AuditLog",
    "Department",
    "File",
    "FileStatus",
    "Priority",
    "Stage",
    "TimeEntry",
    "User",
    "WorkSession",
]
