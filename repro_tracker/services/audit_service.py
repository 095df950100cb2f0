from typing import Any, Optional

from sqlalchemy.orm import Session

from repro_tracker.models.audit_log import AuditLog


def create_audit_log(
    db: Session,
    *,
    file_id: int,
    action_type: str,
    by_user_id: int,
    from_department_id: Optional[int] = None,
    to_department_id: Optional[int] = None,
    payload: Optional[dict[str, Any]] = None,
) -> AuditLog:
    """Adds the row to the caller's transaction; never commits."""
    row = AuditLog(
        file_id=int(file_id),
        action_type=action_type,
        by_user_id=int(by_user_id),
        from_department_id=from_department_id,
        to_department_id=to_department_id,
        payload=payload or {},
    )
    db.add(row)
    db.flush()
    return row


def list_file_audit_logs(db: Session, file_id: int) -> list[AuditLog]:
    return (
        db.query(AuditLog)
        .filter(AuditLog.file_id == int(file_id))
        .order_by(AuditLog.created_at.asc(), AuditLog.id.asc())
        .all()
    )
