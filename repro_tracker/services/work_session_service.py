"""
Work sessions: the "currently working on file X" pointer per user.

Per-user state machine:

    IDLE --start_work(f)--> ACTIVE(f) --change_file(g)--> ACTIVE(g)
    ACTIVE --stop_work--> IDLE

start_work never switches files (ConflictError when active elsewhere);
change_file is the only switch path and needs an active session. Each
transition moves the session row and the time-entry ledger together in one
transaction, so the active session's file always matches the open entry.
"""
import logging
from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

from sqlalchemy.orm import Session

from repro_tracker.core.errors import ConflictError, NotFoundError
from repro_tracker.core.periods import resolve_window, to_naive_utc, utc_now
from repro_tracker.models.department import Department
from repro_tracker.models.file import File
from repro_tracker.models.user import User
from repro_tracker.models.work_session import WorkSession
from repro_tracker.services import reporting_service
from repro_tracker.services import time_entry_service as ledger
from repro_tracker.services.transaction import unit_of_work

logger = logging.getLogger(__name__)

ACTIVE_SESSION_CONFLICT = "User already has an active work session"
ALL_TIME = (datetime(1970, 1, 1), datetime(9999, 12, 31))


def _duration_minutes(started_at: datetime, ended_at: Optional[datetime], now: datetime) -> int:
    end = ended_at or now
    return max(0, int((end - started_at).total_seconds() // 60))


def _open(db: Session, user_id: int, file: File, now: datetime) -> WorkSession:
    if ledger.get_open_entry(db, user_id) is not None:
        raise ConflictError(ledger.ACTIVE_ENTRY_CONFLICT)

    ledger.open_entry(db, user_id, file, started_at=now)

    row = WorkSession(
        id=str(uuid4()),
        user_id=int(user_id),
        file_id=file.id,
        department_id=file.current_department_id,
        started_at=now,
        ended_at=None,
    )
    db.add(row)
    db.flush()
    db.refresh(row)
    return row


def _close(db: Session, row: WorkSession, now: datetime) -> WorkSession:
    entry = ledger.get_open_entry(db, row.user_id)
    if entry is not None:
        ledger.close_entry(db, entry, now)

    return ledger.end_session_row(db, row, now)


def start_work(
    user_id: int,
    file_id: int,
    *,
    now: Optional[datetime] = None,
    db: Optional[Session] = None,
) -> WorkSession:
    now = to_naive_utc(now) or utc_now()

    with unit_of_work(db, conflict_message=ACTIVE_SESSION_CONFLICT) as session:
        ledger.lock_user(session, user_id)

        active = ledger.get_active_session_row(session, user_id)
        if active is not None:
            if active.file_id == int(file_id):
                return active
            raise ConflictError(
                "User is already working on another file; use change-file to switch"
            )

        file = ledger.get_trackable_file(session, file_id)
        row = _open(session, user_id, file, now)

        logger.info(
            "work session started",
            extra={"user_id": row.user_id, "file_id": row.file_id, "work_session_id": row.id},
        )
        return row


def change_file(
    user_id: int,
    new_file_id: int,
    *,
    now: Optional[datetime] = None,
    db: Optional[Session] = None,
) -> WorkSession:
    now = to_naive_utc(now) or utc_now()

    with unit_of_work(db, conflict_message=ACTIVE_SESSION_CONFLICT) as session:
        ledger.lock_user(session, user_id)

        active = ledger.get_active_session_row(session, user_id)
        if active is None:
            raise NotFoundError("No active work session to switch from")
        if active.file_id == int(new_file_id):
            return active

        file = ledger.get_trackable_file(session, new_file_id)
        previous_file_id = active.file_id
        _close(session, active, now)
        row = _open(session, user_id, file, now)

        logger.info(
            "work session switched file",
            extra={
                "user_id": row.user_id,
                "from_file_id": previous_file_id,
                "file_id": row.file_id,
                "work_session_id": row.id,
            },
        )
        return row


def stop_work(
    user_id: int,
    *,
    now: Optional[datetime] = None,
    db: Optional[Session] = None,
) -> Optional[WorkSession]:
    """Ends the active session. Nothing active: returns None, changes nothing."""
    now = to_naive_utc(now) or utc_now()

    with unit_of_work(db) as session:
        ledger.lock_user(session, user_id)

        active = ledger.get_active_session_row(session, user_id)
        if active is None:
            return None

        row = _close(session, active, now)

        logger.info(
            "work session stopped",
            extra={
                "user_id": row.user_id,
                "file_id": row.file_id,
                "work_session_id": row.id,
                "duration_minutes": row.duration_minutes,
            },
        )
        return row


def _session_payload(
    row: WorkSession,
    now: datetime,
    user: Optional[User] = None,
    file: Optional[File] = None,
) -> dict[str, Any]:
    payload = {
        "id": row.id,
        "user_id": row.user_id,
        "file_id": row.file_id,
        "department_id": row.department_id,
        "started_at": row.started_at.isoformat(),
        "ended_at": None if row.ended_at is None else row.ended_at.isoformat(),
        "is_active": row.ended_at is None,
        "duration_minutes": (
            row.duration_minutes
            if row.duration_minutes is not None
            else _duration_minutes(row.started_at, row.ended_at, now)
        ),
    }
    if user is not None:
        payload["user"] = {"id": user.id, "full_name": user.full_name, "username": user.username}
    if file is not None:
        payload["file"] = {"id": file.id, "file_no": file.file_no, "customer_name": file.customer_name}
    return payload


def session_payload(row: WorkSession, *, now: Optional[datetime] = None) -> dict[str, Any]:
    return _session_payload(row, to_naive_utc(now) or utc_now())


def get_active_session(
    user_id: int,
    *,
    now: Optional[datetime] = None,
    db: Optional[Session] = None,
) -> Optional[dict[str, Any]]:
    now = to_naive_utc(now) or utc_now()

    with unit_of_work(db) as session:
        row = ledger.get_active_session_row(session, user_id)
        if row is None:
            return None
        file = session.query(File).filter(File.id == row.file_id).first()
        return _session_payload(row, now, file=file)


def get_all_active_sessions(
    *,
    now: Optional[datetime] = None,
    db: Optional[Session] = None,
) -> list[dict[str, Any]]:
    now = to_naive_utc(now) or utc_now()

    with unit_of_work(db) as session:
        rows = (
            session.query(WorkSession, User, File)
            .join(User, User.id == WorkSession.user_id)
            .join(File, File.id == WorkSession.file_id)
            .filter(WorkSession.ended_at.is_(None))
            .order_by(WorkSession.started_at.desc())
            .all()
        )
        return [_session_payload(row, now, user=user, file=file) for row, user, file in rows]


def get_worker_time_summary(
    user_id: int,
    *,
    period: Optional[str] = None,
    window_from: Optional[datetime] = None,
    window_to: Optional[datetime] = None,
    include_open: bool = False,
    now: Optional[datetime] = None,
    db: Optional[Session] = None,
) -> dict[str, Any]:
    start, end = resolve_window(period, window_from, window_to, now=now)

    with unit_of_work(db) as session:
        user = session.query(User).filter(User.id == int(user_id)).first()
        if user is None:
            raise NotFoundError("User not found")

        result = reporting_service.time_totals(
            db=session,
            window_from=start,
            window_to=end,
            user_id=user.id,
            include_open=include_open,
            now=now,
        )
        result["user"] = {"id": user.id, "full_name": user.full_name, "username": user.username}
        return result


def get_department_total_time(
    department_id: int,
    *,
    period: Optional[str] = None,
    window_from: Optional[datetime] = None,
    window_to: Optional[datetime] = None,
    include_open: bool = False,
    now: Optional[datetime] = None,
    db: Optional[Session] = None,
) -> dict[str, Any]:
    start, end = resolve_window(period, window_from, window_to, now=now)

    with unit_of_work(db) as session:
        department = session.query(Department).filter(Department.id == int(department_id)).first()
        if department is None:
            raise NotFoundError("Department not found")

        result = reporting_service.time_totals(
            db=session,
            window_from=start,
            window_to=end,
            department_id=department.id,
            include_open=include_open,
            now=now,
        )
        # entries are stamped with the file's department, which can differ from
        # the workers' department selected here
        result.pop("by_department", None)
        result["department"] = {"id": department.id, "name": department.name, "code": department.code}
        return result


def get_file_worker_breakdown(
    file_id: int,
    *,
    window_from: Optional[datetime] = None,
    window_to: Optional[datetime] = None,
    include_open: bool = True,
    now: Optional[datetime] = None,
    db: Optional[Session] = None,
) -> dict[str, Any]:
    """Who worked on the file and for how long; all time unless a window is given."""
    now = to_naive_utc(now) or utc_now()

    with unit_of_work(db) as session:
        file = session.query(File).filter(File.id == int(file_id)).first()
        if file is None:
            raise NotFoundError("File not found")

        if window_from is None and window_to is None:
            start, end = ALL_TIME
        else:
            start, end = resolve_window(None, window_from, window_to, now=now)

        result = reporting_service.time_totals(
            db=session,
            window_from=start,
            window_to=end,
            file_id=file.id,
            include_open=include_open,
            now=now,
        )
        result["file"] = {"id": file.id, "file_no": file.file_no, "customer_name": file.customer_name}
        return result
