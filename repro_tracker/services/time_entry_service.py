import logging
from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

from sqlalchemy.orm import Session

from repro_tracker.core.errors import ConflictError, NotFoundError
from repro_tracker.core.periods import to_naive_utc, utc_now
from repro_tracker.models.file import File, FileStatus
from repro_tracker.models.time_entry import TimeEntry
from repro_tracker.models.user import User
from repro_tracker.models.work_session import WorkSession
from repro_tracker.services import reporting_service
from repro_tracker.services.transaction import unit_of_work

logger = logging.getLogger(__name__)

ACTIVE_ENTRY_CONFLICT = "User already has an active time entry; stop it first"
ACTIVE_SESSION_TIMER_CONFLICT = "User has an active work session; use the work-session endpoints"


def lock_user(db: Session, user_id: int) -> User:
    """
    Row-locks the user for the rest of the transaction so that per-user
    check-then-insert sequences are serialized (no-op on SQLite).
    """
    user = db.query(User).filter(User.id == int(user_id)).with_for_update().first()
    if user is None:
        raise NotFoundError("User not found")
    return user


def get_trackable_file(db: Session, file_id: int) -> File:
    file = db.query(File).filter(File.id == int(file_id)).first()
    if file is None:
        raise NotFoundError("File not found")
    if file.status == FileStatus.SENT_TO_PRODUCTION.value:
        raise ConflictError("File has been sent to production")
    return file


def get_open_entry(
    db: Session,
    user_id: int,
    file_id: Optional[int] = None,
) -> Optional[TimeEntry]:
    q = db.query(TimeEntry).filter(
        TimeEntry.user_id == int(user_id),
        TimeEntry.ended_at.is_(None),
    )
    if file_id is not None:
        q = q.filter(TimeEntry.file_id == int(file_id))
    return q.first()


def get_active_session_row(db: Session, user_id: int) -> Optional[WorkSession]:
    return (
        db.query(WorkSession)
        .filter(
            WorkSession.user_id == int(user_id),
            WorkSession.ended_at.is_(None),
        )
        .first()
    )


def end_session_row(db: Session, row: WorkSession, ended_at: datetime) -> WorkSession:
    """Marks the session ended; the row stays as history."""
    if ended_at < row.started_at:
        ended_at = row.started_at

    row.ended_at = ended_at
    row.duration_minutes = int((ended_at - row.started_at).total_seconds() // 60)
    db.flush()
    db.refresh(row)
    return row


def open_entry(
    db: Session,
    user_id: int,
    file: File,
    started_at: datetime,
    note: Optional[str] = None,
) -> TimeEntry:
    """Caller holds the user lock and has checked there is no open entry."""
    entry = TimeEntry(
        id=str(uuid4()),
        user_id=int(user_id),
        file_id=file.id,
        department_id=file.current_department_id,
        started_at=started_at,
        ended_at=None,
        note=note,
    )
    db.add(entry)
    db.flush()
    db.refresh(entry)

    logger.info(
        "time entry opened",
        extra={"user_id": entry.user_id, "file_id": entry.file_id, "time_entry_id": entry.id},
    )
    return entry


def close_entry(db: Session, entry: TimeEntry, ended_at: datetime) -> TimeEntry:
    if ended_at < entry.started_at:
        ended_at = entry.started_at

    entry.ended_at = ended_at
    entry.duration_seconds = int((ended_at - entry.started_at).total_seconds())
    db.flush()
    db.refresh(entry)

    logger.info(
        "time entry closed",
        extra={
            "user_id": entry.user_id,
            "file_id": entry.file_id,
            "time_entry_id": entry.id,
            "duration_seconds": entry.duration_seconds,
        },
    )
    return entry


def start(
    user_id: int,
    file_id: int,
    note: Optional[str] = None,
    *,
    started_at: Optional[datetime] = None,
    db: Optional[Session] = None,
) -> TimeEntry:
    """
    Opens a time entry. A user can have at most one open entry; a second
    start fails with ConflictError and leaves the existing entry untouched.
    While a work session is active its file owns the timer, so a plain
    start is refused as well.
    """
    with unit_of_work(db, conflict_message=ACTIVE_ENTRY_CONFLICT) as session:
        lock_user(session, user_id)

        if get_open_entry(session, user_id) is not None:
            raise ConflictError(ACTIVE_ENTRY_CONFLICT)
        if get_active_session_row(session, user_id) is not None:
            raise ConflictError(ACTIVE_SESSION_TIMER_CONFLICT)

        file = get_trackable_file(session, file_id)
        return open_entry(
            session,
            user_id,
            file,
            started_at=to_naive_utc(started_at) or utc_now(),
            note=note,
        )


def stop(
    user_id: int,
    file_id: Optional[int] = None,
    *,
    ended_at: Optional[datetime] = None,
    db: Optional[Session] = None,
) -> Optional[TimeEntry]:
    """
    Closes the user's open entry (only if it is on file_id, when given).
    An active work session ends together with the entry. Nothing open is
    not an error: returns None and changes nothing.
    """
    with unit_of_work(db) as session:
        lock_user(session, user_id)

        entry = get_open_entry(session, user_id, file_id=file_id)
        if entry is None:
            return None

        ended_at = to_naive_utc(ended_at) or utc_now()
        closed = close_entry(session, entry, ended_at)

        active = get_active_session_row(session, user_id)
        if active is not None:
            end_session_row(session, active, ended_at)
            logger.info(
                "work session ended with its time entry",
                extra={"user_id": active.user_id, "work_session_id": active.id},
            )
        return closed


def elapsed_seconds(entry: TimeEntry, now: Optional[datetime] = None) -> int:
    end = entry.ended_at or to_naive_utc(now) or utc_now()
    return max(0, int((end - entry.started_at).total_seconds()))


def get_active(
    user_id: int,
    *,
    db: Optional[Session] = None,
) -> Optional[TimeEntry]:
    with unit_of_work(db) as session:
        return get_open_entry(session, user_id)


def get_summary(
    user_id: int,
    window_from: datetime,
    window_to: datetime,
    *,
    include_open: bool = False,
    now: Optional[datetime] = None,
    db: Optional[Session] = None,
) -> dict[str, Any]:
    """
    Time the user logged inside [window_from, window_to). Entries straddling
    either edge are clipped to the window.
    """
    with unit_of_work(db) as session:
        result = reporting_service.time_totals(
            db=session,
            window_from=window_from,
            window_to=window_to,
            user_id=user_id,
            include_open=include_open,
            include_entries=True,
            now=now,
        )
        result["user_id"] = int(user_id)
        return result
