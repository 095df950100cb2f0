from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from fastapi import APIRouter, Body, Depends, Query

from repro_tracker.core.authorization import Permission
from repro_tracker.core.periods import resolve_window
from repro_tracker.database import SessionLocal
from repro_tracker.deps.auth import CurrentUser, require_auth, require_permission
from repro_tracker.models.time_entry import TimeEntry
from repro_tracker.schemas.common import ApiResponse, ok
from repro_tracker.schemas.time_entry import TimeEntryResponse, TimeStartRequest, TimeStopRequest
from repro_tracker.services import time_entry_service

router = APIRouter(
    prefix="/time",
    tags=["Time Entries"],
)


def _to_response(entry: TimeEntry) -> TimeEntryResponse:
    return TimeEntryResponse(
        id=entry.id,
        user_id=entry.user_id,
        file_id=entry.file_id,
        department_id=entry.department_id,
        started_at=entry.started_at,
        ended_at=entry.ended_at,
        duration_seconds=(
            entry.duration_seconds
            if entry.ended_at is not None
            else time_entry_service.elapsed_seconds(entry)
        ),
        note=entry.note,
        is_active=entry.ended_at is None,
    )


@router.post("/start", response_model=ApiResponse[TimeEntryResponse])
def start_time_entry(
    payload: TimeStartRequest,
    user: CurrentUser = Depends(require_permission(Permission.FILE_TAKEOVER)),
):
    db = SessionLocal()
    try:
        entry = time_entry_service.start(
            user_id=user.user_id,
            file_id=payload.file_id,
            note=payload.note,
            db=db,
        )
        db.commit()
        return ok(_to_response(entry))
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@router.post("/stop", response_model=ApiResponse[Optional[TimeEntryResponse]])
def stop_time_entry(
    payload: Optional[TimeStopRequest] = Body(default=None),
    user: CurrentUser = Depends(require_auth),
):
    file_id = payload.file_id if payload is not None else None

    db = SessionLocal()
    try:
        entry = time_entry_service.stop(user_id=user.user_id, file_id=file_id, db=db)
        db.commit()
        return ok(None if entry is None else _to_response(entry))
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@router.get("/my-active", response_model=ApiResponse[Optional[TimeEntryResponse]])
def get_my_active_time_entry(user: CurrentUser = Depends(require_auth)):
    db = SessionLocal()
    try:
        entry = time_entry_service.get_active(user.user_id, db=db)
        return ok(None if entry is None else _to_response(entry))
    finally:
        db.close()


@router.get("/my-summary", response_model=ApiResponse[dict[str, Any]])
def get_my_time_summary(
    user: CurrentUser = Depends(require_auth),
    period: Optional[Literal["today", "week", "month"]] = None,
    from_: Optional[datetime] = Query(default=None, alias="from"),
    to: Optional[datetime] = None,
    include_open: bool = False,
):
    window_from, window_to = resolve_window(period, from_, to)

    db = SessionLocal()
    try:
        summary = time_entry_service.get_summary(
            user.user_id,
            window_from,
            window_to,
            include_open=include_open,
            db=db,
        )
        return ok(summary)
    finally:
        db.close()
