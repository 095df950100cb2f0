from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from repro_tracker.core.authorization import Permission, has_permission
from repro_tracker.database import SessionLocal
from repro_tracker.deps.auth import CurrentUser, require_auth, require_permission
from repro_tracker.schemas.common import ApiResponse, ok
from repro_tracker.schemas.work_session import ChangeFileRequest, StartWorkRequest
from repro_tracker.services import work_session_service

router = APIRouter(
    prefix="/work-sessions",
    tags=["Work Sessions"],
)

Period = Literal["today", "week", "month"]


@router.post("/start", response_model=ApiResponse[dict[str, Any]])
def start_work(
    payload: StartWorkRequest,
    user: CurrentUser = Depends(require_permission(Permission.FILE_TAKEOVER)),
):
    db = SessionLocal()
    try:
        row = work_session_service.start_work(user.user_id, payload.file_id, db=db)
        db.commit()
        return ok(work_session_service.session_payload(row))
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@router.post("/change-file", response_model=ApiResponse[dict[str, Any]])
def change_file(
    payload: ChangeFileRequest,
    user: CurrentUser = Depends(require_permission(Permission.FILE_TAKEOVER)),
):
    db = SessionLocal()
    try:
        row = work_session_service.change_file(user.user_id, payload.file_id, db=db)
        db.commit()
        return ok(work_session_service.session_payload(row))
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@router.post("/stop", response_model=ApiResponse[Optional[dict[str, Any]]])
def stop_work(user: CurrentUser = Depends(require_auth)):
    db = SessionLocal()
    try:
        row = work_session_service.stop_work(user.user_id, db=db)
        db.commit()
        return ok(None if row is None else work_session_service.session_payload(row))
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@router.get("/active", response_model=ApiResponse[Optional[dict[str, Any]]])
def get_active_session(user: CurrentUser = Depends(require_auth)):
    db = SessionLocal()
    try:
        return ok(work_session_service.get_active_session(user.user_id, db=db))
    finally:
        db.close()


@router.get("/active-all", response_model=ApiResponse[list[dict[str, Any]]])
def get_all_active_sessions(
    _user: CurrentUser = Depends(require_permission(Permission.REPORT_VIEW)),
):
    db = SessionLocal()
    try:
        return ok(work_session_service.get_all_active_sessions(db=db))
    finally:
        db.close()


@router.get("/reports/worker", response_model=ApiResponse[dict[str, Any]])
def worker_report(
    user: CurrentUser = Depends(require_auth),
    user_id: Optional[int] = None,
    period: Optional[Period] = None,
    from_: Optional[datetime] = Query(default=None, alias="from"),
    to: Optional[datetime] = None,
    include_open: bool = False,
):
    target_user_id = user.user_id if user_id is None else int(user_id)
    if target_user_id != user.user_id and not has_permission(user.role, Permission.REPORT_VIEW):
        raise HTTPException(status_code=403, detail="Insufficient permission")

    db = SessionLocal()
    try:
        summary = work_session_service.get_worker_time_summary(
            target_user_id,
            period=period,
            window_from=from_,
            window_to=to,
            include_open=include_open,
            db=db,
        )
        return ok(summary)
    finally:
        db.close()


@router.get("/reports/department", response_model=ApiResponse[dict[str, Any]])
def department_report(
    user: CurrentUser = Depends(require_permission(Permission.REPORT_VIEW)),
    department_id: Optional[int] = None,
    period: Optional[Period] = None,
    from_: Optional[datetime] = Query(default=None, alias="from"),
    to: Optional[datetime] = None,
    include_open: bool = False,
):
    target_department_id = department_id if department_id is not None else user.department_id
    if target_department_id is None:
        raise HTTPException(status_code=422, detail="department_id is required")

    db = SessionLocal()
    try:
        summary = work_session_service.get_department_total_time(
            target_department_id,
            period=period,
            window_from=from_,
            window_to=to,
            include_open=include_open,
            db=db,
        )
        return ok(summary)
    finally:
        db.close()


@router.get("/reports/file/{file_id}", response_model=ApiResponse[dict[str, Any]])
def file_report(
    file_id: int,
    _user: CurrentUser = Depends(require_permission(Permission.REPORT_VIEW)),
    from_: Optional[datetime] = Query(default=None, alias="from"),
    to: Optional[datetime] = None,
    include_open: bool = True,
):
    db = SessionLocal()
    try:
        breakdown = work_session_service.get_file_worker_breakdown(
            file_id,
            window_from=from_,
            window_to=to,
            include_open=include_open,
            db=db,
        )
        return ok(breakdown)
    finally:
        db.close()
