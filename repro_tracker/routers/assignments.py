from typing import List

from fastapi import APIRouter, Depends

from repro_tracker.core.authorization import Permission
from repro_tracker.database import SessionLocal
from repro_tracker.deps.auth import CurrentUser, require_auth, require_permission
from repro_tracker.schemas.common import ApiResponse, ok
from repro_tracker.schemas.file import (
    AssignFileRequest,
    BulkAssignRequest,
    BulkAssignResponse,
    FileResponse,
)
from repro_tracker.services import file_service

router = APIRouter(prefix="/assignments", tags=["Assignments"])


@router.post("/single", response_model=ApiResponse[FileResponse])
def assign_single(
    payload: AssignFileRequest,
    user: CurrentUser = Depends(require_permission(Permission.FILE_ASSIGN)),
):
    db = SessionLocal()
    try:
        file = file_service.assign_file(
            payload.file_id,
            payload.assignee_id,
            user.user_id,
            note=payload.note,
            db=db,
        )
        db.commit()
        return ok(FileResponse.model_validate(file))
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@router.post("/bulk", response_model=ApiResponse[BulkAssignResponse])
def assign_bulk(
    payload: BulkAssignRequest,
    user: CurrentUser = Depends(require_permission(Permission.FILE_ASSIGN)),
):
    report = file_service.assign_files_bulk(
        payload.file_ids,
        payload.assignee_id,
        user.user_id,
        note=payload.note,
    )
    return ok(report)


@router.get("/pool", response_model=ApiResponse[List[FileResponse]])
def unassigned_pool(
    _user: CurrentUser = Depends(require_permission(Permission.FILE_ASSIGN)),
):
    db = SessionLocal()
    try:
        rows = file_service.list_unassigned_files(db=db)
        return ok([FileResponse.model_validate(r) for r in rows])
    finally:
        db.close()


@router.get("/my-pool", response_model=ApiResponse[List[FileResponse]])
def my_pool(user: CurrentUser = Depends(require_auth)):
    db = SessionLocal()
    try:
        rows = file_service.list_pool_files(user.user_id, db=db)
        return ok([FileResponse.model_validate(r) for r in rows])
    finally:
        db.close()
