from typing import List

from fastapi import APIRouter, Depends

from repro_tracker.core.authorization import Permission
from repro_tracker.database import SessionLocal
from repro_tracker.deps.auth import CurrentUser, require_permission
from repro_tracker.schemas.common import ApiResponse, ok
from repro_tracker.schemas.file import AuditLogResponse, FileResponse
from repro_tracker.services import file_service

router = APIRouter(tags=["Files"])

_view_all = require_permission(Permission.FILE_VIEW_ALL)


@router.get("/queues/pre-repro", response_model=ApiResponse[List[FileResponse]])
def pre_repro_queue(_user: CurrentUser = Depends(_view_all)):
    db = SessionLocal()
    try:
        rows = file_service.get_pre_repro_queue(db=db)
        return ok([FileResponse.model_validate(r) for r in rows])
    finally:
        db.close()


@router.get("/files/{file_id}", response_model=ApiResponse[FileResponse])
def get_file(file_id: int, _user: CurrentUser = Depends(_view_all)):
    db = SessionLocal()
    try:
        return ok(FileResponse.model_validate(file_service.get_file(file_id, db=db)))
    finally:
        db.close()


@router.get("/files/{file_id}/timeline", response_model=ApiResponse[List[AuditLogResponse]])
def file_timeline(file_id: int, _user: CurrentUser = Depends(_view_all)):
    db = SessionLocal()
    try:
        rows = file_service.get_file_timeline(file_id, db=db)
        return ok([AuditLogResponse.model_validate(r) for r in rows])
    finally:
        db.close()


def _mutate(operation, file_id: int, user_id: int):
    db = SessionLocal()
    try:
        file = operation(file_id, user_id, db=db)
        db.commit()
        return ok(FileResponse.model_validate(file))
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@router.post("/files/{file_id}/pre-repro/claim", response_model=ApiResponse[FileResponse])
def claim_pre_repro(file_id: int, user: CurrentUser = Depends(_view_all)):
    return _mutate(file_service.claim_pre_repro, file_id, user.user_id)


@router.post("/files/{file_id}/pre-repro/complete", response_model=ApiResponse[FileResponse])
def complete_pre_repro(file_id: int, user: CurrentUser = Depends(_view_all)):
    return _mutate(file_service.complete_pre_repro, file_id, user.user_id)


@router.post("/files/{file_id}/pre-repro/return-to-queue", response_model=ApiResponse[FileResponse])
def return_pre_repro_to_queue(file_id: int, user: CurrentUser = Depends(_view_all)):
    return _mutate(file_service.return_pre_repro_to_queue, file_id, user.user_id)
