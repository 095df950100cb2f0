import logging
from typing import Any, Optional

from sqlalchemy import case
from sqlalchemy.orm import Session

from repro_tracker.core.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from repro_tracker.models.audit_log import AuditLog
from repro_tracker.models.department import Department
from repro_tracker.models.file import File, FileStatus, PRIORITY_RANK, Stage
from repro_tracker.models.user import User
from repro_tracker.services.audit_service import create_audit_log, list_file_audit_logs
from repro_tracker.services.transaction import unit_of_work

logger = logging.getLogger(__name__)

REPRO_DEPARTMENT_CODE = "REPRO"


def _priority_order():
    return case(PRIORITY_RANK, value=File.priority, else_=0)


def _get_file(db: Session, file_id: int) -> Optional[File]:
    return db.query(File).filter(File.id == int(file_id)).first()


def get_file(file_id: int, *, db: Optional[Session] = None) -> File:
    with unit_of_work(db) as session:
        file = _get_file(session, file_id)
        if file is None:
            raise NotFoundError("File not found")
        return file


def assign_file(
    file_id: int,
    assignee_id: int,
    acting_user_id: int,
    note: Optional[str] = None,
    *,
    db: Optional[Session] = None,
) -> File:
    """
    Sets the file's assigned designer. The caller has already checked that
    acting_user_id holds file:assign.
    """
    with unit_of_work(db) as session:
        file = (
            session.query(File)
            .filter(File.id == int(file_id))
            .with_for_update()
            .first()
        )
        if file is None:
            raise ValidationError("File does not exist")

        assignee = session.query(User).filter(User.id == int(assignee_id)).first()
        if assignee is None:
            raise ValidationError("Assignee does not exist")

        if file.status == FileStatus.SENT_TO_PRODUCTION.value:
            raise ValidationError("File has been sent to production")

        previous_assignee_id = file.assigned_designer_id
        file.assigned_designer_id = assignee.id
        session.flush()

        create_audit_log(
            session,
            file_id=file.id,
            action_type="ASSIGN",
            by_user_id=acting_user_id,
            to_department_id=file.current_department_id,
            payload={
                "previous_assignee_id": previous_assignee_id,
                "assignee_id": assignee.id,
                "assignee_name": assignee.full_name,
                "note": note,
            },
        )
        session.refresh(file)

        logger.info(
            "file assigned",
            extra={"file_id": file.id, "assignee_id": assignee.id, "by_user_id": acting_user_id},
        )
        return file


def assign_files_bulk(
    file_ids: list[int],
    assignee_id: int,
    acting_user_id: int,
    note: Optional[str] = None,
) -> dict[str, Any]:
    """
    Assigns each file on its own transaction. A failing file is reported in
    the result and skipped; the rest still go through.
    """
    results = []
    skipped_ids = []

    for file_id in file_ids:
        try:
            assign_file(file_id, assignee_id, acting_user_id, note=note)
        except ServiceError as exc:
            results.append({"file_id": file_id, "success": False, "error": exc.message})
            skipped_ids.append(file_id)
            continue
        results.append({"file_id": file_id, "success": True, "error": None})

    success_count = len(file_ids) - len(skipped_ids)
    logger.info(
        "bulk assignment finished",
        extra={
            "assignee_id": assignee_id,
            "by_user_id": acting_user_id,
            "success_count": success_count,
            "fail_count": len(skipped_ids),
        },
    )
    return {
        "total": len(file_ids),
        "success_count": success_count,
        "fail_count": len(skipped_ids),
        "results": results,
        "skipped_ids": skipped_ids,
    }


def list_unassigned_files(*, db: Optional[Session] = None) -> list[File]:
    """
    Intake pool for assigners: files awaiting assignment that nobody has
    been picked for yet, newest first.
    """
    with unit_of_work(db) as session:
        return (
            session.query(File)
            .filter(
                File.status == FileStatus.AWAITING_ASSIGNMENT.value,
                File.assigned_designer_id.is_(None),
                File.target_assignee_id.is_(None),
            )
            .order_by(File.created_at.desc(), File.id.desc())
            .all()
        )


def list_pool_files(user_id: int, *, db: Optional[Session] = None) -> list[File]:
    """
    Files already handed over to the user at REPRO stage. Files still in the
    PRE_REPRO intake never show up here, even when assigned to the user.
    """
    with unit_of_work(db) as session:
        return (
            session.query(File)
            .filter(
                File.stage == Stage.REPRO.value,
                File.assigned_designer_id == int(user_id),
                File.status != FileStatus.SENT_TO_PRODUCTION.value,
            )
            .order_by(_priority_order().desc(), File.updated_at.desc(), File.id.desc())
            .all()
        )


def get_pre_repro_queue(*, db: Optional[Session] = None) -> list[File]:
    with unit_of_work(db) as session:
        return (
            session.query(File)
            .filter(File.stage == Stage.PRE_REPRO.value)
            .order_by(File.created_at.asc(), File.id.asc())
            .all()
        )


def _require_pre_repro(db: Session, file_id: int) -> File:
    file = _get_file(db, file_id)
    if file is None:
        raise NotFoundError("File not found")
    if file.stage != Stage.PRE_REPRO.value:
        raise ConflictError("File is not in the pre-repro stage")
    return file


def claim_pre_repro(file_id: int, user_id: int, *, db: Optional[Session] = None) -> File:
    """Takes an unclaimed pre-repro file. Two concurrent claims: one wins, the other conflicts."""
    with unit_of_work(db) as session:
        _require_pre_repro(session, file_id)

        claimed = (
            session.query(File)
            .filter(
                File.id == int(file_id),
                File.stage == Stage.PRE_REPRO.value,
                File.assigned_designer_id.is_(None),
            )
            .update({File.assigned_designer_id: int(user_id)}, synchronize_session=False)
        )
        if claimed == 0:
            raise ConflictError("File has already been claimed by someone else")

        create_audit_log(
            session,
            file_id=file_id,
            action_type="PRE_REPRO_CLAIMED",
            by_user_id=user_id,
            payload={"claimed_by": int(user_id)},
        )

        file = _get_file(session, file_id)
        session.refresh(file)

        logger.info("pre-repro file claimed", extra={"file_id": file.id, "user_id": user_id})
        return file


def complete_pre_repro(file_id: int, user_id: int, *, db: Optional[Session] = None) -> File:
    """
    Hands a claimed pre-repro file to its target designer: the file moves to
    REPRO stage and lands in that designer's pool awaiting takeover.
    """
    with unit_of_work(db) as session:
        file = _require_pre_repro(session, file_id)
        if file.assigned_designer_id != int(user_id):
            raise ForbiddenError("Only the user who claimed the file can hand it off")
        if file.target_assignee_id is None:
            raise ValidationError("File has no target assignee")

        repro = session.query(Department).filter(Department.code == REPRO_DEPARTMENT_CODE).first()
        if repro is None:
            raise NotFoundError("Repro department not found")

        from_department_id = file.current_department_id
        file.stage = Stage.REPRO.value
        file.status = FileStatus.ASSIGNED.value
        file.assigned_designer_id = file.target_assignee_id
        file.current_department_id = repro.id
        file.pending_takeover = True
        session.flush()

        create_audit_log(
            session,
            file_id=file.id,
            action_type="PRE_REPRO_HANDED_OFF",
            by_user_id=user_id,
            from_department_id=from_department_id,
            to_department_id=repro.id,
            payload={
                "from_stage": Stage.PRE_REPRO.value,
                "to_stage": Stage.REPRO.value,
                "from_assignee": int(user_id),
                "to_assignee": file.target_assignee_id,
            },
        )
        session.refresh(file)

        logger.info(
            "pre-repro file handed off",
            extra={"file_id": file.id, "user_id": user_id, "assignee_id": file.assigned_designer_id},
        )
        return file


def return_pre_repro_to_queue(file_id: int, user_id: int, *, db: Optional[Session] = None) -> File:
    with unit_of_work(db) as session:
        file = _require_pre_repro(session, file_id)
        if file.assigned_designer_id != int(user_id):
            raise ForbiddenError("Only the user who claimed the file can return it to the queue")

        file.assigned_designer_id = None
        session.flush()

        create_audit_log(
            session,
            file_id=file.id,
            action_type="PRE_REPRO_RETURNED_TO_QUEUE",
            by_user_id=user_id,
            payload={"returned_by": int(user_id)},
        )
        session.refresh(file)

        logger.info("pre-repro file returned to queue", extra={"file_id": file.id, "user_id": user_id})
        return file


def get_file_timeline(file_id: int, *, db: Optional[Session] = None) -> list[AuditLog]:
    with unit_of_work(db) as session:
        if _get_file(session, file_id) is None:
            raise NotFoundError("File not found")
        return list_file_audit_logs(session, file_id)
