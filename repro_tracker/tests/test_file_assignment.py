import pytest

from repro_tracker.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from repro_tracker.database import SessionLocal
from repro_tracker.models.audit_log import AuditLog
from repro_tracker.models.file import File, FileStatus, Stage
from repro_tracker.services import file_service


def _audit_actions(file_id: int) -> list:
    db = SessionLocal()
    try:
        rows = (
            db.query(AuditLog)
            .filter(AuditLog.file_id == file_id)
            .order_by(AuditLog.id.asc())
            .all()
        )
        return [r.action_type for r in rows]
    finally:
        db.close()


def _reload(file_id: int) -> File:
    db = SessionLocal()
    try:
        return db.query(File).filter(File.id == file_id).one()
    finally:
        db.close()


def test_assign_file_sets_assignee_and_writes_audit_log(user_factory, file_factory):
    admin = user_factory(role="ADMIN")
    designer = user_factory()
    file = file_factory()

    updated = file_service.assign_file(file.id, designer.id, admin.id, note="rush job")

    assert updated.assigned_designer_id == designer.id
    assert _reload(file.id).assigned_designer_id == designer.id
    assert _audit_actions(file.id) == ["ASSIGN"]

    timeline = file_service.get_file_timeline(file.id)
    assert timeline[0].by_user_id == admin.id
    assert timeline[0].payload["assignee_id"] == designer.id
    assert timeline[0].payload["note"] == "rush job"


def test_assign_file_rejects_missing_file_or_assignee(user_factory, file_factory):
    admin = user_factory(role="ADMIN")
    file = file_factory()

    with pytest.raises(ValidationError, match="File does not exist"):
        file_service.assign_file(555555, admin.id, admin.id)

    with pytest.raises(ValidationError, match="Assignee does not exist"):
        file_service.assign_file(file.id, 555555, admin.id)

    assert _reload(file.id).assigned_designer_id is None
    assert _audit_actions(file.id) == []


def test_assign_file_rejects_file_sent_to_production(user_factory, file_factory):
    admin = user_factory(role="ADMIN")
    designer = user_factory()
    file = file_factory(status=FileStatus.SENT_TO_PRODUCTION)

    with pytest.raises(ValidationError):
        file_service.assign_file(file.id, designer.id, admin.id)

    assert _reload(file.id).assigned_designer_id is None


def test_pool_only_contains_repro_stage_files_assigned_to_user(user_factory, file_factory):
    designer = user_factory()
    other = user_factory()

    mine = file_factory(assigned_designer_id=designer.id)
    file_factory(assigned_designer_id=other.id)
    file_factory(stage=Stage.PRE_REPRO, status=FileStatus.AWAITING_ASSIGNMENT, assigned_designer_id=designer.id)
    file_factory(status=FileStatus.SENT_TO_PRODUCTION, assigned_designer_id=designer.id)

    pool = file_service.list_pool_files(designer.id)

    assert [f.id for f in pool] == [mine.id]


def test_pool_is_ordered_by_priority(user_factory, file_factory):
    designer = user_factory()
    low = file_factory(assigned_designer_id=designer.id, priority="LOW")
    urgent = file_factory(assigned_designer_id=designer.id, priority="URGENT")
    normal = file_factory(assigned_designer_id=designer.id, priority="NORMAL")

    pool = file_service.list_pool_files(designer.id)

    assert [f.id for f in pool] == [urgent.id, normal.id, low.id]


def test_pre_repro_claim_and_hand_off(user_factory, file_factory, department_factory):
    intake = department_factory(code="ONREPRO", name="On Repro")
    onrepro = user_factory(role="ONREPRO", department_id=intake.id)
    designer = user_factory()
    file = file_factory(
        stage=Stage.PRE_REPRO,
        status=FileStatus.AWAITING_ASSIGNMENT,
        target_assignee_id=designer.id,
        department_id=intake.id,
    )

    assert [f.id for f in file_service.get_pre_repro_queue()] == [file.id]
    assert file_service.list_pool_files(designer.id) == []

    claimed = file_service.claim_pre_repro(file.id, onrepro.id)
    assert claimed.assigned_designer_id == onrepro.id

    handed = file_service.complete_pre_repro(file.id, onrepro.id)
    assert handed.stage == Stage.REPRO.value
    assert handed.status == FileStatus.ASSIGNED.value
    assert handed.assigned_designer_id == designer.id
    assert handed.pending_takeover is True
    assert handed.current_department_id != intake.id

    assert [f.id for f in file_service.list_pool_files(designer.id)] == [file.id]
    assert file_service.get_pre_repro_queue() == []
    assert _audit_actions(file.id) == ["PRE_REPRO_CLAIMED", "PRE_REPRO_HANDED_OFF"]


def test_pre_repro_second_claim_conflicts(user_factory, file_factory):
    first = user_factory(role="ONREPRO")
    second = user_factory(role="ONREPRO")
    file = file_factory(stage=Stage.PRE_REPRO, status=FileStatus.AWAITING_ASSIGNMENT)

    file_service.claim_pre_repro(file.id, first.id)

    with pytest.raises(ConflictError):
        file_service.claim_pre_repro(file.id, second.id)

    assert _reload(file.id).assigned_designer_id == first.id


def test_pre_repro_complete_requires_claimer_and_target(user_factory, file_factory):
    claimer = user_factory(role="ONREPRO")
    stranger = user_factory(role="ONREPRO")
    file = file_factory(stage=Stage.PRE_REPRO, status=FileStatus.AWAITING_ASSIGNMENT)
    file_service.claim_pre_repro(file.id, claimer.id)

    with pytest.raises(ForbiddenError):
        file_service.complete_pre_repro(file.id, stranger.id)

    with pytest.raises(ValidationError):
        file_service.complete_pre_repro(file.id, claimer.id)

    assert _reload(file.id).stage == Stage.PRE_REPRO.value


def test_pre_repro_return_to_queue(user_factory, file_factory):
    claimer = user_factory(role="ONREPRO")
    other = user_factory(role="ONREPRO")
    file = file_factory(stage=Stage.PRE_REPRO, status=FileStatus.AWAITING_ASSIGNMENT)
    file_service.claim_pre_repro(file.id, claimer.id)

    with pytest.raises(ForbiddenError):
        file_service.return_pre_repro_to_queue(file.id, other.id)

    returned = file_service.return_pre_repro_to_queue(file.id, claimer.id)
    assert returned.assigned_designer_id is None

    reclaimed = file_service.claim_pre_repro(file.id, other.id)
    assert reclaimed.assigned_designer_id == other.id
    assert _audit_actions(file.id) == [
        "PRE_REPRO_CLAIMED",
        "PRE_REPRO_RETURNED_TO_QUEUE",
        "PRE_REPRO_CLAIMED",
    ]


def test_pre_repro_operations_reject_repro_stage_files(user_factory, file_factory):
    user = user_factory(role="ONREPRO")
    file = file_factory()

    with pytest.raises(ConflictError):
        file_service.claim_pre_repro(file.id, user.id)

    with pytest.raises(NotFoundError):
        file_service.claim_pre_repro(424242, user.id)


def test_bulk_assign_collects_per_file_failures(user_factory, file_factory):
    admin = user_factory(role="ADMIN")
    designer = user_factory()
    f1 = file_factory(status=FileStatus.AWAITING_ASSIGNMENT)
    shipped = file_factory(status=FileStatus.SENT_TO_PRODUCTION)
    f2 = file_factory(status=FileStatus.AWAITING_ASSIGNMENT)

    report = file_service.assign_files_bulk(
        [f1.id, 777777, shipped.id, f2.id], designer.id, admin.id, note="batch"
    )

    assert report["total"] == 4
    assert report["success_count"] == 2
    assert report["fail_count"] == 2
    assert report["skipped_ids"] == [777777, shipped.id]
    assert [(r["file_id"], r["success"]) for r in report["results"]] == [
        (f1.id, True),
        (777777, False),
        (shipped.id, False),
        (f2.id, True),
    ]
    assert report["results"][1]["error"] == "File does not exist"

    assert _reload(f1.id).assigned_designer_id == designer.id
    assert _reload(f2.id).assigned_designer_id == designer.id
    assert _reload(shipped.id).assigned_designer_id is None
    assert _audit_actions(f1.id) == ["ASSIGN"]
    assert _audit_actions(shipped.id) == []


def test_bulk_assign_with_missing_assignee_assigns_nothing(user_factory, file_factory):
    admin = user_factory(role="ADMIN")
    f1 = file_factory(status=FileStatus.AWAITING_ASSIGNMENT)

    report = file_service.assign_files_bulk([f1.id], 555555, admin.id)

    assert report["success_count"] == 0
    assert report["skipped_ids"] == [f1.id]
    assert _reload(f1.id).assigned_designer_id is None


def test_unassigned_pool_lists_only_files_nobody_was_picked_for(user_factory, file_factory):
    admin = user_factory(role="ADMIN")
    designer = user_factory()
    waiting = file_factory(status=FileStatus.AWAITING_ASSIGNMENT)
    targeted = file_factory(
        stage=Stage.PRE_REPRO,
        status=FileStatus.AWAITING_ASSIGNMENT,
        target_assignee_id=designer.id,
    )
    file_factory(status=FileStatus.IN_REPRO)
    assigned_later = file_factory(status=FileStatus.AWAITING_ASSIGNMENT)

    file_service.assign_file(assigned_later.id, designer.id, admin.id)

    pool_ids = [f.id for f in file_service.list_unassigned_files()]
    assert pool_ids == [waiting.id]
    assert targeted.id not in pool_ids
