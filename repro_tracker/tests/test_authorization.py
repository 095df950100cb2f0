import pytest

from repro_tracker.core.authorization import (
    Permission,
    Role,
    get_department_code_for_role,
    get_role_permissions,
    has_permission,
    has_role,
)
from repro_tracker.deps.auth import CurrentUser


def test_admin_holds_every_permission():
    assert get_role_permissions(Role.ADMIN) == frozenset(Permission)


@pytest.mark.parametrize("role", [Role.ONREPRO, Role.GRAFIKER, Role.KALITE, Role.KOLAJ])
def test_only_admin_assigns_files_and_views_reports(role):
    assert not has_permission(role, Permission.FILE_ASSIGN)
    assert not has_permission(role, Permission.REPORT_VIEW)
    assert has_permission(role, Permission.FILE_TAKEOVER)


def test_stage_specific_permissions():
    assert has_permission(Role.ONREPRO, Permission.FILE_VIEW_ALL)
    assert has_permission(Role.ONREPRO, Permission.CUSTOMER_APPROVE)
    assert has_permission(Role.KALITE, Permission.QUALITY_APPROVE)
    assert has_permission(Role.KOLAJ, Permission.PRODUCTION_SEND)
    assert not has_permission(Role.GRAFIKER, Permission.FILE_VIEW_ALL)
    assert not has_permission(Role.GRAFIKER, Permission.PRODUCTION_SEND)


def test_has_role_matches_any_listed_role():
    user = CurrentUser(user_id=1, role=Role.KALITE, department_id=None)

    assert has_role(user, [Role.ADMIN, Role.KALITE])
    assert not has_role(user, [Role.ADMIN])


def test_every_role_maps_to_a_department():
    assert get_department_code_for_role(Role.GRAFIKER) == "REPRO"
    assert {get_department_code_for_role(r) for r in Role} == {
        "ADMIN",
        "ONREPRO",
        "REPRO",
        "KALITE",
        "KOLAJ",
    }
