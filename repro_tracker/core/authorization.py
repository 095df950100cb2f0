from enum import Enum
from typing import Iterable


class Role(Enum):
    ADMIN = "ADMIN"
    ONREPRO = "ONREPRO"
    GRAFIKER = "GRAFIKER"
    KALITE = "KALITE"
    KOLAJ = "KOLAJ"


class Permission(Enum):
    FILE_CREATE = "file:create"
    FILE_ASSIGN = "file:assign"
    FILE_TAKEOVER = "file:takeover"
    FILE_TRANSFER = "file:transfer"
    FILE_VIEW_ALL = "file:view_all"
    NOTE_CREATE = "note:create"
    CUSTOMER_APPROVE = "customer:approve"
    QUALITY_APPROVE = "quality:approve"
    PRODUCTION_SEND = "production:send"
    REPORT_VIEW = "report:view"
    USER_MANAGE = "user:manage"
    OVERRIDE_EXECUTE = "override:execute"


ROLE_PERMISSIONS = {
    Role.ADMIN: frozenset(Permission),
    Role.ONREPRO: frozenset(
        {
            Permission.FILE_CREATE,
            Permission.FILE_TAKEOVER,
            Permission.FILE_TRANSFER,
            Permission.FILE_VIEW_ALL,
            Permission.NOTE_CREATE,
            Permission.CUSTOMER_APPROVE,
        }
    ),
    Role.GRAFIKER: frozenset(
        {
            Permission.FILE_TAKEOVER,
            Permission.FILE_TRANSFER,
            Permission.NOTE_CREATE,
        }
    ),
    Role.KALITE: frozenset(
        {
            Permission.FILE_TAKEOVER,
            Permission.FILE_TRANSFER,
            Permission.NOTE_CREATE,
            Permission.QUALITY_APPROVE,
        }
    ),
    Role.KOLAJ: frozenset(
        {
            Permission.FILE_TAKEOVER,
            Permission.FILE_TRANSFER,
            Permission.NOTE_CREATE,
            Permission.PRODUCTION_SEND,
        }
    ),
}

# Department each role works in.
ROLE_DEPARTMENT_CODES = {
    Role.ADMIN: "ADMIN",
    Role.ONREPRO: "ONREPRO",
    Role.GRAFIKER: "REPRO",
    Role.KALITE: "KALITE",
    Role.KOLAJ: "KOLAJ",
}


def has_permission(role: Role, permission: Permission) -> bool:
    return permission in ROLE_PERMISSIONS.get(role, frozenset())


def has_role(user, roles: Iterable[Role]) -> bool:
    return user.role in set(roles)


def get_role_permissions(role: Role) -> frozenset:
    return ROLE_PERMISSIONS.get(role, frozenset())


def get_department_code_for_role(role: Role) -> str:
    return ROLE_DEPARTMENT_CODES[role]
