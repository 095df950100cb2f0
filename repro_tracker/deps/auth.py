from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request

from repro_tracker.core.authorization import Permission, Role, has_permission
from repro_tracker.services.auth_service import verify_token


@dataclass(frozen=True)
class CurrentUser:
    user_id: int
    role: Role
    department_id: Optional[int]


def _parse_bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise HTTPException(status_code=401, detail="Missing Authorization header")

    parts = auth_header.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        raise HTTPException(status_code=401, detail="Invalid Authorization header")

    return parts[1].strip()


def require_auth(request: Request) -> CurrentUser:
    token = _parse_bearer_token(request)

    try:
        claims = verify_token(token)
    except ValueError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    try:
        user_id = int(claims.get("sub"))
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=401, detail="Invalid subject claim") from exc

    try:
        role = Role(str(claims.get("role")).upper())
    except ValueError as exc:
        raise HTTPException(status_code=403, detail="Invalid role claim") from exc

    department_id = claims.get("department_id")
    user = CurrentUser(
        user_id=user_id,
        role=role,
        department_id=None if department_id is None else int(department_id),
    )

    request.state.user_id = user.user_id
    request.state.role = user.role.value

    return user


def require_permission(permission: Permission):
    def dependency(user: CurrentUser = Depends(require_auth)) -> CurrentUser:
        if not has_permission(user.role, permission):
            raise HTTPException(status_code=403, detail="Insufficient permission")
        return user

    return dependency
