import os
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from repro_tracker.core.authorization import Role
from repro_tracker.services.auth_service import create_access_token

router = APIRouter(prefix="/auth", tags=["auth"])


class TokenRequest(BaseModel):
    user_id: int
    role: Role
    department_id: Optional[int] = None


@router.post("/token")
def issue_token(payload: TokenRequest):
    env = os.getenv("ENV", "dev").lower()
    if env not in {"dev", "local", "test"}:
        raise HTTPException(status_code=404, detail="Not Found")
    try:
        token = create_access_token(
            user_id=int(payload.user_id),
            role=payload.role.value,
            department_id=payload.department_id,
        )
    except Exception as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return {
        "access_token": token,
        "token_type": "bearer",
    }
