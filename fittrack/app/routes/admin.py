"""Administrator console routes: users, membership keys and activity."""
from __future__ import annotations

from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status

from ... import app_context
from ..schemas.fitness import ActivityLogOut
from ..schemas.memberships import (
    AdminUserOut,
    GenerateKeysRequest,
    MembershipKeyOut,
    RevokeKeyResponse,
)
from ..services.fitness import get_fitness_service
from ..services.memberships import get_issuance_service
from .dependencies import require_admin

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/users", response_model=List[AdminUserOut])
def list_users(*, current_user=Depends(require_admin)) -> List[AdminUserOut]:
    users = app_context.get_user_store().list_users()
    return [AdminUserOut.model_validate(dict(user)) for user in users]


@router.get("/membership-keys", response_model=List[MembershipKeyOut])
def list_membership_keys(*, current_user=Depends(require_admin)) -> List[MembershipKeyOut]:
    return [MembershipKeyOut.from_key(key) for key in get_issuance_service().list_keys()]


@router.post(
    "/membership-keys",
    response_model=List[MembershipKeyOut],
    status_code=status.HTTP_201_CREATED,
)
def generate_membership_keys(
    payload: GenerateKeysRequest,
    background_tasks: BackgroundTasks,
    *,
    current_user=Depends(require_admin),
) -> List[MembershipKeyOut]:
    try:
        keys = get_issuance_service().generate(
            payload.tier,
            payload.duration,
            payload.count,
            issued_by=current_user.username,
            schedule=background_tasks.add_task,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return [MembershipKeyOut.from_key(key) for key in keys]


@router.post("/membership-keys/{key_id}/revoke", response_model=RevokeKeyResponse)
def revoke_membership_key(key_id: int, *, current_user=Depends(require_admin)) -> RevokeKeyResponse:
    if not get_issuance_service().revoke(key_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Membership key not found")
    return RevokeKeyResponse(message="Membership key revoked successfully")


@router.get("/activity-logs", response_model=List[ActivityLogOut])
def list_activity_logs(
    limit: int = Query(100, ge=1, le=500),
    *,
    current_user=Depends(require_admin),
) -> List[ActivityLogOut]:
    entries = get_fitness_service().list_activity(None, limit)
    return [ActivityLogOut.from_log(entry) for entry in entries]
