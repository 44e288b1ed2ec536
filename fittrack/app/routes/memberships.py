"""API routes for viewing memberships and redeeming keys."""
from __future__ import annotations

from typing import Dict

from fastapi import APIRouter, BackgroundTasks, Depends, Response, status

from ..entitlements import TIER_CATALOG, get_tier_definition
from ..memberships import RedemptionRejected, RejectionReason
from ..schemas.memberships import (
    MembershipStatusResponse,
    RedeemKeyRequest,
    RedemptionResponse,
    TierListResponse,
    TierOut,
    UpgradeRequest,
)
from ..services.memberships import get_entitlement_resolver, get_redemption_engine
from .dependencies import get_current_user

router = APIRouter(prefix="/api/membership", tags=["membership"])

REJECTION_STATUS: Dict[RejectionReason, int] = {
    RejectionReason.KEY_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    RejectionReason.KEY_ALREADY_USED: status.HTTP_409_CONFLICT,
    RejectionReason.KEY_REVOKED: status.HTTP_410_GONE,
    RejectionReason.TIER_MISMATCH: status.HTTP_400_BAD_REQUEST,
}


def _respond(outcome, response: Response) -> RedemptionResponse:
    if isinstance(outcome, RedemptionRejected):
        response.status_code = REJECTION_STATUS[outcome.reason]
    return RedemptionResponse.from_outcome(outcome)


@router.get("", response_model=MembershipStatusResponse)
def read_membership(*, current_user=Depends(get_current_user)) -> MembershipStatusResponse:
    resolver = get_entitlement_resolver()
    resolution = resolver.resolve(current_user.id)
    return MembershipStatusResponse.from_resolution(
        resolution,
        get_tier_definition(resolution.tier),
        resolver.remaining_days(resolution.active_record),
    )


@router.get("/tiers", response_model=TierListResponse)
def list_tiers() -> TierListResponse:
    return TierListResponse(tiers=[TierOut.from_definition(definition) for definition in TIER_CATALOG.values()])


@router.post("/redeem", response_model=RedemptionResponse)
def redeem_key(
    payload: RedeemKeyRequest,
    response: Response,
    background_tasks: BackgroundTasks,
    *,
    current_user=Depends(get_current_user),
) -> RedemptionResponse:
    outcome = get_redemption_engine().redeem(
        current_user.id,
        payload.key,
        force_apply=payload.force_apply,
        schedule=background_tasks.add_task,
    )
    return _respond(outcome, response)


@router.post("/upgrade", response_model=RedemptionResponse)
def upgrade_membership(
    payload: UpgradeRequest,
    response: Response,
    background_tasks: BackgroundTasks,
    *,
    current_user=Depends(get_current_user),
) -> RedemptionResponse:
    outcome = get_redemption_engine().upgrade(
        current_user.id,
        payload.tier,
        payload.membership_key,
        force_apply=payload.force_apply,
        schedule=background_tasks.add_task,
    )
    return _respond(outcome, response)
