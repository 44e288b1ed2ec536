"""API schemas for membership, redemption and admin key endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..entitlements import EntitlementResolution, MembershipRecord, Tier, TierDefinition
from ..memberships import (
    MembershipKey,
    RedemptionApplied,
    RedemptionInfoOnly,
    RedemptionRejected,
    RejectionReason,
)


class RedeemKeyRequest(BaseModel):
    key: str = Field(min_length=1, max_length=64)
    force_apply: bool = Field(alias="forceApply", default=False)

    model_config = ConfigDict(populate_by_name=True)


class UpgradeRequest(BaseModel):
    tier: Tier
    membership_key: str = Field(alias="membershipKey", min_length=1, max_length=64)
    force_apply: bool = Field(alias="forceApply", default=False)

    model_config = ConfigDict(populate_by_name=True)


class MembershipOut(BaseModel):
    id: int
    user_id: int = Field(alias="userId")
    tier: Tier
    start_date: datetime = Field(alias="startDate")
    end_date: datetime = Field(alias="endDate")
    is_active: bool = Field(alias="isActive")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_record(cls, record: MembershipRecord) -> "MembershipOut":
        return cls(
            id=record.id,
            user_id=record.user_id,
            tier=record.tier,
            start_date=record.start_date,
            end_date=record.end_date,
            is_active=record.is_active,
        )


class TierOut(BaseModel):
    key: Tier
    display_name: str = Field(alias="displayName")
    features: List[str]
    feature_flags: Dict[str, Optional[Union[bool, int]]] = Field(alias="featureFlags")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_definition(cls, definition: TierDefinition) -> "TierOut":
        return cls(
            key=definition.key,
            display_name=definition.display_name,
            features=list(definition.feature_list),
            feature_flags=definition.bundle.to_flags(),
        )


class TierListResponse(BaseModel):
    tiers: List[TierOut]


class MembershipStatusResponse(BaseModel):
    tier: Tier
    membership: Optional[MembershipOut] = None
    details: TierOut
    remaining_days: int = Field(alias="remainingDays")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_resolution(
        cls,
        resolution: EntitlementResolution,
        definition: TierDefinition,
        remaining_days: int,
    ) -> "MembershipStatusResponse":
        record = resolution.active_record
        return cls(
            tier=resolution.tier,
            membership=MembershipOut.from_record(record) if record else None,
            details=TierOut.from_definition(definition),
            remaining_days=remaining_days,
        )


class RedemptionResponse(BaseModel):
    """Flattened redemption outcome; ``status`` tells the variants apart."""

    status: str
    message: str
    bypassable: bool = False
    reason: Optional[RejectionReason] = None
    tier: Optional[Tier] = None
    current_tier: Optional[Tier] = Field(alias="currentTier", default=None)
    time_remaining: Optional[str] = Field(alias="timeRemaining", default=None)
    is_upgrade: Optional[bool] = Field(alias="isUpgrade", default=None)
    forced: Optional[bool] = None
    key: Optional[str] = None
    key_tier: Optional[Tier] = Field(alias="keyTier", default=None)
    key_duration: Optional[int] = Field(alias="keyDuration", default=None)
    membership: Optional[MembershipOut] = None

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_outcome(
        cls, outcome: Union[RedemptionRejected, RedemptionInfoOnly, RedemptionApplied]
    ) -> "RedemptionResponse":
        key = outcome.key
        data = dict(
            status=outcome.status,
            message=outcome.message,
            bypassable=outcome.bypassable if not isinstance(outcome, RedemptionApplied) else False,
            key=key.masked_key if key else None,
            key_tier=key.tier if key else None,
            key_duration=key.duration_days if key else None,
        )
        if isinstance(outcome, RedemptionRejected):
            data["reason"] = outcome.reason
        elif isinstance(outcome, RedemptionInfoOnly):
            data.update(
                current_tier=outcome.current_tier,
                time_remaining=outcome.time_remaining,
                is_upgrade=outcome.is_upgrade,
            )
        else:
            data.update(
                tier=outcome.tier,
                forced=outcome.forced,
                membership=MembershipOut.from_record(outcome.membership),
            )
        return cls(**data)


class MembershipKeyOut(BaseModel):
    id: int
    key: str
    tier: Tier
    duration: int
    created_at: datetime = Field(alias="createdAt")
    used_at: Optional[datetime] = Field(alias="usedAt", default=None)
    used_by: Optional[int] = Field(alias="usedBy", default=None)
    is_revoked: bool = Field(alias="isRevoked", default=False)
    revoked_at: Optional[datetime] = Field(alias="revokedAt", default=None)

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_key(cls, key: MembershipKey) -> "MembershipKeyOut":
        return cls(
            id=key.id,
            key=key.key,
            tier=key.tier,
            duration=key.duration_days,
            created_at=key.created_at,
            used_at=key.used_at,
            used_by=key.used_by,
            is_revoked=key.is_revoked,
            revoked_at=key.revoked_at,
        )


class GenerateKeysRequest(BaseModel):
    tier: Tier
    duration: int
    count: int = 1


class RevokeKeyResponse(BaseModel):
    message: str


class AdminUserOut(BaseModel):
    id: int
    username: str
    email: Optional[str] = None
    display_name: Optional[str] = Field(alias="displayName", default=None)
    role: str
    created_at: Optional[datetime] = Field(alias="createdAt", default=None)

    model_config = ConfigDict(populate_by_name=True)
