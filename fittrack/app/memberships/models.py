"""Domain models for membership keys and redemption outcomes."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from ..entitlements.models import MembershipRecord, Tier

ISSUABLE_TIERS: Tuple[Tier, ...] = (Tier.PREMIUM, Tier.PRO, Tier.ELITE)
KEY_DURATION_OPTIONS: Tuple[int, ...] = (30, 90, 180, 365, 3650)
MAX_KEYS_PER_BATCH = 100


class MembershipKey(BaseModel):
    """A redeemable voucher granting ``tier`` for ``duration_days`` once applied."""

    id: int
    key: str
    tier: Tier
    duration_days: int = Field(ge=1)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    used_at: Optional[datetime] = None
    used_by: Optional[int] = None
    is_revoked: bool = False
    revoked_at: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_used(self) -> bool:
        return self.used_by is not None

    @property
    def masked_key(self) -> str:
        return mask_key_code(self.key)


class MembershipKeyDraft(BaseModel):
    """Unsaved key produced by batch issuance."""

    key: str
    tier: Tier
    duration_days: int = Field(ge=1)

    model_config = ConfigDict(frozen=True)


def mask_key_code(code: str) -> str:
    """Keep the first and last four characters of a key code."""

    if len(code) <= 8:
        return "*" * len(code)
    return f"{code[:4]}...{code[-4:]}"


class RejectionReason(str, Enum):
    """Why a redemption or upgrade attempt was refused."""

    KEY_NOT_FOUND = "key_not_found"
    KEY_REVOKED = "key_revoked"
    KEY_ALREADY_USED = "key_already_used"
    TIER_MISMATCH = "tier_mismatch"


class RedemptionRejected(BaseModel):
    """Terminal refusal. ``bypassable`` outcomes may be retried with ``force_apply``."""

    status: Literal["rejected"] = "rejected"
    reason: RejectionReason
    message: str
    bypassable: bool = False
    key: Optional[MembershipKey] = None

    model_config = ConfigDict(frozen=True)


class RedemptionInfoOnly(BaseModel):
    """The requester already holds an active subscription; nothing was changed."""

    status: Literal["info_only"] = "info_only"
    current_tier: Tier
    time_remaining: str
    is_upgrade: bool
    bypassable: bool = True
    message: str
    key: MembershipKey

    model_config = ConfigDict(frozen=True)


class RedemptionApplied(BaseModel):
    """The key was applied and the requester's membership superseded."""

    status: Literal["applied"] = "applied"
    tier: Tier
    message: str
    forced: bool = False
    membership: MembershipRecord
    key: MembershipKey

    model_config = ConfigDict(frozen=True)


RedemptionOutcome = Annotated[
    Union[RedemptionRejected, RedemptionInfoOnly, RedemptionApplied],
    Field(discriminator="status"),
]


class MembershipChangeAction(str, Enum):
    """Categories of membership notifications."""

    UPGRADED = "upgraded"
    CREATED = "created"
    KEY_REDEEMED = "key_redeemed"
    KEY_FORCE_APPLIED = "key_force_applied"
    KEYS_GENERATED = "keys_generated"


class MembershipChangeEvent(BaseModel):
    """Notification payload describing a membership change."""

    username: str
    action: MembershipChangeAction
    tier: Tier
    details: Optional[str] = None
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(frozen=True)
