"""Membership keys, redemption and admin issuance."""

from .models import (
    ISSUABLE_TIERS,
    KEY_DURATION_OPTIONS,
    MAX_KEYS_PER_BATCH,
    MembershipChangeAction,
    MembershipChangeEvent,
    MembershipKey,
    MembershipKeyDraft,
    RedemptionApplied,
    RedemptionInfoOnly,
    RedemptionOutcome,
    RedemptionRejected,
    RejectionReason,
    mask_key_code,
)
from .memory import InMemoryMembershipRepository
from .provisioning import OwnerProvisioningResult, grant_lifetime_membership, provision_owner_account
from .redemption import KeyRedemptionEngine, RedemptionResult, format_time_remaining
from .service import (
    EntitlementInvalidator,
    KeyIssuanceService,
    MembershipNotifier,
    MembershipRepository,
    NotificationScheduler,
    UserDirectory,
    dispatch_notification,
    emit_notification,
)

__all__ = [
    "ISSUABLE_TIERS",
    "KEY_DURATION_OPTIONS",
    "MAX_KEYS_PER_BATCH",
    "MembershipChangeAction",
    "MembershipChangeEvent",
    "MembershipKey",
    "MembershipKeyDraft",
    "RedemptionApplied",
    "RedemptionInfoOnly",
    "RedemptionOutcome",
    "RedemptionRejected",
    "RejectionReason",
    "mask_key_code",
    "InMemoryMembershipRepository",
    "OwnerProvisioningResult",
    "grant_lifetime_membership",
    "provision_owner_account",
    "KeyRedemptionEngine",
    "RedemptionResult",
    "format_time_remaining",
    "EntitlementInvalidator",
    "KeyIssuanceService",
    "MembershipNotifier",
    "MembershipRepository",
    "NotificationScheduler",
    "UserDirectory",
    "dispatch_notification",
    "emit_notification",
]
