"""Membership tiers, the entitlement catalog and the resolver."""

from .catalog import TIER_CATALOG, TierDefinition, get_tier_definition
from .cache import EntitlementCache, InMemoryEntitlementCache
from .models import (
    EntitlementResolution,
    FeatureBundle,
    MembershipRecord,
    Tier,
    is_at_least,
)
from .service import EntitlementResolver, MembershipRecordRepository, remaining_days

__all__ = [
    "TIER_CATALOG",
    "TierDefinition",
    "get_tier_definition",
    "EntitlementCache",
    "InMemoryEntitlementCache",
    "EntitlementResolution",
    "FeatureBundle",
    "MembershipRecord",
    "Tier",
    "is_at_least",
    "EntitlementResolver",
    "MembershipRecordRepository",
    "remaining_days",
]
