"""Convenience wrapper around entitlement resolutions for feature gating."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Union

from ..entitlements import EntitlementResolution, Tier
from .enforcement import require_entitlement, require_tier
from .quota import QuotaEvaluation, assert_quota


@dataclass(frozen=True)
class EntitlementContext:
    """Facade exposing gating-centric helpers for a user's entitlements."""

    resolution: EntitlementResolution

    @property
    def user_id(self) -> int:
        return self.resolution.user_id

    @property
    def tier(self) -> Tier:
        return self.resolution.tier

    @property
    def feature_flags(self) -> Dict[str, Union[int, bool, None]]:
        return dict(self.resolution.feature_flags)

    def has(self, flag: str) -> bool:
        """Return whether the provided flag evaluates truthy."""

        return self.resolution.has(flag)

    def require(self, flag: str, *, message: Optional[str] = None) -> None:
        """Ensure an entitlement flag is present and enabled."""

        require_entitlement(self.resolution.feature_flags, flag, message=message)

    def require_tier(self, minimum: Tier, *, feature: str) -> None:
        require_tier(self.tier, minimum, feature=feature)

    def assert_weekly_workouts(self, used: int) -> QuotaEvaluation:
        """Raise when another workout would exceed the rolling weekly limit."""

        limit = self.resolution.workout_log_weekly_limit
        return assert_quota(
            feature="workouts.weekly_limit",
            used=used,
            limit=limit,
            message=(
                f"{self.tier.display_name} members can log {limit} workouts per week. "
                "Upgrade to Premium for unlimited workout logging."
            ),
        )

    def assert_goal_capacity(self, active_goals: int) -> QuotaEvaluation:
        """Raise when another active goal would exceed the tier's goal limit."""

        limit = self.resolution.goal_limit
        return assert_quota(
            feature="goals.limit",
            used=active_goals,
            limit=limit,
            message=(
                f"{self.tier.display_name} members can track {limit} active goal(s). "
                "Upgrade your membership to add more goals."
            ),
        )
