"""Helpers for enforcing entitlement checks on API and service layers."""
from __future__ import annotations

from typing import Mapping

from ..entitlements.models import Tier, is_at_least
from .exceptions import FEATURE_UNAVAILABLE, FeatureGateError


def require_entitlement(
    feature_flags: Mapping[str, object],
    flag: str,
    *,
    error_code: str = FEATURE_UNAVAILABLE,
    message: str | None = None,
) -> None:
    """Ensure a boolean feature flag is enabled before proceeding.

    Parameters
    ----------
    feature_flags:
        Mapping of entitlement flags as produced by :meth:`FeatureBundle.to_flags`.
    flag:
        The canonical feature flag that must evaluate truthy.
    error_code:
        Optional override for the surfaced error code when the entitlement is
        not granted. Defaults to ``"feature_unavailable"``.
    message:
        Optional human-friendly message explaining the failure. If omitted, a
        default message mentioning the missing flag is used.
    """

    if not bool(feature_flags.get(flag)):
        raise FeatureGateError(
            code=error_code,
            message=message or f"Entitlement '{flag}' is required.",
            detail={"missing_entitlement": flag},
        )


def require_tier(
    tier: Tier,
    minimum: Tier,
    *,
    feature: str,
    message: str | None = None,
) -> None:
    """Ensure ``tier`` is at least ``minimum``."""

    if not is_at_least(tier, minimum):
        raise FeatureGateError(
            code=FEATURE_UNAVAILABLE,
            message=message or f"{feature} requires a {minimum.display_name} membership or higher.",
            detail={"feature": feature, "current_tier": tier.value, "required_tier": minimum.value},
        )
