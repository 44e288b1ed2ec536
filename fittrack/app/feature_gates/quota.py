"""Count-based limit evaluation for feature gating."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .exceptions import FEATURE_LIMIT_REACHED, FeatureGateError


@dataclass(frozen=True)
class QuotaEvaluation:
    """Outcome of checking one more item against a limit. ``None`` is unlimited."""

    feature: str
    limit: Optional[int]
    used: int
    allowed: bool

    @property
    def remaining(self) -> Optional[int]:
        if self.limit is None:
            return None
        return max(self.limit - self.used, 0)


def evaluate_quota(*, feature: str, used: int, limit: Optional[int]) -> QuotaEvaluation:
    """Determine whether one more item fits under ``limit``."""

    used = max(used, 0)
    allowed = limit is None or used < limit
    return QuotaEvaluation(feature=feature, limit=limit, used=used, allowed=allowed)


def assert_quota(
    *,
    feature: str,
    used: int,
    limit: Optional[int],
    message: str,
    error_code: str = FEATURE_LIMIT_REACHED,
) -> QuotaEvaluation:
    """Raise when creating one more item would exceed ``limit``."""

    evaluation = evaluate_quota(feature=feature, used=used, limit=limit)
    if not evaluation.allowed:
        raise FeatureGateError(
            code=error_code,
            message=message,
            detail={"feature": feature, "limit": limit, "used": evaluation.used},
        )
    return evaluation
