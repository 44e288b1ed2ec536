"""Resolver translating a user's active membership into entitlements."""
from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Protocol

from .cache import EntitlementCache
from .catalog import get_tier_definition
from .models import EntitlementResolution, MembershipRecord, Tier

_SECONDS_PER_DAY = 86400


class MembershipRecordRepository(Protocol):
    """Read access to the per-user active membership."""

    def get_active_membership(self, user_id: int) -> Optional[MembershipRecord]:
        ...


def remaining_days(record: Optional[MembershipRecord], now: Optional[datetime] = None) -> int:
    """Whole days left on ``record``, rounded up and never negative."""

    if record is None:
        return 0
    current = now or datetime.now(timezone.utc)
    seconds = (record.end_date - current).total_seconds()
    return max(math.ceil(seconds / _SECONDS_PER_DAY), 0)


class EntitlementResolver:
    """Resolves effective tier and feature bundle, optionally caching results."""

    def __init__(
        self,
        membership_repository: MembershipRecordRepository,
        cache: Optional[EntitlementCache] = None,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        ttl_seconds: int = 300,
    ) -> None:
        self._membership_repository = membership_repository
        self._cache = cache
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._ttl_seconds = max(ttl_seconds, 60)

    def now(self) -> datetime:
        return self._clock()

    def resolve(self, user_id: int) -> EntitlementResolution:
        """Return entitlements for ``user_id``; no active record means free tier."""

        now = self._clock()
        if self._cache is not None:
            cached = self._cache.get(user_id, now)
            if cached is not None:
                return cached

        record = self._membership_repository.get_active_membership(user_id)
        if record is None or record.is_expired(now):
            tier = Tier.FREE
        else:
            tier = record.tier

        definition = get_tier_definition(tier)
        resolution = EntitlementResolution(
            user_id=user_id,
            tier=tier,
            bundle=definition.bundle,
            active_record=record,
            generated_at=now,
        )

        if self._cache is not None:
            expires_at = now + timedelta(seconds=self._ttl_seconds)
            if record is not None and now < record.end_date < expires_at:
                expires_at = record.end_date
            self._cache.set(resolution, expires_at)
        return resolution

    def remaining_days(self, record: Optional[MembershipRecord]) -> int:
        return remaining_days(record, self._clock())

    def invalidate_user(self, user_id: int) -> None:
        if self._cache is not None:
            self._cache.invalidate(user_id)
