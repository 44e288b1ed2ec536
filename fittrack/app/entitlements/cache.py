"""Per-user cache of resolved entitlements.

Entries never read the wall clock: callers pass the resolver's ``now`` so
that expiry follows the same clock as resolution.
"""
from __future__ import annotations

from datetime import datetime
from threading import Lock
from typing import Dict, Optional, Protocol, Tuple

from .models import EntitlementResolution


class EntitlementCache(Protocol):
    def get(self, user_id: int, now: datetime) -> Optional[EntitlementResolution]:
        ...

    def set(self, resolution: EntitlementResolution, expires_at: datetime) -> None:
        ...

    def invalidate(self, user_id: int) -> None:
        ...


class InMemoryEntitlementCache:
    """Process-local cache keyed by user id."""

    def __init__(self) -> None:
        self._entries: Dict[int, Tuple[EntitlementResolution, datetime]] = {}
        self._lock = Lock()

    def get(self, user_id: int, now: datetime) -> Optional[EntitlementResolution]:
        with self._lock:
            entry = self._entries.get(user_id)
            if entry is None:
                return None
            resolution, expires_at = entry
            if now >= expires_at:
                del self._entries[user_id]
                return None
            return resolution

    def set(self, resolution: EntitlementResolution, expires_at: datetime) -> None:
        if expires_at <= resolution.generated_at:
            return
        with self._lock:
            self._entries[resolution.user_id] = (resolution, expires_at)

    def invalidate(self, user_id: int) -> None:
        with self._lock:
            self._entries.pop(user_id, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
