"""In-memory membership repository for tests and local development."""
from __future__ import annotations

from datetime import datetime, timezone
from threading import Lock
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..entitlements.models import MembershipRecord, Tier
from .models import MembershipKey, MembershipKeyDraft


class InMemoryMembershipRepository:
    """Thread-safe repository; one lock guards every read-modify-write."""

    def __init__(self, *, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = Lock()
        self._keys: Dict[int, MembershipKey] = {}
        self._codes: Dict[str, int] = {}
        self._memberships: Dict[int, MembershipRecord] = {}
        self.activity: List[Tuple[int, str, str]] = []
        self._next_key_id = 1
        self._next_membership_id = 1

    def get_membership_key_by_code(self, code: str) -> Optional[MembershipKey]:
        with self._lock:
            key_id = self._codes.get(code)
            return self._keys.get(key_id) if key_id is not None else None

    def get_membership_key(self, key_id: int) -> Optional[MembershipKey]:
        with self._lock:
            return self._keys.get(key_id)

    def list_membership_keys(self) -> List[MembershipKey]:
        with self._lock:
            return sorted(self._keys.values(), key=lambda key: (key.created_at, key.id), reverse=True)

    def apply_key(
        self,
        code: str,
        user_id: int,
        tier: Tier,
        end_date: datetime,
        *,
        allow_reassign: bool = False,
    ) -> Optional[Tuple[MembershipKey, MembershipRecord]]:
        with self._lock:
            key_id = self._codes.get(code)
            key = self._keys.get(key_id) if key_id is not None else None
            if key is None or key.is_revoked:
                return None
            if key.used_by not in (None, user_id) and not allow_reassign:
                return None
            if key.used_by == user_id:
                updated = key
            else:
                updated = key.model_copy(update={"used_by": user_id, "used_at": self._clock()})
            record = self._supersede(user_id, tier, end_date, code)
            self._keys[updated.id] = updated
            return updated, record

    def set_key_revoked(self, key_id: int) -> bool:
        with self._lock:
            key = self._keys.get(key_id)
            if key is None:
                return False
            if not key.is_revoked:
                self._keys[key_id] = key.model_copy(
                    update={"is_revoked": True, "revoked_at": self._clock()}
                )
            return True

    def insert_keys(self, batch: Sequence[MembershipKeyDraft]) -> List[MembershipKey]:
        with self._lock:
            duplicates = [draft.key for draft in batch if draft.key in self._codes]
            if duplicates:
                raise ValueError(f"Duplicate membership key code(s): {', '.join(duplicates)}")
            created: List[MembershipKey] = []
            now = self._clock()
            for draft in batch:
                key = MembershipKey(
                    id=self._next_key_id,
                    key=draft.key,
                    tier=draft.tier,
                    duration_days=draft.duration_days,
                    created_at=now,
                )
                self._next_key_id += 1
                self._keys[key.id] = key
                self._codes[key.key] = key.id
                created.append(key)
            return created

    def get_active_membership(self, user_id: int) -> Optional[MembershipRecord]:
        with self._lock:
            return self._active_for(user_id)

    def list_memberships(self, user_id: int) -> List[MembershipRecord]:
        with self._lock:
            return [record for record in self._memberships.values() if record.user_id == user_id]

    def supersede_membership(
        self,
        user_id: int,
        tier: Tier,
        end_date: datetime,
        key_ref: Optional[str] = None,
    ) -> MembershipRecord:
        with self._lock:
            return self._supersede(user_id, tier, end_date, key_ref)

    def _supersede(
        self,
        user_id: int,
        tier: Tier,
        end_date: datetime,
        key_ref: Optional[str],
    ) -> MembershipRecord:
        # Caller holds the lock; nothing is written until the new record is built.
        now = self._clock()
        record = MembershipRecord(
            id=self._next_membership_id,
            user_id=user_id,
            tier=tier,
            start_date=now,
            end_date=max(end_date, now),
            is_active=True,
            membership_key=key_ref,
        )
        existing = self._active_for(user_id)
        if existing is not None:
            self._memberships[existing.id] = existing.model_copy(update={"is_active": False})
        self._next_membership_id += 1
        self._memberships[record.id] = record
        self.activity.append((user_id, "membership", f"Upgraded to {tier.value} membership"))
        return record

    def _active_for(self, user_id: int) -> Optional[MembershipRecord]:
        for record in self._memberships.values():
            if record.user_id == user_id and record.is_active:
                return record
        return None
