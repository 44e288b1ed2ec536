"""Collaborator protocols and admin key issuance for memberships."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Protocol, Sequence, Set, Tuple
from uuid import uuid4

from ..entitlements.models import MembershipRecord, Tier
from .models import (
    ISSUABLE_TIERS,
    KEY_DURATION_OPTIONS,
    MAX_KEYS_PER_BATCH,
    MembershipChangeAction,
    MembershipChangeEvent,
    MembershipKey,
    MembershipKeyDraft,
)

logger = logging.getLogger("memberships")


class MembershipRepository(Protocol):
    """Persistence operations for membership keys and records.

    ``apply_key`` and ``supersede_membership`` must be atomic.
    """

    def get_membership_key_by_code(self, code: str) -> Optional[MembershipKey]:
        ...

    def get_membership_key(self, key_id: int) -> Optional[MembershipKey]:
        ...

    def list_membership_keys(self) -> Sequence[MembershipKey]:
        ...

    def apply_key(
        self,
        code: str,
        user_id: int,
        tier: Tier,
        end_date: datetime,
        *,
        allow_reassign: bool = False,
    ) -> Optional[Tuple[MembershipKey, MembershipRecord]]:
        """Mark the key used by ``user_id`` and supersede their membership in one transaction.

        Succeeds only while the key is not revoked and is unused or already
        used by ``user_id``; ``allow_reassign`` drops the usage condition.
        Returns ``None`` and changes nothing when the condition does not hold.
        """

    def set_key_revoked(self, key_id: int) -> bool:
        ...

    def insert_keys(self, batch: Sequence[MembershipKeyDraft]) -> List[MembershipKey]:
        ...

    def get_active_membership(self, user_id: int) -> Optional[MembershipRecord]:
        ...

    def supersede_membership(
        self,
        user_id: int,
        tier: Tier,
        end_date: datetime,
        key_ref: Optional[str] = None,
    ) -> MembershipRecord:
        """Deactivate the user's active record and activate a new one."""


class MembershipNotifier(Protocol):
    """Best-effort sink for membership change events."""

    def notify(self, event: MembershipChangeEvent) -> bool:
        ...


class EntitlementInvalidator(Protocol):
    """Drops cached entitlements after a membership change."""

    def invalidate_user(self, user_id: int) -> None:
        ...


class UserDirectory(Protocol):
    """Looks up display names for notifications."""

    def get_username(self, user_id: int) -> Optional[str]:
        ...


def dispatch_notification(notifier: MembershipNotifier, event: MembershipChangeEvent) -> bool:
    """Send ``event`` and swallow delivery failures."""

    try:
        return bool(notifier.notify(event))
    except Exception:
        logger.exception(
            "Membership notification failed action=%s tier=%s",
            event.action.value,
            event.tier.value,
        )
        return False


NotificationScheduler = Callable[..., Any]


def emit_notification(
    notifier: MembershipNotifier,
    event: MembershipChangeEvent,
    schedule: Optional[NotificationScheduler] = None,
) -> None:
    """Hand ``event`` to ``schedule`` (e.g. ``BackgroundTasks.add_task``) or send it now."""

    if schedule is not None:
        schedule(dispatch_notification, notifier, event)
    else:
        dispatch_notification(notifier, event)


def generate_key_code(tier: Tier) -> str:
    return f"{tier.value[:3].upper()}-{uuid4().hex[:8]}"


@dataclass
class KeyIssuanceService:
    """Generates and revokes membership keys on behalf of administrators."""

    repository: MembershipRepository
    notifier: MembershipNotifier
    clock: Optional[Callable[[], datetime]] = None
    code_factory: Callable[[Tier], str] = generate_key_code

    def _now(self) -> datetime:
        return self.clock() if self.clock else datetime.now(timezone.utc)

    def generate(
        self,
        tier: Tier,
        duration_days: int,
        count: int,
        *,
        issued_by: Optional[str] = None,
        schedule: Optional[NotificationScheduler] = None,
    ) -> List[MembershipKey]:
        if tier not in ISSUABLE_TIERS:
            raise ValueError(f"Keys cannot be issued for tier {tier.value!r}")
        if duration_days not in KEY_DURATION_OPTIONS:
            raise ValueError(
                f"duration must be one of {', '.join(str(d) for d in KEY_DURATION_OPTIONS)} days"
            )
        if count < 1 or count > MAX_KEYS_PER_BATCH:
            raise ValueError(f"count must be between 1 and {MAX_KEYS_PER_BATCH}")

        codes: Set[str] = set()
        while len(codes) < count:
            code = self.code_factory(tier)
            if code in codes or self.repository.get_membership_key_by_code(code) is not None:
                continue
            codes.add(code)

        drafts = [MembershipKeyDraft(key=code, tier=tier, duration_days=duration_days) for code in sorted(codes)]
        keys = self.repository.insert_keys(drafts)
        logger.info(
            "Issued %s %s key(s) duration=%sd by=%s",
            len(keys),
            tier.value,
            duration_days,
            issued_by or "system",
        )

        emit_notification(
            self.notifier,
            MembershipChangeEvent(
                username=issued_by or "system",
                action=MembershipChangeAction.KEYS_GENERATED,
                tier=tier,
                details=f"{len(keys)} key(s) valid for {duration_days} days",
                occurred_at=self._now(),
            ),
            schedule,
        )
        return keys

    def revoke(self, key_id: int) -> bool:
        """Block all future applications of a key; existing grants are untouched."""

        revoked = self.repository.set_key_revoked(key_id)
        if revoked:
            logger.info("Revoked membership key id=%s", key_id)
        return revoked

    def list_keys(self) -> Sequence[MembershipKey]:
        return self.repository.list_membership_keys()
