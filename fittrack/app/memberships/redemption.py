"""Key redemption state machine.

An attempt starts in validation and ends in exactly one of three outcomes:
``RedemptionRejected``, ``RedemptionInfoOnly`` or ``RedemptionApplied``.
Business refusals are returned, never raised; only persistence faults
propagate to the caller.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Union

from ..entitlements.models import MembershipRecord, Tier
from ..entitlements.service import remaining_days
from .models import (
    MembershipChangeAction,
    MembershipChangeEvent,
    MembershipKey,
    RedemptionApplied,
    RedemptionInfoOnly,
    RedemptionRejected,
    RejectionReason,
)
from .service import (
    EntitlementInvalidator,
    MembershipNotifier,
    MembershipRepository,
    NotificationScheduler,
    UserDirectory,
    emit_notification,
)

logger = logging.getLogger("memberships.redemption")

MAX_DISPLAY_YEARS = 10

RedemptionResult = Union[RedemptionRejected, RedemptionInfoOnly, RedemptionApplied]


def _plural(amount: int, unit: str) -> str:
    return f"{amount} {unit}" if amount == 1 else f"{amount} {unit}s"


def format_time_remaining(days: int) -> str:
    """Render ``days`` in its largest whole unit, years capped for display."""

    if days >= 365:
        return _plural(min(days // 365, MAX_DISPLAY_YEARS), "year")
    if days >= 30:
        return _plural(days // 30, "month")
    return _plural(max(days, 0), "day")


def _not_found() -> RedemptionRejected:
    return RedemptionRejected(
        reason=RejectionReason.KEY_NOT_FOUND,
        message="Invalid membership key",
    )


def _revoked(key: MembershipKey) -> RedemptionRejected:
    return RedemptionRejected(
        reason=RejectionReason.KEY_REVOKED,
        message="This membership key has been revoked",
        key=key,
    )


def _already_used(key: MembershipKey) -> RedemptionRejected:
    return RedemptionRejected(
        reason=RejectionReason.KEY_ALREADY_USED,
        message="This membership key has already been used. Confirm to apply it anyway.",
        bypassable=True,
        key=key,
    )


@dataclass
class KeyRedemptionEngine:
    """Validates membership keys and applies them to a user's membership."""

    repository: MembershipRepository
    notifier: MembershipNotifier
    invalidator: Optional[EntitlementInvalidator] = None
    users: Optional[UserDirectory] = None
    clock: Optional[Callable[[], datetime]] = None

    def _now(self) -> datetime:
        return self.clock() if self.clock else datetime.now(timezone.utc)

    def redeem(
        self,
        user_id: int,
        key_code: str,
        *,
        force_apply: bool = False,
        schedule: Optional[NotificationScheduler] = None,
    ) -> RedemptionResult:
        """Redeem ``key_code`` for ``user_id``.

        Without ``force_apply`` an existing paid subscription yields an
        informational outcome instead of being replaced. ``schedule`` defers
        the change notification until after the response.
        """

        validated = self._validate(user_id, key_code, force_apply=force_apply)
        if isinstance(validated, RedemptionRejected):
            return validated
        key = validated

        if not force_apply:
            now = self._now()
            current = self.repository.get_active_membership(user_id)
            if current is not None and _is_paid_subscription(current, now):
                return RedemptionInfoOnly(
                    current_tier=current.tier,
                    time_remaining=format_time_remaining(remaining_days(current, now)),
                    is_upgrade=key.tier.rank > current.tier.rank,
                    message=(
                        f"You already have an active {current.tier.value} membership."
                        " Confirm to replace it with this key."
                    ),
                    key=key,
                )

        action = MembershipChangeAction.KEY_FORCE_APPLIED if force_apply else MembershipChangeAction.KEY_REDEEMED
        return self._apply(user_id, key, force_apply=force_apply, action=action, schedule=schedule)

    def upgrade(
        self,
        user_id: int,
        tier: Tier,
        key_code: str,
        *,
        force_apply: bool = False,
        schedule: Optional[NotificationScheduler] = None,
    ) -> RedemptionResult:
        """Move ``user_id`` to ``tier`` using a key issued for exactly that tier."""

        validated = self._validate(user_id, key_code, force_apply=force_apply, required_tier=tier)
        if isinstance(validated, RedemptionRejected):
            return validated

        action = MembershipChangeAction.KEY_FORCE_APPLIED if force_apply else MembershipChangeAction.UPGRADED
        return self._apply(user_id, validated, force_apply=force_apply, action=action, schedule=schedule)

    def _validate(
        self,
        user_id: int,
        key_code: str,
        *,
        force_apply: bool,
        required_tier: Optional[Tier] = None,
    ) -> Union[MembershipKey, RedemptionRejected]:
        code = (key_code or "").strip()
        key = self.repository.get_membership_key_by_code(code) if code else None
        if key is None:
            return _not_found()

        if key.is_revoked:
            logger.info("Rejected revoked key %s for user=%s", key.masked_key, user_id)
            return _revoked(key)

        if required_tier is not None and key.tier != required_tier:
            return RedemptionRejected(
                reason=RejectionReason.TIER_MISMATCH,
                message=f"This key is for the {key.tier.value} tier, not {required_tier.value}",
                key=key,
            )

        if key.used_by is not None and key.used_by != user_id:
            if not force_apply:
                return _already_used(key)
            logger.warning(
                "Force applying key %s previously used by user=%s to user=%s",
                key.masked_key,
                key.used_by,
                user_id,
            )
        return key

    def _apply(
        self,
        user_id: int,
        key: MembershipKey,
        *,
        force_apply: bool,
        action: MembershipChangeAction,
        schedule: Optional[NotificationScheduler] = None,
    ) -> RedemptionResult:
        now = self._now()
        end_date = now + timedelta(days=key.duration_days)
        applied = self.repository.apply_key(
            key.key, user_id, key.tier, end_date, allow_reassign=force_apply
        )
        if applied is None:
            # Another request used or revoked the key after validation.
            latest = self.repository.get_membership_key_by_code(key.key)
            if latest is None:
                return _not_found()
            if latest.is_revoked:
                return _revoked(latest)
            return _already_used(latest)
        key, membership = applied
        if self.invalidator is not None:
            self.invalidator.invalidate_user(user_id)

        logger.info(
            "Applied key %s tier=%s user=%s forced=%s",
            key.masked_key,
            key.tier.value,
            user_id,
            force_apply,
        )
        emit_notification(
            self.notifier,
            MembershipChangeEvent(
                username=self._username(user_id),
                action=action,
                tier=key.tier,
                details=f"Key {key.masked_key} applied for {key.duration_days} days",
                occurred_at=now,
            ),
            schedule,
        )

        return RedemptionApplied(
            tier=key.tier,
            message=f"Membership key applied. You now have {key.tier.display_name} access for {key.duration_days} days.",
            forced=force_apply,
            membership=membership,
            key=key,
        )

    def _username(self, user_id: int) -> str:
        if self.users is not None:
            username = self.users.get_username(user_id)
            if username:
                return username
        return f"user #{user_id}"


def _is_paid_subscription(record: MembershipRecord, now: datetime) -> bool:
    # Free-tier grants never block a redemption.
    return record.tier != Tier.FREE and not record.is_expired(now)
