"""Application wiring for membership keys, redemption and entitlements."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional

from ...app_context import get_user_store
from ...settings import AppConfig, load_app_config
from ..entitlements import EntitlementResolver, InMemoryEntitlementCache, MembershipRecord, Tier
from ..memberships import (
    KeyIssuanceService,
    KeyRedemptionEngine,
    MembershipChangeAction,
    MembershipChangeEvent,
    MembershipNotifier,
    MembershipRepository,
    NotificationScheduler,
    emit_notification,
    grant_lifetime_membership,
)
from ..memberships.repository import PostgresMembershipRepository
from ..notifications import create_membership_notifier

logger = logging.getLogger("memberships")


class ContextUserDirectory:
    """Looks usernames up through the configured user store."""

    def get_username(self, user_id: int) -> Optional[str]:
        return get_user_store().get_username(user_id)


@lru_cache(maxsize=1)
def get_app_config() -> AppConfig:
    return load_app_config()


@lru_cache(maxsize=1)
def get_membership_repository() -> MembershipRepository:
    return PostgresMembershipRepository()


@lru_cache(maxsize=1)
def get_membership_notifier() -> MembershipNotifier:
    config = get_app_config()
    return create_membership_notifier(
        config.discord_webhook_url, timeout=config.notification_timeout_seconds
    )


@lru_cache(maxsize=1)
def get_entitlement_resolver() -> EntitlementResolver:
    return EntitlementResolver(
        get_membership_repository(),
        InMemoryEntitlementCache(),
        ttl_seconds=get_app_config().entitlement_cache_ttl_seconds,
    )


@lru_cache(maxsize=1)
def get_redemption_engine() -> KeyRedemptionEngine:
    return KeyRedemptionEngine(
        repository=get_membership_repository(),
        notifier=get_membership_notifier(),
        invalidator=get_entitlement_resolver(),
        users=ContextUserDirectory(),
    )


@lru_cache(maxsize=1)
def get_issuance_service() -> KeyIssuanceService:
    return KeyIssuanceService(
        repository=get_membership_repository(),
        notifier=get_membership_notifier(),
    )


def start_free_membership(
    user_id: int,
    username: str,
    schedule: Optional[NotificationScheduler] = None,
) -> MembershipRecord:
    """Give a newly registered user their permanent free-tier record."""

    now = datetime.now(timezone.utc)
    record = grant_lifetime_membership(get_membership_repository(), user_id, Tier.FREE, now=now)
    get_entitlement_resolver().invalidate_user(user_id)
    emit_notification(
        get_membership_notifier(),
        MembershipChangeEvent(
            username=username,
            action=MembershipChangeAction.CREATED,
            tier=Tier.FREE,
            details="Registered with a free membership",
            occurred_at=now,
        ),
        schedule,
    )
    return record


__all__ = [
    "ContextUserDirectory",
    "get_app_config",
    "get_entitlement_resolver",
    "get_issuance_service",
    "get_membership_notifier",
    "get_membership_repository",
    "get_redemption_engine",
    "start_free_membership",
]
