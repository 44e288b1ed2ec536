"""Idempotent bootstrap of the owner account and its permanent elite grant."""
from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional, Protocol

from ..entitlements.models import Tier
from .service import MembershipRepository

logger = logging.getLogger("memberships.provisioning")

LIFETIME = timedelta(days=365 * 100)


class AccountStore(Protocol):
    """User persistence needed for bootstrap."""

    def get_user_by_username(self, username: str) -> Optional[Any]:
        ...

    def create_user(
        self,
        *,
        username: str,
        password_hash: str,
        email: Optional[str],
        display_name: Optional[str],
        role: str,
    ) -> Any:
        ...


@dataclass(frozen=True)
class OwnerProvisioningResult:
    user: Any
    created: bool
    password: Optional[str] = None


def grant_lifetime_membership(
    repository: MembershipRepository,
    user_id: int,
    tier: Tier,
    *,
    now: Optional[datetime] = None,
):
    """Give ``user_id`` an effectively non-expiring ``tier`` grant."""

    start = now or datetime.now(timezone.utc)
    return repository.supersede_membership(user_id, tier, start + LIFETIME, None)


def provision_owner_account(
    accounts: AccountStore,
    memberships: MembershipRepository,
    *,
    password_hasher: Callable[[str], str],
    username: str = "Owner",
    email: Optional[str] = "owner@fittrack.app",
    clock: Optional[Callable[[], datetime]] = None,
) -> OwnerProvisioningResult:
    """Create the owner account once; later calls return the existing account."""

    existing = accounts.get_user_by_username(username)
    if existing is not None:
        return OwnerProvisioningResult(user=existing, created=False)

    password = secrets.token_urlsafe(9)
    user = accounts.create_user(
        username=username,
        password_hash=password_hasher(password),
        email=email,
        display_name="Administrator",
        role="admin",
    )
    now = clock() if clock else datetime.now(timezone.utc)
    grant_lifetime_membership(memberships, _user_id(user), Tier.ELITE, now=now)
    logger.warning("Created %s account with password: %s", username, password)
    return OwnerProvisioningResult(user=user, created=True, password=password)


def _user_id(user: Any) -> int:
    if isinstance(user, dict):
        return int(user["id"])
    return int(user.id)
