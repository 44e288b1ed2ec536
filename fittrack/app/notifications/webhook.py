"""Membership notifiers delivering change events to a Discord-style webhook."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional
from urllib import error as urllib_error, request as urllib_request

from ..entitlements.models import Tier
from ..memberships.models import MembershipChangeAction, MembershipChangeEvent

logger = logging.getLogger(__name__)

SENDER_NAME = "FitTrack Memberships"
DEFAULT_COLOR = 0x2ECC71

TIER_COLORS: Dict[Tier, int] = {
    Tier.FREE: 0x808080,
    Tier.PREMIUM: 0x3498DB,
    Tier.PRO: 0x9B59B6,
    Tier.ELITE: 0xF1C40F,
}

ACTION_TITLES: Dict[MembershipChangeAction, str] = {
    MembershipChangeAction.UPGRADED: "Membership Upgraded",
    MembershipChangeAction.CREATED: "New Membership",
    MembershipChangeAction.KEY_REDEEMED: "Membership Key Redeemed",
    MembershipChangeAction.KEY_FORCE_APPLIED: "Membership Key Force Applied",
    MembershipChangeAction.KEYS_GENERATED: "Membership Keys Generated",
}


def build_embed_message(event: MembershipChangeEvent) -> Dict[str, Any]:
    """Build the webhook body for ``event``."""

    title = ACTION_TITLES.get(event.action, "Membership Updated")
    fields = [
        {"name": "Tier", "value": event.tier.display_name, "inline": True},
        {"name": "Action", "value": title, "inline": True},
    ]
    if event.details:
        fields.append({"name": "Details", "value": event.details})

    return {
        "username": SENDER_NAME,
        "embeds": [
            {
                "title": title,
                "description": f"{event.username}'s membership was updated.",
                "color": TIER_COLORS.get(event.tier, DEFAULT_COLOR),
                "fields": fields,
                "timestamp": event.occurred_at.isoformat(),
            }
        ],
    }


class LoggingMembershipNotifier:
    """Notifier that records events to the application logger."""

    def notify(self, event: MembershipChangeEvent) -> bool:
        logger.info(
            "Membership event %s user=%s tier=%s details=%s",
            event.action.value,
            event.username,
            event.tier.value,
            event.details,
        )
        return False


class WebhookMembershipNotifier:
    """Posts membership events to a webhook URL; failures return ``False``."""

    def __init__(self, webhook_url: str, *, timeout: float = 5.0) -> None:
        if not webhook_url:
            raise ValueError("webhook_url must be provided")
        self.webhook_url = webhook_url
        self.timeout = timeout

    def notify(self, event: MembershipChangeEvent) -> bool:
        body = json.dumps(build_embed_message(event)).encode("utf-8")
        http_request = urllib_request.Request(
            self.webhook_url,
            data=body,
            headers={"Content-Type": "application/json", "User-Agent": "FitTrack/1.0"},
            method="POST",
        )
        try:
            with urllib_request.urlopen(http_request, timeout=self.timeout) as response:
                status = getattr(response, "status", 200)
                if status >= 400:
                    logger.error("Webhook notification failed: HTTP %s", status)
                    return False
        except urllib_error.HTTPError as exc:
            logger.error("Webhook notification failed: HTTP %s %s", exc.code, exc.reason)
            return False
        except (urllib_error.URLError, TimeoutError, OSError) as exc:
            logger.warning("Webhook notification could not be delivered: %s", exc)
            return False
        return True


def create_membership_notifier(webhook_url: Optional[str], *, timeout: float = 5.0):
    if webhook_url:
        return WebhookMembershipNotifier(webhook_url, timeout=timeout)
    logger.info("Webhook URL not configured; membership notifications will only be logged")
    return LoggingMembershipNotifier()
