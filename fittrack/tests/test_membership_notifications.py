from __future__ import annotations

import io
import json
from datetime import datetime, timezone
from urllib import error as urllib_error

from fittrack.app.entitlements import Tier
from fittrack.app.memberships import MembershipChangeAction, MembershipChangeEvent, dispatch_notification
from fittrack.app.notifications import (
    LoggingMembershipNotifier,
    WebhookMembershipNotifier,
    build_embed_message,
    create_membership_notifier,
)
from fittrack.app.notifications import webhook

EVENT = MembershipChangeEvent(
    username="casey",
    action=MembershipChangeAction.KEY_REDEEMED,
    tier=Tier.ELITE,
    details="Key ELI-...beef applied for 30 days",
    occurred_at=datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc),
)


class FakeResponse:
    def __init__(self, status: int = 204) -> None:
        self.status = status

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def test_embed_message_shape():
    body = build_embed_message(EVENT)

    assert body["username"] == "FitTrack Memberships"
    [embed] = body["embeds"]
    assert embed["title"] == "Membership Key Redeemed"
    assert embed["color"] == 0xF1C40F
    assert embed["description"].startswith("casey")
    assert embed["timestamp"] == "2024-03-01T09:30:00+00:00"
    names = [field["name"] for field in embed["fields"]]
    assert names == ["Tier", "Action", "Details"]
    assert embed["fields"][0]["value"] == "Elite"


def test_embed_omits_details_field_when_absent():
    event = EVENT.model_copy(update={"details": None, "tier": Tier.PREMIUM})

    [embed] = build_embed_message(event)["embeds"]

    assert embed["color"] == 0x3498DB
    assert [field["name"] for field in embed["fields"]] == ["Tier", "Action"]


def test_webhook_posts_json(monkeypatch):
    captured = {}

    def fake_urlopen(request, timeout):
        captured["url"] = request.full_url
        captured["body"] = json.loads(request.data.decode("utf-8"))
        captured["timeout"] = timeout
        return FakeResponse(204)

    monkeypatch.setattr(webhook.urllib_request, "urlopen", fake_urlopen)
    notifier = WebhookMembershipNotifier("https://hooks.example.test/abc", timeout=2.5)

    assert notifier.notify(EVENT) is True
    assert captured["url"] == "https://hooks.example.test/abc"
    assert captured["timeout"] == 2.5
    assert captured["body"]["embeds"][0]["title"] == "Membership Key Redeemed"


def test_webhook_http_error_returns_false(monkeypatch):
    def fake_urlopen(request, timeout):
        raise urllib_error.HTTPError(request.full_url, 500, "Server Error", {}, io.BytesIO(b""))

    monkeypatch.setattr(webhook.urllib_request, "urlopen", fake_urlopen)

    assert WebhookMembershipNotifier("https://hooks.example.test/abc").notify(EVENT) is False


def test_webhook_unreachable_returns_false(monkeypatch):
    def fake_urlopen(request, timeout):
        raise urllib_error.URLError("connection refused")

    monkeypatch.setattr(webhook.urllib_request, "urlopen", fake_urlopen)

    assert WebhookMembershipNotifier("https://hooks.example.test/abc").notify(EVENT) is False


def test_factory_falls_back_to_logging_notifier():
    assert isinstance(create_membership_notifier(None), LoggingMembershipNotifier)
    assert isinstance(create_membership_notifier("https://hooks.example.test/x"), WebhookMembershipNotifier)


def test_dispatch_swallows_notifier_errors():
    class Broken:
        def notify(self, event):
            raise RuntimeError("boom")

    assert dispatch_notification(Broken(), EVENT) is False
