from .webhook import (
    LoggingMembershipNotifier,
    WebhookMembershipNotifier,
    build_embed_message,
    create_membership_notifier,
)

__all__ = [
    "LoggingMembershipNotifier",
    "WebhookMembershipNotifier",
    "build_embed_message",
    "create_membership_notifier",
]
