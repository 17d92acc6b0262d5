"""Notification sub-package — action history and subscriber fan-out."""

from empathos.notifications.dispatcher import (
    ActionDispatcher,
    BackgroundSubscriber,
    DispatchResult,
    Subscription,
)
from empathos.notifications.handlers import WebhookSubscriber, log_action

__all__ = [
    "ActionDispatcher",
    "BackgroundSubscriber",
    "DispatchResult",
    "Subscription",
    "WebhookSubscriber",
    "log_action",
]
