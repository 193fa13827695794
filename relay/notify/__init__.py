"""
Operator notifications (webhook or log).
"""

from relay.notify.notifier import Notifier, LogNotifier, WebhookNotifier


__all__ = [
    "Notifier",
    "LogNotifier",
    "WebhookNotifier",
]
