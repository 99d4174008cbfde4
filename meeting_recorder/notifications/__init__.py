"""
Outbound status notifications.
"""

from .webhook import WebhookNotifier

__all__ = ["WebhookNotifier"]
