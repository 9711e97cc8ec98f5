"""Notification fan-out and unread-count polling."""

from refood.notifications.fanout import NotificationFanout
from refood.notifications.gateway import NotificationGateway
from refood.notifications.polling import PollState, UnreadCountPoller

__all__ = ["NotificationFanout", "NotificationGateway", "PollState", "UnreadCountPoller"]
