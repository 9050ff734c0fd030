"""
通知模块 - 队列变更和播放状态变更的对外信号
"""

from .event_notifier import PLAYING_CHANGED, QUEUE_CHANGED, CompositeNotifier, EventNotifier
from .webhook_notifier import WebhookNotifier

__all__ = [
    "QUEUE_CHANGED",
    "PLAYING_CHANGED",
    "EventNotifier",
    "CompositeNotifier",
    "WebhookNotifier"
]
