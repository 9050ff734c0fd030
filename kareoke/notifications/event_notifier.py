"""
进程内事件通知器

把队列变更和播放状态变更分发给注册的监听器。监听器可以是普通函数或协程函数，
单个监听器失败只记录日志，不影响其他监听器，也不会传回队列引擎。
"""

import inspect
import logging
from typing import Any, Callable, Dict, List, Optional

from kareoke.core.interfaces import IChangeNotifier, QueueItem, SongInfo


QUEUE_CHANGED = "queue_changed"
PLAYING_CHANGED = "playing_changed"

Listener = Callable[..., Any]


class EventNotifier(IChangeNotifier):
    """进程内事件通知器"""

    EVENTS = (QUEUE_CHANGED, PLAYING_CHANGED)

    def __init__(self):
        self.logger = logging.getLogger("kareoke.notifications.events")
        self._listeners: Dict[str, List[Listener]] = {event: [] for event in self.EVENTS}

    def add_listener(self, event: str, listener: Listener) -> None:
        """
        注册监听器

        Args:
            event: 事件名称 (queue_changed / playing_changed)
            listener: 回调，参数为 (queue_id, payload)

        Raises:
            ValueError: 未知事件名称
        """
        if event not in self._listeners:
            raise ValueError(f"未知事件: {event}")
        self._listeners[event].append(listener)
        self.logger.debug(f"注册监听器 - 事件: {event}")

    def remove_listener(self, event: str, listener: Listener) -> bool:
        """
        移除监听器

        Returns:
            是否找到并移除
        """
        listeners = self._listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)
            return True
        return False

    async def _dispatch(self, event: str, queue_id: str, payload: Any) -> None:
        for listener in list(self._listeners[event]):
            try:
                result = listener(queue_id, payload)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self.logger.error(f"事件监听器执行失败 - 事件: {event}, 队列: {queue_id}, 错误: {e}", exc_info=True)

    async def notify_queue_changed(self, queue_id: str, items: List[QueueItem]) -> None:
        await self._dispatch(QUEUE_CHANGED, queue_id, items)

    async def notify_playing_changed(self, queue_id: str, song: Optional[SongInfo]) -> None:
        await self._dispatch(PLAYING_CHANGED, queue_id, song)


class CompositeNotifier(IChangeNotifier):
    """把通知依次转发给多个通知器"""

    def __init__(self, notifiers: List[IChangeNotifier]):
        self.logger = logging.getLogger("kareoke.notifications.composite")
        self._notifiers = list(notifiers)

    async def notify_queue_changed(self, queue_id: str, items: List[QueueItem]) -> None:
        for notifier in self._notifiers:
            try:
                await notifier.notify_queue_changed(queue_id, items)
            except Exception as e:
                self.logger.warning(f"通知器 {type(notifier).__name__} 发送队列变更失败: {e}")

    async def notify_playing_changed(self, queue_id: str, song: Optional[SongInfo]) -> None:
        for notifier in self._notifiers:
            try:
                await notifier.notify_playing_changed(queue_id, song)
            except Exception as e:
                self.logger.warning(f"通知器 {type(notifier).__name__} 发送播放变更失败: {e}")
