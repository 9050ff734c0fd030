"""
Webhook 通知器

把队列变更以 JSON POST 的形式推送给外部广播服务（例如负责 WebSocket
推送的网关）。请求失败只记录警告，不会影响队列操作。
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from kareoke.core.interfaces import IChangeNotifier, QueueItem, SongInfo
from .event_notifier import PLAYING_CHANGED, QUEUE_CHANGED


class WebhookNotifier(IChangeNotifier):
    """
    Webhook 通知器

    负载格式::

        {"event": "queue_changed", "queue_id": "...", "items": [...]}
        {"event": "playing_changed", "queue_id": "...", "song": {...} | null}
    """

    def __init__(self, url: str, timeout: float = 5.0):
        """
        初始化 Webhook 通知器

        Args:
            url: 接收通知的URL
            timeout: 请求总超时时间（秒）
        """
        if not url:
            raise ValueError("Webhook URL 不能为空")
        self.logger = logging.getLogger("kareoke.notifications.webhook")
        self.url = url
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def _post(self, payload: Dict[str, Any]) -> bool:
        """
        发送通知

        Returns:
            是否发送成功
        """
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(self.url, json=payload) as response:
                    if response.status >= 400:
                        self.logger.warning(
                            f"Webhook 返回错误状态 - 事件: {payload['event']}, 状态: {response.status}"
                        )
                        return False
                    self.logger.debug(f"Webhook 通知已发送 - 事件: {payload['event']}")
                    return True
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.warning(f"Webhook 请求失败 - 事件: {payload['event']}, 错误: {e}")
            return False

    async def notify_queue_changed(self, queue_id: str, items: List[QueueItem]) -> None:
        await self._post({
            'event': QUEUE_CHANGED,
            'queue_id': queue_id,
            'items': [item.to_dict() for item in items],
        })

    async def notify_playing_changed(self, queue_id: str, song: Optional[SongInfo]) -> None:
        await self._post({
            'event': PLAYING_CHANGED,
            'queue_id': queue_id,
            'song': song.to_dict() if song else None,
        })
