"""
内存有序条目存储 - 与 SQLite 存储遵循相同契约的进程内实现

用于测试以及不需要持久化的嵌入式场景。
"""

import logging
from typing import Dict, List, Optional

from kareoke.core.errors import ConflictError, NotFoundError, ValidationError
from kareoke.core.interfaces import IOrderedItemStore, QueueItem, SongInfo


class InMemoryOrderedItemStore(IOrderedItemStore):
    """内存有序条目存储实现"""

    EMPTY_FIRST_POSITION = 1.0
    EMPTY_LAST_POSITION = 0.0

    def __init__(self, queue_id: str):
        if not queue_id:
            raise ValidationError("队列ID不能为空", operation="create_store")
        self.queue_id = queue_id
        self.logger = logging.getLogger(f"kareoke.queue.store.{queue_id}")
        self._items: Dict[float, SongInfo] = {}
        self._current_track: Optional[SongInfo] = None

    def _sorted_positions(self) -> List[float]:
        return sorted(self._items)

    async def insert(self, position: float, song: SongInfo) -> QueueItem:
        position = float(position)
        if position in self._items:
            raise ConflictError(
                "位置已被占用",
                queue_id=self.queue_id,
                position=position,
                operation="insert"
            )
        self._items[position] = song
        self.logger.debug(f"插入条目 - 位置: {position}, 歌曲: {song.song_id}")
        return QueueItem(queue_id=self.queue_id, position=position, song=song)

    async def delete_at(self, position: float) -> None:
        position = float(position)
        if position not in self._items:
            raise NotFoundError(
                "指定位置没有条目",
                queue_id=self.queue_id,
                position=position,
                operation="delete_at"
            )
        del self._items[position]
        self.logger.debug(f"删除条目 - 位置: {position}")

    async def get_item(self, position: float) -> Optional[QueueItem]:
        position = float(position)
        song = self._items.get(position)
        if song is None:
            return None
        return QueueItem(queue_id=self.queue_id, position=position, song=song)

    async def first_position(self) -> float:
        return min(self._items) if self._items else self.EMPTY_FIRST_POSITION

    async def last_position(self) -> float:
        return max(self._items) if self._items else self.EMPTY_LAST_POSITION

    async def next_position_after(self, position: float) -> Optional[float]:
        later = [p for p in self._items if p > position]
        return min(later) if later else None

    async def position_before_predecessor(self, position: float) -> Optional[float]:
        earlier = sorted((p for p in self._items if p < position), reverse=True)
        return earlier[1] if len(earlier) > 1 else None

    async def top_n(self, n: Optional[int] = None) -> List[QueueItem]:
        positions = self._sorted_positions()
        if n is not None and n > 0:
            positions = positions[:n]
        return [
            QueueItem(queue_id=self.queue_id, position=p, song=self._items[p])
            for p in positions
        ]

    async def count(self) -> int:
        return len(self._items)

    async def update_position(self, old_position: float, new_position: float) -> None:
        old_position = float(old_position)
        new_position = float(new_position)
        if old_position not in self._items:
            raise NotFoundError(
                "要移动的条目不存在",
                queue_id=self.queue_id,
                position=old_position,
                operation="update_position"
            )
        if new_position != old_position and new_position in self._items:
            raise ConflictError(
                "目标位置已被占用",
                queue_id=self.queue_id,
                position=new_position,
                operation="update_position"
            )
        self._items[new_position] = self._items.pop(old_position)
        self.logger.debug(f"更新条目位置 - {old_position} -> {new_position}")

    async def renumber(self) -> Dict[float, float]:
        positions = self._sorted_positions()
        mapping = {p: float(index) for index, p in enumerate(positions, start=1)}
        self._items = {mapping[p]: song for p, song in self._items.items()}
        self.logger.info(f"队列位置已重排 - 条目数: {len(mapping)}")
        return mapping

    async def clear(self) -> None:
        self._items.clear()
        self.logger.debug("队列已清空")

    async def get_current_track(self) -> Optional[SongInfo]:
        return self._current_track

    async def set_current_track(self, song: SongInfo) -> None:
        self._current_track = song

    async def clear_current_track(self) -> None:
        self._current_track = None
