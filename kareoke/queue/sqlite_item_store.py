"""
SQLite 有序条目存储 - 基于 queue_items 表的持久化有序存储

每个实例绑定一个 queue_id。所有读写都通过 KareokeDatabase 在线程池中执行，
每个方法对应一个事务。位置更新使用 ``WHERE position = 旧位置`` 的比较交换语义，
并发修改失败时抛出 NotFoundError 或 ConflictError，而不是静默覆盖。
"""

import sqlite3
import logging
from typing import Dict, List, Optional

from kareoke.core.errors import NotFoundError, ValidationError
from kareoke.core.interfaces import IOrderedItemStore, QueueItem, SongInfo
from kareoke.storage.database import KareokeDatabase


_ITEM_COLUMNS = "position, song_id, title, artist, source, filename, duration"


class SQLiteOrderedItemStore(IOrderedItemStore):
    """
    SQLite 有序条目存储实现

    纯有序存储，不包含业务规则。空队列时 first_position 返回 1，
    last_position 返回 0。
    """

    EMPTY_FIRST_POSITION = 1.0
    EMPTY_LAST_POSITION = 0.0

    def __init__(self, database: KareokeDatabase, queue_id: str):
        """
        初始化 SQLite 有序条目存储

        Args:
            database: 数据库管理器
            queue_id: 队列ID
        """
        if not queue_id:
            raise ValidationError("队列ID不能为空", operation="create_store")
        self.queue_id = queue_id
        self._database = database
        self.logger = logging.getLogger(f"kareoke.queue.store.{queue_id}")

    def _row_to_item(self, row: tuple) -> QueueItem:
        """将数据库行转换为队列条目"""
        position, song_id, title, artist, source, filename, duration = row
        return QueueItem(
            queue_id=self.queue_id,
            position=float(position),
            song=SongInfo(
                song_id=song_id,
                title=title or "",
                artist=artist or "",
                source=source or "",
                filename=filename or "",
                duration=int(duration or 0),
            )
        )

    async def insert(self, position: float, song: SongInfo) -> QueueItem:
        position = float(position)

        def insert_item(conn: sqlite3.Connection) -> None:
            conn.execute(f'''
                INSERT INTO queue_items (queue_id, {_ITEM_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ''', (
                self.queue_id,
                position,
                song.song_id,
                song.title,
                song.artist,
                song.source,
                song.filename,
                song.duration,
            ))

        await self._database.run(insert_item, "insert", self.queue_id, position)
        self.logger.debug(f"插入条目 - 位置: {position}, 歌曲: {song.song_id}")
        return QueueItem(queue_id=self.queue_id, position=position, song=song)

    async def delete_at(self, position: float) -> None:
        position = float(position)

        def delete_item(conn: sqlite3.Connection) -> None:
            cursor = conn.execute(
                'DELETE FROM queue_items WHERE queue_id = ? AND position = ?',
                (self.queue_id, position)
            )
            if cursor.rowcount == 0:
                raise NotFoundError(
                    "指定位置没有条目",
                    queue_id=self.queue_id,
                    position=position,
                    operation="delete_at"
                )

        await self._database.run(delete_item, "delete_at", self.queue_id, position)
        self.logger.debug(f"删除条目 - 位置: {position}")

    async def get_item(self, position: float) -> Optional[QueueItem]:
        position = float(position)

        def query_item(conn: sqlite3.Connection) -> Optional[tuple]:
            return conn.execute(f'''
                SELECT {_ITEM_COLUMNS} FROM queue_items
                WHERE queue_id = ? AND position = ?
            ''', (self.queue_id, position)).fetchone()

        row = await self._database.run(query_item, "get_item", self.queue_id, position)
        return self._row_to_item(row) if row else None

    async def first_position(self) -> float:
        def query_first(conn: sqlite3.Connection) -> float:
            row = conn.execute(
                'SELECT COALESCE(MIN(position), ?) FROM queue_items WHERE queue_id = ?',
                (self.EMPTY_FIRST_POSITION, self.queue_id)
            ).fetchone()
            return float(row[0])

        return await self._database.run(query_first, "first_position", self.queue_id)

    async def last_position(self) -> float:
        def query_last(conn: sqlite3.Connection) -> float:
            row = conn.execute(
                'SELECT COALESCE(MAX(position), ?) FROM queue_items WHERE queue_id = ?',
                (self.EMPTY_LAST_POSITION, self.queue_id)
            ).fetchone()
            return float(row[0])

        return await self._database.run(query_last, "last_position", self.queue_id)

    async def next_position_after(self, position: float) -> Optional[float]:
        position = float(position)

        def query_next(conn: sqlite3.Connection) -> Optional[float]:
            row = conn.execute('''
                SELECT position FROM queue_items
                WHERE queue_id = ? AND position > ?
                ORDER BY position
                LIMIT 1
            ''', (self.queue_id, position)).fetchone()
            return float(row[0]) if row else None

        return await self._database.run(query_next, "next_position_after", self.queue_id, position)

    async def position_before_predecessor(self, position: float) -> Optional[float]:
        position = float(position)

        def query_before(conn: sqlite3.Connection) -> Optional[float]:
            row = conn.execute('''
                SELECT position FROM queue_items
                WHERE queue_id = ? AND position < ?
                ORDER BY position DESC
                LIMIT 1 OFFSET 1
            ''', (self.queue_id, position)).fetchone()
            return float(row[0]) if row else None

        return await self._database.run(
            query_before, "position_before_predecessor", self.queue_id, position
        )

    async def top_n(self, n: Optional[int] = None) -> List[QueueItem]:
        def query_items(conn: sqlite3.Connection) -> List[tuple]:
            if n is None or n <= 0:
                return conn.execute(f'''
                    SELECT {_ITEM_COLUMNS} FROM queue_items
                    WHERE queue_id = ?
                    ORDER BY position
                ''', (self.queue_id,)).fetchall()
            return conn.execute(f'''
                SELECT {_ITEM_COLUMNS} FROM queue_items
                WHERE queue_id = ?
                ORDER BY position
                LIMIT ?
            ''', (self.queue_id, n)).fetchall()

        rows = await self._database.run(query_items, "top_n", self.queue_id)
        return [self._row_to_item(row) for row in rows]

    async def count(self) -> int:
        def query_count(conn: sqlite3.Connection) -> int:
            row = conn.execute(
                'SELECT COUNT(*) FROM queue_items WHERE queue_id = ?',
                (self.queue_id,)
            ).fetchone()
            return int(row[0])

        return await self._database.run(query_count, "count", self.queue_id)

    async def update_position(self, old_position: float, new_position: float) -> None:
        old_position = float(old_position)
        new_position = float(new_position)

        def move_item(conn: sqlite3.Connection) -> None:
            cursor = conn.execute('''
                UPDATE queue_items SET position = ?
                WHERE queue_id = ? AND position = ?
            ''', (new_position, self.queue_id, old_position))
            if cursor.rowcount == 0:
                raise NotFoundError(
                    "要移动的条目不存在",
                    queue_id=self.queue_id,
                    position=old_position,
                    operation="update_position"
                )

        await self._database.run(move_item, "update_position", self.queue_id, old_position)
        self.logger.debug(f"更新条目位置 - {old_position} -> {new_position}")

    async def renumber(self) -> Dict[float, float]:
        def renumber_items(conn: sqlite3.Connection) -> Dict[float, float]:
            positions = [
                float(row[0]) for row in conn.execute(
                    'SELECT position FROM queue_items WHERE queue_id = ? ORDER BY position',
                    (self.queue_id,)
                ).fetchall()
            ]
            if not positions:
                return {}

            # 先移到所有现有位置和目标位置之上，避免唯一索引在中途冲突
            offset = max(positions[-1], float(len(positions))) + 1
            for index, position in enumerate(positions, start=1):
                conn.execute(
                    'UPDATE queue_items SET position = ? WHERE queue_id = ? AND position = ?',
                    (offset + index, self.queue_id, position)
                )
            for index in range(1, len(positions) + 1):
                conn.execute(
                    'UPDATE queue_items SET position = ? WHERE queue_id = ? AND position = ?',
                    (float(index), self.queue_id, offset + index)
                )
            return {position: float(index) for index, position in enumerate(positions, start=1)}

        mapping = await self._database.run(renumber_items, "renumber", self.queue_id)
        self.logger.info(f"队列位置已重排 - 条目数: {len(mapping)}")
        return mapping

    async def clear(self) -> None:
        def clear_items(conn: sqlite3.Connection) -> None:
            conn.execute('DELETE FROM queue_items WHERE queue_id = ?', (self.queue_id,))

        await self._database.run(clear_items, "clear", self.queue_id)
        self.logger.debug("队列已清空")

    async def get_current_track(self) -> Optional[SongInfo]:
        def query_current(conn: sqlite3.Connection) -> Optional[tuple]:
            return conn.execute('''
                SELECT current_song_id, current_title, current_artist,
                       current_source, current_filename, current_duration
                FROM queues
                WHERE queue_id = ? AND current_song_id IS NOT NULL
            ''', (self.queue_id,)).fetchone()

        row = await self._database.run(query_current, "get_current_track", self.queue_id)
        if not row:
            return None
        song_id, title, artist, source, filename, duration = row
        return SongInfo(
            song_id=song_id,
            title=title or "",
            artist=artist or "",
            source=source or "",
            filename=filename or "",
            duration=int(duration or 0),
        )

    async def set_current_track(self, song: SongInfo) -> None:
        def upsert_current(conn: sqlite3.Connection) -> None:
            conn.execute('''
                INSERT INTO queues
                (queue_id, current_song_id, current_title, current_artist,
                 current_source, current_filename, current_duration, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT (queue_id) DO UPDATE SET
                    current_song_id = excluded.current_song_id,
                    current_title = excluded.current_title,
                    current_artist = excluded.current_artist,
                    current_source = excluded.current_source,
                    current_filename = excluded.current_filename,
                    current_duration = excluded.current_duration,
                    updated_at = CURRENT_TIMESTAMP
            ''', (
                self.queue_id,
                song.song_id,
                song.title,
                song.artist,
                song.source,
                song.filename,
                song.duration,
            ))

        await self._database.run(upsert_current, "set_current_track", self.queue_id)

    async def clear_current_track(self) -> None:
        def clear_current(conn: sqlite3.Connection) -> None:
            conn.execute('''
                UPDATE queues
                SET current_song_id = NULL, current_title = NULL, current_artist = NULL,
                    current_source = NULL, current_filename = NULL, current_duration = NULL,
                    updated_at = CURRENT_TIMESTAMP
                WHERE queue_id = ?
            ''', (self.queue_id,))

        await self._database.run(clear_current, "clear_current_track", self.queue_id)
