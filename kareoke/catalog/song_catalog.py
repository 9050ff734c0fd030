"""
曲库管理

负责存储和查询可点播的歌曲，点歌时用于校验歌曲是否存在并提供
标题、歌手、来源、文件名、时长等展示信息。
"""

import sqlite3
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from kareoke.core.errors import NotFoundError, ValidationError
from kareoke.core.interfaces import ISongCatalog, SongInfo
from kareoke.storage.database import KareokeDatabase


_SONG_COLUMNS = "song_id, title, artist, source, filename, duration, plays, last_played"


@dataclass
class CatalogEntry:
    """曲库条目，包含播放统计"""
    song: SongInfo
    plays: int = 0
    last_played: Optional[datetime] = None


class SongCatalog(ISongCatalog):
    """
    曲库管理器

    使用 songs 表存储歌曲，支持：
    - 歌曲的增删查
    - 分页列出
    - 播放次数统计
    """

    def __init__(self, database: KareokeDatabase):
        """
        初始化曲库

        Args:
            database: 数据库管理器
        """
        self.logger = logging.getLogger("kareoke.catalog")
        self._database = database

    def _row_to_entry(self, row: tuple) -> CatalogEntry:
        """将数据库行转换为曲库条目"""
        song_id, title, artist, source, filename, duration, plays, last_played = row
        if isinstance(last_played, str):
            last_played = datetime.fromisoformat(last_played)
        return CatalogEntry(
            song=SongInfo(
                song_id=song_id,
                title=title,
                artist=artist,
                source=source or "",
                filename=filename or "",
                duration=int(duration or 0),
            ),
            plays=int(plays or 0),
            last_played=last_played,
        )

    async def add_song(
        self,
        title: str,
        artist: str,
        source: str = "",
        filename: str = "",
        duration: int = 0,
        song_id: Optional[str] = None
    ) -> SongInfo:
        """
        添加歌曲到曲库

        Args:
            title: 歌曲标题
            artist: 歌手
            source: 来源
            filename: 文件名
            duration: 时长（秒）
            song_id: 歌曲ID（可选，缺省时自动生成）

        Returns:
            新添加的歌曲信息

        Raises:
            ValidationError: 标题或歌手为空，或时长为负数
            ConflictError: 歌曲ID已存在
        """
        if not title or not artist:
            raise ValidationError("歌曲标题和歌手不能为空", operation="add_song")
        if duration < 0:
            raise ValidationError("歌曲时长不能为负数", operation="add_song")

        song = SongInfo(
            song_id=song_id or uuid.uuid4().hex,
            title=title,
            artist=artist,
            source=source,
            filename=filename,
            duration=int(duration),
        )

        def insert_song(conn: sqlite3.Connection) -> None:
            conn.execute('''
                INSERT INTO songs (song_id, title, artist, source, filename, duration)
                VALUES (?, ?, ?, ?, ?, ?)
            ''', (song.song_id, song.title, song.artist, song.source, song.filename, song.duration))

        await self._database.run(insert_song, "add_song")
        self.logger.info(f"添加歌曲成功 - ID: {song.song_id}, 歌曲: {song.artist} - {song.title}")
        return song

    async def get_entry(self, song_id: str) -> Optional[CatalogEntry]:
        """
        获取曲库条目（含播放统计）

        Args:
            song_id: 歌曲ID

        Returns:
            曲库条目，不存在时返回 None
        """
        def query_song(conn: sqlite3.Connection) -> Optional[tuple]:
            return conn.execute(
                f'SELECT {_SONG_COLUMNS} FROM songs WHERE song_id = ? LIMIT 1',
                (song_id,)
            ).fetchone()

        row = await self._database.run(query_song, "get_song_by_id")
        return self._row_to_entry(row) if row else None

    async def get_song_by_id(self, song_id: str) -> Optional[SongInfo]:
        entry = await self.get_entry(song_id)
        if entry is None:
            self.logger.debug(f"曲库中没有歌曲: {song_id}")
            return None
        return entry.song

    async def list_songs(self, limit: int = 1000, page: int = 0) -> List[CatalogEntry]:
        """
        按标题、歌手排序分页列出歌曲

        Args:
            limit: 每页数量
            page: 页码（从0开始）

        Returns:
            曲库条目列表
        """
        if limit <= 0 or page < 0:
            raise ValidationError("分页参数无效", operation="list_songs")

        def query_songs(conn: sqlite3.Connection) -> List[tuple]:
            return conn.execute(f'''
                SELECT {_SONG_COLUMNS} FROM songs
                ORDER BY title, artist
                LIMIT ? OFFSET ?
            ''', (limit, page * limit)).fetchall()

        rows = await self._database.run(query_songs, "list_songs")
        self.logger.debug(f"列出歌曲 - 页码: {page}, 数量: {len(rows)}")
        return [self._row_to_entry(row) for row in rows]

    async def delete_song(self, song_id: str) -> None:
        """
        从曲库删除歌曲

        已在队列中的条目保留其冗余的展示信息，不受影响。

        Raises:
            NotFoundError: 歌曲不存在
        """
        def delete(conn: sqlite3.Connection) -> None:
            cursor = conn.execute('DELETE FROM songs WHERE song_id = ?', (song_id,))
            if cursor.rowcount == 0:
                raise NotFoundError(f"歌曲不存在: {song_id}", operation="delete_song")

        await self._database.run(delete, "delete_song")
        self.logger.info(f"删除歌曲成功 - ID: {song_id}")

    async def increment_play_count(self, song_id: str) -> None:
        def update_plays(conn: sqlite3.Connection) -> None:
            conn.execute('''
                UPDATE songs SET plays = plays + 1, last_played = ?
                WHERE song_id = ?
            ''', (datetime.now().isoformat(sep=' '), song_id))

        await self._database.run(update_plays, "increment_play_count")
        self.logger.debug(f"播放次数已更新 - ID: {song_id}")
