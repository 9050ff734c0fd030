"""
测试配置

提供测试所需的 fixtures：临时 SQLite 数据库、曲库以及两种有序条目存储。
"""

import pytest
import pytest_asyncio

from kareoke.catalog.song_catalog import SongCatalog
from kareoke.core.interfaces import SongInfo
from kareoke.queue.memory_item_store import InMemoryOrderedItemStore
from kareoke.queue.sqlite_item_store import SQLiteOrderedItemStore
from kareoke.storage.database import KareokeDatabase


def make_song(song_id: str, title: str = None) -> SongInfo:
    """创建测试歌曲"""
    return SongInfo(
        song_id=song_id,
        title=title or f"Song {song_id}",
        artist="Test Artist",
        source="local",
        filename=f"{song_id}.mp4",
        duration=180,
    )


@pytest_asyncio.fixture
async def database(tmp_path):
    """创建已初始化的临时数据库"""
    db = KareokeDatabase(str(tmp_path / "kareoke.db"))
    await db.initialize()
    return db


@pytest_asyncio.fixture
async def song_catalog(database):
    """创建曲库"""
    return SongCatalog(database)


@pytest_asyncio.fixture(params=["memory", "sqlite", "sqlite-in-memory"])
async def store(request, tmp_path):
    """两种存储实现都必须满足同一契约，SQLite 同时覆盖文件和内存数据库"""
    if request.param == "memory":
        yield InMemoryOrderedItemStore("room-1")
        return
    if request.param == "sqlite":
        db = KareokeDatabase(str(tmp_path / "store.db"))
    else:
        db = KareokeDatabase(KareokeDatabase.MEMORY_PATH)
    await db.initialize()
    yield SQLiteOrderedItemStore(db, "room-1")
    db.close()


@pytest.fixture
def song_factory():
    """歌曲工厂"""
    return make_song
