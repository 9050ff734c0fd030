"""
队列引擎与 SQLite 存储集成测试

验证引擎在真实数据库上的行为：持久化、曲库校验、并发入队、
事件通知以及底层错误的映射。
"""

import asyncio
import sqlite3
from unittest.mock import AsyncMock

import pytest

from kareoke.core.errors import NotFoundError, StoreError
from kareoke.notifications.event_notifier import PLAYING_CHANGED, QUEUE_CHANGED, EventNotifier
from kareoke.queue.queue_engine import QueueEngine
from kareoke.queue.queue_registry import QueueRegistry
from kareoke.queue.sqlite_item_store import SQLiteOrderedItemStore
from kareoke.storage.database import KareokeDatabase


async def _add_songs(song_catalog, *titles):
    songs = []
    for title in titles:
        songs.append(await song_catalog.add_song(title, "Artist", song_id=title.lower()))
    return songs


@pytest.mark.asyncio
async def test_scenario_persists_across_engines(database, song_catalog):
    """点歌流程的结果写入数据库，新引擎实例读取到相同的顺序"""
    await _add_songs(song_catalog, "A", "B", "C", "D")
    engine = QueueEngine(SQLiteOrderedItemStore(database, "room-1"), song_catalog=song_catalog)

    for song_id in ("a", "b", "c"):
        await engine.enqueue_at_end(song_id)
    assert await engine.move_to_front(3.0) == 0.0
    assert (await engine.dequeue()).song_id == "c"
    await engine.enqueue_after(1.0, "d")

    reopened = QueueEngine(SQLiteOrderedItemStore(KareokeDatabase(str(database.db_path)), "room-1"))
    items = await reopened.get_items()
    assert [item.song_id for item in items] == ["a", "d", "b"]
    assert [item.position for item in items] == [1.0, 1.5, 2.0]
    assert items[1].song.title == "D"


@pytest.mark.asyncio
async def test_unknown_song_rejected(database, song_catalog):
    engine = QueueEngine(SQLiteOrderedItemStore(database, "room-1"), song_catalog=song_catalog)

    with pytest.raises(NotFoundError):
        await engine.enqueue_at_end("missing")

    assert await engine.get_items() == []


@pytest.mark.asyncio
async def test_deleted_song_keeps_queue_payload(database, song_catalog):
    """从曲库删除歌曲后，队列条目仍保留展示信息"""
    await _add_songs(song_catalog, "A")
    engine = QueueEngine(SQLiteOrderedItemStore(database, "room-1"), song_catalog=song_catalog)
    await engine.enqueue_at_end("a")

    await song_catalog.delete_song("a")

    head = await engine.peek()
    assert head.song.title == "A"


@pytest.mark.asyncio
async def test_concurrent_enqueues_get_unique_positions(database):
    """共享同一引擎的并发入队不会产生位置冲突"""
    registry = QueueRegistry(lambda queue_id: SQLiteOrderedItemStore(database, queue_id))
    engine = registry.get_engine("room-1")

    await asyncio.gather(*(
        registry.get_engine("room-1").enqueue_at_end(f"s{index}") for index in range(20)
    ))

    items = await engine.get_items()
    assert [item.position for item in items] == [float(index) for index in range(1, 21)]
    assert len({item.song_id for item in items}) == 20


@pytest.mark.asyncio
async def test_renumber_on_sqlite(database):
    """SQLite 存储上反复插入同一锚点之后也能保持顺序"""
    engine = QueueEngine(SQLiteOrderedItemStore(database, "room-1"))
    await engine.enqueue_at_end("a")
    await engine.enqueue_at_end("b")

    for index in range(60):
        await engine.enqueue_after(1.0, f"x{index}")

    items = await engine.get_items()
    expected = ["a"] + [f"x{index}" for index in reversed(range(60))] + ["b"]
    assert [item.song_id for item in items] == expected
    positions = [item.position for item in items]
    assert positions == sorted(set(positions))


@pytest.mark.asyncio
async def test_events_and_play_count(database, song_catalog):
    """事件监听器收到变更，播放下一首时更新曲库播放次数"""
    await _add_songs(song_catalog, "A", "B")
    events = EventNotifier()
    received = []
    events.add_listener(QUEUE_CHANGED, lambda queue_id, items: received.append(
        (QUEUE_CHANGED, [item.song_id for item in items])
    ))

    async def on_playing(queue_id, song):
        received.append((PLAYING_CHANGED, song.song_id if song else None))

    events.add_listener(PLAYING_CHANGED, on_playing)
    engine = QueueEngine(SQLiteOrderedItemStore(database, "room-1"), song_catalog=song_catalog, notifier=events)

    await engine.enqueue_at_end("a")
    await engine.enqueue_at_end("b")
    await engine.play_next()

    assert received == [
        (QUEUE_CHANGED, ["a"]),
        (QUEUE_CHANGED, ["a", "b"]),
        (QUEUE_CHANGED, ["b"]),
        (PLAYING_CHANGED, "a"),
    ]
    assert (await engine.get_current_track()).song_id == "a"
    entry = await song_catalog.get_entry("a")
    assert entry.plays == 1
    assert entry.last_played is not None


@pytest.mark.asyncio
async def test_store_failure_surfaces_as_store_error(database):
    """底层数据库错误映射为 StoreError 并传回调用方"""
    notifier = AsyncMock()
    engine = QueueEngine(SQLiteOrderedItemStore(database, "room-1"), notifier=notifier)

    def drop_items(conn: sqlite3.Connection) -> None:
        conn.execute("DROP TABLE queue_items")

    await database.run(drop_items, "drop")

    with pytest.raises(StoreError) as exc_info:
        await engine.enqueue_at_end("a")

    assert exc_info.value.queue_id == "room-1"
    notifier.notify_queue_changed.assert_not_called()


@pytest.mark.asyncio
async def test_in_memory_database_keeps_tables_between_operations():
    """内存数据库在多次操作之间保留表结构和数据"""
    db = KareokeDatabase(KareokeDatabase.MEMORY_PATH)
    try:
        await db.initialize()
        engine = QueueEngine(SQLiteOrderedItemStore(db, "room-1"))

        await engine.enqueue_at_end("a")
        await engine.enqueue_at_front("b")
        await engine.play_next()

        assert [item.song_id for item in await engine.get_items()] == ["a"]
        assert (await engine.get_current_track()).song_id == "b"
    finally:
        db.close()
