"""
曲库测试

测试曲库的核心功能：
- 歌曲添加与查询
- 分页列出
- 删除
- 播放次数统计
"""

import shutil
import tempfile
import unittest
from pathlib import Path

from kareoke.catalog.song_catalog import SongCatalog
from kareoke.core.errors import ConflictError, NotFoundError, ValidationError
from kareoke.storage.database import KareokeDatabase


class TestSongCatalog(unittest.IsolatedAsyncioTestCase):
    """曲库测试类"""

    async def asyncSetUp(self):
        """测试前准备"""
        self.temp_dir = tempfile.mkdtemp()
        self.database = KareokeDatabase(str(Path(self.temp_dir) / "catalog.db"))
        await self.database.initialize()
        self.catalog = SongCatalog(self.database)

    async def asyncTearDown(self):
        """测试后清理"""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    async def test_add_and_get_song(self):
        """测试添加并查询歌曲"""
        song = await self.catalog.add_song(
            "月亮代表我的心", "邓丽君", source="local", filename="moon.mp4", duration=210
        )

        self.assertTrue(song.song_id)
        fetched = await self.catalog.get_song_by_id(song.song_id)
        self.assertEqual(fetched, song)
        self.assertEqual(fetched.format_duration(), "3:30")

    async def test_get_missing_song(self):
        self.assertIsNone(await self.catalog.get_song_by_id("missing"))
        self.assertIsNone(await self.catalog.get_entry("missing"))

    async def test_add_song_with_explicit_id(self):
        song = await self.catalog.add_song("Title", "Artist", song_id="fixed-id")
        self.assertEqual(song.song_id, "fixed-id")

        with self.assertRaises(ConflictError):
            await self.catalog.add_song("Other", "Artist", song_id="fixed-id")

    async def test_add_song_validation(self):
        """测试添加歌曲时的参数校验"""
        with self.assertRaises(ValidationError):
            await self.catalog.add_song("", "Artist")
        with self.assertRaises(ValidationError):
            await self.catalog.add_song("Title", "")
        with self.assertRaises(ValidationError):
            await self.catalog.add_song("Title", "Artist", duration=-1)

        self.assertEqual(await self.catalog.list_songs(), [])

    async def test_list_songs_sorted_and_paged(self):
        """测试按标题、歌手排序分页"""
        await self.catalog.add_song("Yesterday", "The Beatles")
        await self.catalog.add_song("Hello", "Lionel Richie")
        await self.catalog.add_song("Hello", "Adele")

        entries = await self.catalog.list_songs()
        self.assertEqual(
            [(entry.song.title, entry.song.artist) for entry in entries],
            [("Hello", "Adele"), ("Hello", "Lionel Richie"), ("Yesterday", "The Beatles")]
        )

        second_page = await self.catalog.list_songs(limit=2, page=1)
        self.assertEqual([entry.song.title for entry in second_page], ["Yesterday"])

        with self.assertRaises(ValidationError):
            await self.catalog.list_songs(limit=0)
        with self.assertRaises(ValidationError):
            await self.catalog.list_songs(page=-1)

    async def test_delete_song(self):
        song = await self.catalog.add_song("Title", "Artist")

        await self.catalog.delete_song(song.song_id)

        self.assertIsNone(await self.catalog.get_song_by_id(song.song_id))
        with self.assertRaises(NotFoundError):
            await self.catalog.delete_song(song.song_id)

    async def test_increment_play_count(self):
        """测试播放次数统计"""
        song = await self.catalog.add_song("Title", "Artist")

        entry = await self.catalog.get_entry(song.song_id)
        self.assertEqual(entry.plays, 0)
        self.assertIsNone(entry.last_played)

        await self.catalog.increment_play_count(song.song_id)
        await self.catalog.increment_play_count(song.song_id)

        entry = await self.catalog.get_entry(song.song_id)
        self.assertEqual(entry.plays, 2)
        self.assertIsNotNone(entry.last_played)


if __name__ == '__main__':
    unittest.main()
