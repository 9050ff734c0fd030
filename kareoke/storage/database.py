"""
Kareoke 数据库管理

负责 SQLite 数据库的连接、表结构初始化以及在线程池中执行数据库操作。
包括曲库表、队列条目表和每个队列的当前播放指针表。
"""

import sqlite3
import logging
import asyncio
from pathlib import Path
from typing import Callable, Optional, TypeVar

from kareoke.core.errors import ConflictError, KareokeError, StoreError


T = TypeVar('T')


class KareokeDatabase:
    """
    Kareoke 数据库管理器

    使用SQLite存储曲库和点歌队列，支持：
    - 数据库自动初始化
    - 每个操作一个事务（文件数据库每次新建连接，内存数据库共享一个连接）
    - sqlite3 异常到 ConflictError / StoreError 的统一映射
    """

    MEMORY_PATH = ":memory:"

    def __init__(self, db_path: str = "data/kareoke.db", timeout: float = 5.0):
        """
        初始化数据库管理器

        Args:
            db_path: 数据库文件路径（":memory:" 表示内存数据库）
            timeout: 获取数据库锁的超时时间（秒）
        """
        self.logger = logging.getLogger("kareoke.storage.database")
        self.db_path = Path(db_path)
        self.timeout = timeout

        # 内存数据库只在单个连接内存在，所有操作共享该连接
        self._in_memory = str(db_path) == self.MEMORY_PATH
        self._shared_conn: Optional[sqlite3.Connection] = None

        # 创建数据目录
        if not self._in_memory:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        # 数据库连接锁
        self._db_lock = asyncio.Lock()

        self.logger.info(f"数据库初始化 - 路径: {self.db_path}")

    async def initialize(self) -> None:
        """
        初始化数据库表结构

        Raises:
            StoreError: 表结构创建失败
        """
        await self.run(self._create_tables, "initialize")
        self.logger.info("数据库表结构初始化完成")

    def _create_tables(self, conn: sqlite3.Connection) -> None:
        """创建数据库表结构"""
        cursor = conn.cursor()

        # 曲库表
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS songs (
                song_id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                artist TEXT NOT NULL,
                source TEXT NOT NULL DEFAULT '',
                filename TEXT NOT NULL DEFAULT '',
                duration INTEGER NOT NULL DEFAULT 0,
                plays INTEGER NOT NULL DEFAULT 0,
                last_played DATETIME,
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        cursor.execute('''
            CREATE INDEX IF NOT EXISTS idx_songs_title_artist
            ON songs(title, artist)
        ''')

        # 队列条目表，position 以 REAL 存储以便按数值排序
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS queue_items (
                queue_id TEXT NOT NULL,
                position REAL NOT NULL,
                song_id TEXT NOT NULL,
                title TEXT NOT NULL DEFAULT '',
                artist TEXT NOT NULL DEFAULT '',
                source TEXT NOT NULL DEFAULT '',
                filename TEXT NOT NULL DEFAULT '',
                duration INTEGER NOT NULL DEFAULT 0,
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (queue_id, position)
            )
        ''')

        # 当前播放指针，每个队列一行，与有序列表独立维护
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS queues (
                queue_id TEXT PRIMARY KEY,
                current_song_id TEXT,
                current_title TEXT,
                current_artist TEXT,
                current_source TEXT,
                current_filename TEXT,
                current_duration INTEGER,
                updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
            )
        ''')

    def _connect(self) -> sqlite3.Connection:
        """创建新的数据库连接，内存数据库返回共享连接"""
        if not self._in_memory:
            return sqlite3.connect(self.db_path, timeout=self.timeout)
        if self._shared_conn is None:
            # 操作在线程池中执行，由 _db_lock 保证同一时间只有一个线程使用
            self._shared_conn = sqlite3.connect(
                self.MEMORY_PATH, timeout=self.timeout, check_same_thread=False
            )
        return self._shared_conn

    def close(self) -> None:
        """关闭内存数据库的共享连接"""
        if self._shared_conn is not None:
            self._shared_conn.close()
            self._shared_conn = None

    async def run(
        self,
        operation: Callable[[sqlite3.Connection], T],
        operation_name: str,
        queue_id: Optional[str] = None,
        position: Optional[float] = None
    ) -> T:
        """
        在线程池中以单个事务执行数据库操作

        操作成功时提交，抛出任何异常时回滚，因此一次调用内的多条语句
        要么全部生效，要么全部不生效。

        Args:
            operation: 接收连接对象的同步函数
            operation_name: 操作名称（用于日志和错误上下文）
            queue_id: 相关队列ID（用于错误上下文）
            position: 相关位置（用于错误上下文）

        Returns:
            operation 的返回值

        Raises:
            ConflictError: 违反唯一性约束
            StoreError: 其他数据库错误
        """
        def execute():
            conn = self._connect()
            try:
                result = operation(conn)
                conn.commit()
                return result
            except BaseException:
                conn.rollback()
                raise
            finally:
                if not self._in_memory:
                    conn.close()

        async with self._db_lock:
            try:
                loop = asyncio.get_event_loop()
                return await loop.run_in_executor(None, execute)
            except KareokeError:
                raise
            except sqlite3.IntegrityError as e:
                self.logger.error(f"数据库约束冲突 - 操作: {operation_name}, 错误: {e}")
                raise ConflictError(
                    f"位置冲突: {e}",
                    queue_id=queue_id,
                    position=position,
                    operation=operation_name
                ) from e
            except sqlite3.Error as e:
                self.logger.error(f"数据库操作失败 - 操作: {operation_name}, 错误: {e}", exc_info=True)
                raise StoreError(
                    f"数据库操作失败: {e}",
                    queue_id=queue_id,
                    position=position,
                    operation=operation_name
                ) from e
