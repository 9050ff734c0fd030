"""
核心接口定义 - 定义队列引擎与外部协作者之间的抽象接口

提供依赖倒置的基础：队列引擎只依赖这里声明的存储、曲库和通知接口，
具体实现（SQLite、内存、Webhook 等）在构造时注入。
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass
class SongInfo:
    """
    歌曲信息数据类

    队列条目引用的歌曲及其冗余的展示信息。队列引擎把它当作不透明数据，
    只负责存储和返回，不解释其内容。
    """
    song_id: str
    title: str = ""
    artist: str = ""
    source: str = ""
    filename: str = ""
    duration: int = 0  # 秒

    def format_duration(self) -> str:
        """
        格式化时长为可读字符串

        Returns:
            格式化的时长字符串 (例: "3:45" 或 "1:23:45")
        """
        if self.duration < 3600:
            minutes, seconds = divmod(self.duration, 60)
            return f"{minutes}:{seconds:02d}"
        hours, remainder = divmod(self.duration, 3600)
        minutes, seconds = divmod(remainder, 60)
        return f"{hours}:{minutes:02d}:{seconds:02d}"

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式（用于序列化和通知）"""
        return {
            'song_id': self.song_id,
            'title': self.title,
            'artist': self.artist,
            'source': self.source,
            'filename': self.filename,
            'duration': self.duration,
        }

    def __str__(self) -> str:
        return f"{self.title} - {self.artist} ({self.format_duration()})"


@dataclass
class QueueItem:
    """
    队列条目数据类

    每个点歌请求对应一行。position 是有理数排序键，同一队列内唯一，
    队列顺序完全由 position 升序决定。
    """
    queue_id: str
    position: float
    song: SongInfo

    @property
    def song_id(self) -> str:
        return self.song.song_id

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式（用于序列化和通知）"""
        data = {'queue_id': self.queue_id, 'position': self.position}
        data.update(self.song.to_dict())
        return data

    def __str__(self) -> str:
        return f"[{self.position:g}] {self.song}"


class IOrderedItemStore(ABC):
    """
    有序条目存储接口 - 单个队列的纯有序存储

    所有操作都限定在构造时绑定的 queue_id 内，不包含任何业务规则。
    底层持久化失败统一以 StoreError 抛出。
    """

    queue_id: str

    @abstractmethod
    async def insert(self, position: float, song: SongInfo) -> QueueItem:
        """在指定位置插入条目，位置已存在时抛出 ConflictError"""
        pass

    @abstractmethod
    async def delete_at(self, position: float) -> None:
        """删除指定位置的条目，位置不存在时抛出 NotFoundError"""
        pass

    @abstractmethod
    async def get_item(self, position: float) -> Optional[QueueItem]:
        """获取指定位置的条目"""
        pass

    @abstractmethod
    async def first_position(self) -> float:
        """最小位置，空队列返回 1"""
        pass

    @abstractmethod
    async def last_position(self) -> float:
        """最大位置，空队列返回 0"""
        pass

    @abstractmethod
    async def next_position_after(self, position: float) -> Optional[float]:
        """严格大于 position 的最小位置，不存在时返回 None"""
        pass

    @abstractmethod
    async def position_before_predecessor(self, position: float) -> Optional[float]:
        """position 前驱之前的那个位置（上移操作的锚点），不存在时返回 None"""
        pass

    @abstractmethod
    async def top_n(self, n: Optional[int] = None) -> List[QueueItem]:
        """按位置升序返回前 n 个条目，n 为空或不大于 0 时返回全部"""
        pass

    @abstractmethod
    async def count(self) -> int:
        """队列中的条目数量"""
        pass

    @abstractmethod
    async def update_position(self, old_position: float, new_position: float) -> None:
        """原子地移动单个条目，旧位置不存在时抛出 NotFoundError"""
        pass

    @abstractmethod
    async def renumber(self) -> Dict[float, float]:
        """按当前顺序把位置重排为 1..N，返回旧位置到新位置的映射"""
        pass

    @abstractmethod
    async def clear(self) -> None:
        """删除队列中的所有条目"""
        pass

    @abstractmethod
    async def get_current_track(self) -> Optional[SongInfo]:
        """获取当前播放的歌曲"""
        pass

    @abstractmethod
    async def set_current_track(self, song: SongInfo) -> None:
        """设置当前播放的歌曲"""
        pass

    @abstractmethod
    async def clear_current_track(self) -> None:
        """清除当前播放的歌曲"""
        pass


class ISongCatalog(ABC):
    """曲库接口 - 点歌时校验歌曲是否存在并提供展示信息"""

    @abstractmethod
    async def get_song_by_id(self, song_id: str) -> Optional[SongInfo]:
        """根据ID获取歌曲，不存在时返回 None"""
        pass

    @abstractmethod
    async def increment_play_count(self, song_id: str) -> None:
        """增加歌曲播放次数"""
        pass


class IChangeNotifier(ABC):
    """变更通知接口 - 发后即忘的队列变更信号"""

    @abstractmethod
    async def notify_queue_changed(self, queue_id: str, items: List[QueueItem]) -> None:
        """队列内容或顺序发生变化"""
        pass

    @abstractmethod
    async def notify_playing_changed(self, queue_id: str, song: Optional[SongInfo]) -> None:
        """当前播放歌曲发生变化"""
        pass
