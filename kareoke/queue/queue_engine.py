"""
队列引擎 - 基于分数位置的有序点歌队列核心逻辑

负责入队（队首/队尾/指定条目之后）、出队、查看、清空、删除和移动
（上移/下移/移到队首/移到队尾/移到指定条目之后）。

位置分配规则：新位置取两个相邻位置的中点；在开放的一端，
比当前极值多走 1。这样插入或移动一个条目时无需改写其余条目。
"""

import asyncio
import logging
import math
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from kareoke.core.errors import NotFoundError, ValidationError
from kareoke.core.interfaces import (
    IChangeNotifier,
    IOrderedItemStore,
    ISongCatalog,
    QueueItem,
    SongInfo,
)


class EnqueueMethod(str, Enum):
    """入队方式"""
    FRONT = "front"
    AFTER = "after"
    END = "end"


class MoveMethod(str, Enum):
    """移动方式"""
    UP = "up"
    DOWN = "down"
    FRONT = "front"
    END = "end"
    AFTER = "after"


SongRef = Union[SongInfo, str]


class QueueEngine:
    """
    队列引擎实现

    每个实例绑定一个注入的有序条目存储（即一个队列）。所有修改操作在
    实例级 asyncio.Lock 内完成，保证读取相邻位置、计算新位置、写回这一序列
    对共享同一引擎的调用方是原子的。引擎本身不缓存队列状态，每次操作都重新
    读取存储。
    """

    DEFAULT_MIN_POSITION_GAP = 1e-9

    def __init__(
        self,
        store: IOrderedItemStore,
        song_catalog: Optional[ISongCatalog] = None,
        notifier: Optional[IChangeNotifier] = None,
        config_manager=None
    ):
        """
        初始化队列引擎

        Args:
            store: 绑定到单个队列的有序条目存储
            song_catalog: 曲库（可选），入队时用于校验歌曲是否存在
            notifier: 变更通知器（可选）
            config_manager: 配置管理器（可选）
        """
        self.queue_id = store.queue_id
        self.logger = logging.getLogger(f"kareoke.queue.engine.{self.queue_id}")
        self._store = store
        self._song_catalog = song_catalog
        self._notifier = notifier
        self._config_manager = config_manager
        self._min_position_gap = self._get_min_position_gap()

        # 修改操作锁
        self._lock = asyncio.Lock()

        self.logger.debug(f"队列引擎初始化完成 - 队列 {self.queue_id}")

    def _get_min_position_gap(self) -> float:
        """
        获取触发重排的最小位置间隔

        Returns:
            最小位置间隔，默认为 1e-9
        """
        if self._config_manager is None:
            return self.DEFAULT_MIN_POSITION_GAP
        try:
            return self._config_manager.get_min_position_gap()
        except Exception as e:
            self.logger.warning(f"获取最小位置间隔配置失败: {e}，使用默认值")
            return self.DEFAULT_MIN_POSITION_GAP

    # ------------------------------------------------------------------
    # 位置计算
    # ------------------------------------------------------------------

    @staticmethod
    def _compute_new_position(lower_bound: float, upper_bound: float) -> float:
        return (lower_bound + upper_bound) / 2

    def _gap_exhausted(self, lower_bound: float, upper_bound: float) -> bool:
        """两个相邻位置之间是否已无法可靠地再取中点"""
        midpoint = self._compute_new_position(lower_bound, upper_bound)
        if not lower_bound < midpoint < upper_bound:
            return True
        return upper_bound - lower_bound < self._min_position_gap

    async def _position_between(
        self,
        lower_bound: float,
        upper_bound: float,
        tracked: Optional[float] = None
    ) -> Tuple[float, Optional[float]]:
        """
        计算 lower_bound 与 upper_bound 之间的新位置

        间隔耗尽时先把队列重排为 1..N，再基于新位置计算。upper_bound 必须是
        已存储的位置；lower_bound 是它在队列中的前驱（或任意更小的锚点）。

        Args:
            lower_bound: 下界
            upper_bound: 上界（已存储）
            tracked: 需要随重排一起换算的位置（例如被移动的条目）

        Returns:
            (新位置, 换算后的 tracked 位置)
        """
        if not self._gap_exhausted(lower_bound, upper_bound):
            return self._compute_new_position(lower_bound, upper_bound), tracked

        self.logger.warning(
            f"位置间隔耗尽，重排队列 - 下界: {lower_bound!r}, 上界: {upper_bound!r}"
        )
        mapping = await self._store.renumber()
        new_upper = mapping[upper_bound]
        if tracked is not None:
            tracked = mapping.get(tracked, tracked)
        # 重排后位置连续，上界的前驱（或开放端锚点）恰好是 new_upper - 1
        return self._compute_new_position(new_upper - 1, new_upper), tracked

    async def _end_position(self) -> float:
        if await self._store.count() == 0:
            return 1.0
        return await self._store.last_position() + 1

    async def _front_position(self) -> float:
        if await self._store.count() == 0:
            return 1.0
        return await self._store.first_position() - 1

    # ------------------------------------------------------------------
    # 校验
    # ------------------------------------------------------------------

    def _validate_position(self, position, operation: str, name: str = "position") -> float:
        """
        校验位置参数

        Args:
            position: 待校验的位置
            operation: 操作名称
            name: 参数名称（用于错误信息）

        Returns:
            浮点数形式的位置

        Raises:
            ValidationError: 位置缺失或不是有限数值
        """
        if isinstance(position, bool) or not isinstance(position, (int, float)):
            raise ValidationError(
                f"{name} 必须是数值",
                queue_id=self.queue_id,
                operation=operation
            )
        if not math.isfinite(position):
            raise ValidationError(
                f"{name} 必须是有限数值",
                queue_id=self.queue_id,
                operation=operation
            )
        return float(position)

    async def _resolve_song(self, song: Optional[SongRef], operation: str) -> SongInfo:
        """
        校验并解析入队歌曲

        缺少歌曲ID时在访问任何存储之前抛出 ValidationError。配置了曲库时，
        以曲库中的展示信息为准。

        Raises:
            ValidationError: 缺少歌曲ID
            NotFoundError: 曲库中不存在该歌曲
        """
        if isinstance(song, str):
            song = SongInfo(song_id=song)
        if song is None or not song.song_id:
            raise ValidationError(
                "缺少歌曲ID",
                queue_id=self.queue_id,
                operation=operation
            )

        if self._song_catalog is None:
            return song

        catalog_song = await self._song_catalog.get_song_by_id(song.song_id)
        if catalog_song is None:
            self.logger.warning(f"曲库中不存在歌曲: {song.song_id}")
            raise NotFoundError(
                f"歌曲不存在: {song.song_id}",
                queue_id=self.queue_id,
                operation=operation
            )
        return catalog_song

    async def _require_item(self, position: float, operation: str) -> QueueItem:
        item = await self._store.get_item(position)
        if item is None:
            raise NotFoundError(
                "指定位置没有条目",
                queue_id=self.queue_id,
                position=position,
                operation=operation
            )
        return item

    # ------------------------------------------------------------------
    # 通知
    # ------------------------------------------------------------------

    async def _emit_queue_changed(self) -> None:
        """发送队列变更通知，失败只记录日志"""
        if self._notifier is None:
            return
        try:
            items = await self._store.top_n()
            await self._notifier.notify_queue_changed(self.queue_id, items)
            self.logger.debug(f"队列变更通知已发送 - 条目数: {len(items)}")
        except Exception as e:
            self.logger.warning(f"发送队列变更通知失败: {e}")

    async def _emit_playing_changed(self, song: Optional[SongInfo]) -> None:
        """发送当前播放变更通知，失败只记录日志"""
        if self._notifier is None:
            return
        try:
            await self._notifier.notify_playing_changed(self.queue_id, song)
        except Exception as e:
            self.logger.warning(f"发送播放状态变更通知失败: {e}")

    # ------------------------------------------------------------------
    # 读取
    # ------------------------------------------------------------------

    async def peek(self) -> Optional[QueueItem]:
        """
        查看队首条目但不移除

        Returns:
            队首条目，空队列时返回 None
        """
        items = await self._store.top_n(1)
        result = items[0] if items else None
        self.logger.debug(f"查看队首 - 有条目: {result is not None}")
        return result

    async def get_items(self, limit: Optional[int] = None) -> List[QueueItem]:
        """
        按顺序获取队列条目

        Args:
            limit: 最多返回的条目数，为空或不大于 0 时返回全部

        Returns:
            按位置升序排列的条目列表
        """
        items = await self._store.top_n(limit)
        self.logger.debug(f"获取队列条目 - 限制: {limit}, 数量: {len(items)}")
        return items

    # ------------------------------------------------------------------
    # 入队 / 出队
    # ------------------------------------------------------------------

    async def enqueue_at_end(self, song: SongRef) -> QueueItem:
        """
        添加歌曲到队尾

        Args:
            song: 歌曲信息或歌曲ID

        Returns:
            新创建的队列条目
        """
        song = await self._resolve_song(song, "enqueue_at_end")
        async with self._lock:
            position = await self._end_position()
            item = await self._store.insert(position, song)
        self.logger.info(f"歌曲已添加到队尾 - 歌曲: {song.song_id}, 位置: {position}")
        await self._emit_queue_changed()
        return item

    async def enqueue_at_front(self, song: SongRef) -> QueueItem:
        """
        添加歌曲到队首

        Args:
            song: 歌曲信息或歌曲ID

        Returns:
            新创建的队列条目
        """
        song = await self._resolve_song(song, "enqueue_at_front")
        async with self._lock:
            position = await self._front_position()
            item = await self._store.insert(position, song)
        self.logger.info(f"歌曲已添加到队首 - 歌曲: {song.song_id}, 位置: {position}")
        await self._emit_queue_changed()
        return item

    async def enqueue_after(self, after_position: float, song: SongRef) -> QueueItem:
        """
        添加歌曲到指定位置之后

        指定位置之后没有条目时等同于添加到队尾。

        Args:
            after_position: 锚点位置
            song: 歌曲信息或歌曲ID

        Returns:
            新创建的队列条目
        """
        after_position = self._validate_position(after_position, "enqueue_after", "after_position")
        song = await self._resolve_song(song, "enqueue_after")
        async with self._lock:
            upper_bound = await self._store.next_position_after(after_position)
            if upper_bound is None:
                position = await self._end_position()
            else:
                position, _ = await self._position_between(after_position, upper_bound)
            item = await self._store.insert(position, song)
        self.logger.info(
            f"歌曲已添加到位置之后 - 歌曲: {song.song_id}, 锚点: {after_position}, 新位置: {position}"
        )
        await self._emit_queue_changed()
        return item

    async def enqueue(
        self,
        song: SongRef,
        method: Union[EnqueueMethod, str] = EnqueueMethod.END,
        after_position: Optional[float] = None
    ) -> QueueItem:
        """
        按指定方式入队

        Args:
            song: 歌曲信息或歌曲ID
            method: 入队方式 (front / after / end)
            after_position: method 为 after 时的锚点位置

        Returns:
            新创建的队列条目

        Raises:
            ValidationError: 入队方式无效，或 after 方式缺少锚点位置
        """
        method = self._parse_method(EnqueueMethod, method, "enqueue")
        if method is EnqueueMethod.FRONT:
            return await self.enqueue_at_front(song)
        if method is EnqueueMethod.AFTER:
            if after_position is None:
                raise ValidationError(
                    "after 方式需要 after_position",
                    queue_id=self.queue_id,
                    operation="enqueue"
                )
            return await self.enqueue_after(after_position, song)
        return await self.enqueue_at_end(song)

    async def dequeue(self) -> Optional[QueueItem]:
        """
        取出并移除队首条目

        Returns:
            被移除的条目，空队列时返回 None
        """
        async with self._lock:
            head = await self._dequeue_locked()
        if head is None:
            return None
        await self._emit_queue_changed()
        return head

    async def _dequeue_locked(self) -> Optional[QueueItem]:
        items = await self._store.top_n(1)
        if not items:
            self.logger.debug("队列为空，无条目可出队")
            return None
        head = items[0]
        await self._store.delete_at(head.position)
        self.logger.info(f"条目已出队 - 歌曲: {head.song_id}, 位置: {head.position}")
        return head

    async def remove_at(self, position: float) -> None:
        """
        移除指定位置的条目

        Raises:
            NotFoundError: 指定位置没有条目
        """
        position = self._validate_position(position, "remove_at")
        async with self._lock:
            await self._store.delete_at(position)
        self.logger.info(f"条目已移除 - 位置: {position}")
        await self._emit_queue_changed()

    async def clear(self) -> None:
        """清空队列"""
        async with self._lock:
            await self._store.clear()
        self.logger.info("队列已清空")
        await self._emit_queue_changed()

    # ------------------------------------------------------------------
    # 移动
    # ------------------------------------------------------------------

    async def _move_after_locked(
        self,
        position: float,
        after_position: float,
        operation: str
    ) -> Optional[float]:
        """在已持有锁的情况下把条目移到 after_position 之后，返回新位置，无变化时返回 None"""
        await self._require_item(position, operation)
        if after_position == position:
            self.logger.debug(f"条目已在目标位置 - 位置: {position}")
            return None

        upper_bound = await self._store.next_position_after(after_position)
        if upper_bound == position:
            self.logger.debug(f"条目已在目标位置 - 位置: {position}, 锚点: {after_position}")
            return None

        if upper_bound is None:
            new_position = float(math.ceil(after_position + 1))
        else:
            new_position, position = await self._position_between(
                after_position, upper_bound, tracked=position
            )

        await self._store.update_position(position, new_position)
        return new_position

    async def _move_to_front_locked(self, position: float, operation: str) -> Optional[float]:
        await self._require_item(position, operation)
        first_position = await self._store.first_position()
        if first_position == position:
            self.logger.debug(f"条目已在队首 - 位置: {position}")
            return None
        new_position = float(math.floor(first_position - 1))
        await self._store.update_position(position, new_position)
        return new_position

    async def _move_to_end_locked(self, position: float, operation: str) -> Optional[float]:
        await self._require_item(position, operation)
        last_position = await self._store.last_position()
        if last_position == position:
            self.logger.debug(f"条目已在队尾 - 位置: {position}")
            return None
        new_position = float(math.ceil(last_position + 1))
        await self._store.update_position(position, new_position)
        return new_position

    async def _finish_move(self, operation: str, position: float, new_position: Optional[float]) -> Optional[float]:
        if new_position is None:
            return None
        self.logger.info(f"条目移动成功 - 操作: {operation}, {position} -> {new_position}")
        await self._emit_queue_changed()
        return new_position

    async def move_after(self, position: float, after_position: float) -> Optional[float]:
        """
        把条目移到指定位置之后

        Args:
            position: 要移动的条目位置
            after_position: 锚点位置

        Returns:
            条目的新位置，条目已在目标位置时返回 None

        Raises:
            NotFoundError: 要移动的条目不存在
        """
        position = self._validate_position(position, "move_after")
        after_position = self._validate_position(after_position, "move_after", "after_position")
        async with self._lock:
            new_position = await self._move_after_locked(position, after_position, "move_after")
        return await self._finish_move("move_after", position, new_position)

    async def move_to_front(self, position: float) -> Optional[float]:
        """
        把条目移到队首

        新位置取整，减缓浮点精度衰减。

        Returns:
            条目的新位置，已在队首时返回 None
        """
        position = self._validate_position(position, "move_to_front")
        async with self._lock:
            new_position = await self._move_to_front_locked(position, "move_to_front")
        return await self._finish_move("move_to_front", position, new_position)

    async def move_to_end(self, position: float) -> Optional[float]:
        """
        把条目移到队尾

        Returns:
            条目的新位置，已在队尾时返回 None
        """
        position = self._validate_position(position, "move_to_end")
        async with self._lock:
            new_position = await self._move_to_end_locked(position, "move_to_end")
        return await self._finish_move("move_to_end", position, new_position)

    async def move_up(self, position: float) -> Optional[float]:
        """
        把条目上移一位

        找到前驱之前的那个条目并移到它之后；不存在时移到队首。

        Returns:
            条目的新位置，已在队首时返回 None
        """
        position = self._validate_position(position, "move_up")
        async with self._lock:
            await self._require_item(position, "move_up")
            before_predecessor = await self._store.position_before_predecessor(position)
            if before_predecessor is None:
                new_position = await self._move_to_front_locked(position, "move_up")
            else:
                new_position = await self._move_after_locked(position, before_predecessor, "move_up")
        return await self._finish_move("move_up", position, new_position)

    async def move_down(self, position: float) -> Optional[float]:
        """
        把条目下移一位

        Returns:
            条目的新位置，已在队尾时返回 None
        """
        position = self._validate_position(position, "move_down")
        async with self._lock:
            await self._require_item(position, "move_down")
            next_position = await self._store.next_position_after(position)
            if next_position is None:
                self.logger.debug(f"条目已在队尾 - 位置: {position}")
                new_position = None
            else:
                new_position = await self._move_after_locked(position, next_position, "move_down")
        return await self._finish_move("move_down", position, new_position)

    async def move(
        self,
        position: float,
        method: Union[MoveMethod, str],
        after_position: Optional[float] = None
    ) -> Optional[float]:
        """
        按指定方式移动条目

        Args:
            position: 要移动的条目位置
            method: 移动方式 (up / down / front / end / after)
            after_position: method 为 after 时的锚点位置

        Returns:
            条目的新位置，无变化时返回 None
        """
        method = self._parse_method(MoveMethod, method, "move")
        if method is MoveMethod.UP:
            return await self.move_up(position)
        if method is MoveMethod.DOWN:
            return await self.move_down(position)
        if method is MoveMethod.FRONT:
            return await self.move_to_front(position)
        if method is MoveMethod.AFTER:
            if after_position is None:
                raise ValidationError(
                    "after 方式需要 after_position",
                    queue_id=self.queue_id,
                    position=position,
                    operation="move"
                )
            return await self.move_after(position, after_position)
        return await self.move_to_end(position)

    def _parse_method(self, enum_type, method, operation: str):
        try:
            return enum_type(method)
        except ValueError:
            raise ValidationError(
                f"无效的方式: {method}",
                queue_id=self.queue_id,
                operation=operation
            ) from None

    # ------------------------------------------------------------------
    # 当前播放
    # ------------------------------------------------------------------

    async def get_current_track(self) -> Optional[SongInfo]:
        """获取当前播放的歌曲"""
        return await self._store.get_current_track()

    async def set_current_track(self, song: SongRef) -> SongInfo:
        """
        设置当前播放的歌曲

        Args:
            song: 歌曲信息或歌曲ID

        Returns:
            实际设置的歌曲信息
        """
        song = await self._resolve_song(song, "set_current_track")
        async with self._lock:
            await self._store.set_current_track(song)
        self.logger.info(f"当前播放已设置 - 歌曲: {song.song_id}")
        await self._record_play(song)
        await self._emit_playing_changed(song)
        return song

    async def clear_current_track(self) -> None:
        """清除当前播放的歌曲"""
        async with self._lock:
            await self._store.clear_current_track()
        self.logger.info("当前播放已清除")
        await self._emit_playing_changed(None)

    async def play_next(self) -> Optional[QueueItem]:
        """
        取出队首条目并设为当前播放

        出队和设置当前播放在同一次加锁内完成。

        Returns:
            被取出的条目，队列为空时清除当前播放并返回 None
        """
        async with self._lock:
            head = await self._dequeue_locked()
            if head is None:
                await self._store.clear_current_track()
            else:
                await self._store.set_current_track(head.song)

        if head is None:
            self.logger.info("队列为空，当前播放已清除")
            await self._emit_playing_changed(None)
            return None

        self.logger.info(f"开始播放下一首 - 歌曲: {head.song_id}")
        await self._emit_queue_changed()
        await self._record_play(head.song)
        await self._emit_playing_changed(head.song)
        return head

    async def _record_play(self, song: SongInfo) -> None:
        """记录播放次数，失败不影响队列操作"""
        if self._song_catalog is None:
            return
        try:
            await self._song_catalog.increment_play_count(song.song_id)
        except Exception as e:
            self.logger.error(f"记录播放次数失败: {e}", exc_info=True)

    async def get_queue_info(self) -> Dict[str, object]:
        """
        获取队列信息

        Returns:
            包含条目数、总时长和当前播放的字典
        """
        items = await self._store.top_n()
        current_song = await self._store.get_current_track()
        return {
            'queue_id': self.queue_id,
            'queue_length': len(items),
            'total_duration': sum(item.song.duration for item in items),
            'current_song': current_song.to_dict() if current_song else None,
            'is_empty': not items,
        }
