"""
队列注册表 - 按队列ID管理队列引擎实例

同一进程内对同一队列的所有调用共享一个引擎，从而共享同一把修改锁。
"""

import logging
from typing import Callable, Dict, List, Optional

from kareoke.core.errors import ValidationError
from kareoke.core.interfaces import IChangeNotifier, IOrderedItemStore, ISongCatalog
from .queue_engine import QueueEngine


class QueueRegistry:
    """队列引擎注册表"""

    def __init__(
        self,
        store_factory: Callable[[str], IOrderedItemStore],
        song_catalog: Optional[ISongCatalog] = None,
        notifier: Optional[IChangeNotifier] = None,
        config_manager=None
    ):
        """
        初始化队列注册表

        Args:
            store_factory: 根据队列ID创建有序条目存储的工厂函数
            song_catalog: 曲库（可选）
            notifier: 变更通知器（可选）
            config_manager: 配置管理器（可选）
        """
        self.logger = logging.getLogger("kareoke.queue.registry")
        self._store_factory = store_factory
        self._song_catalog = song_catalog
        self._notifier = notifier
        self._config_manager = config_manager
        self._engines: Dict[str, QueueEngine] = {}

    def get_engine(self, queue_id: str) -> QueueEngine:
        """
        获取指定队列的引擎，不存在时创建

        Args:
            queue_id: 队列ID

        Returns:
            队列引擎

        Raises:
            ValidationError: 队列ID为空
        """
        if not queue_id:
            raise ValidationError("队列ID不能为空", operation="get_engine")

        engine = self._engines.get(queue_id)
        if engine is None:
            engine = QueueEngine(
                store=self._store_factory(queue_id),
                song_catalog=self._song_catalog,
                notifier=self._notifier,
                config_manager=self._config_manager
            )
            self._engines[queue_id] = engine
            self.logger.debug(f"创建队列引擎 - 队列 {queue_id}")
        return engine

    def get_active_queue_ids(self) -> List[str]:
        """获取已创建引擎的队列ID列表"""
        return list(self._engines)

    def remove_engine(self, queue_id: str) -> bool:
        """
        移除指定队列的引擎（不影响存储中的数据）

        Returns:
            是否存在并已移除
        """
        removed = self._engines.pop(queue_id, None) is not None
        if removed:
            self.logger.debug(f"移除队列引擎 - 队列 {queue_id}")
        return removed
