"""
队列模块 - 处理点歌队列的有序存储和位置分配

该模块负责队列的所有操作，包括入队、出队、移动和清空，以及条目位置的持久化。
遵循单一职责原则：存储只负责有序读写，引擎负责位置分配规则。
"""

from .queue_engine import EnqueueMethod, MoveMethod, QueueEngine
from .queue_registry import QueueRegistry
from .memory_item_store import InMemoryOrderedItemStore
from .sqlite_item_store import SQLiteOrderedItemStore

__all__ = [
    "QueueEngine",
    "QueueRegistry",
    "EnqueueMethod",
    "MoveMethod",
    "InMemoryOrderedItemStore",
    "SQLiteOrderedItemStore"
]
