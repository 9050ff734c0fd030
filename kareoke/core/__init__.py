"""
核心模块 - 接口定义和错误类型
"""

from .errors import ConflictError, KareokeError, NotFoundError, StoreError, ValidationError
from .interfaces import IChangeNotifier, IOrderedItemStore, ISongCatalog, QueueItem, SongInfo

__all__ = [
    "KareokeError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "StoreError",
    "IChangeNotifier",
    "IOrderedItemStore",
    "ISongCatalog",
    "QueueItem",
    "SongInfo",
]
