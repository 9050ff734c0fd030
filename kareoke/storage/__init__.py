"""
存储模块 - SQLite 数据库连接与表结构管理
"""

from .database import KareokeDatabase

__all__ = [
    "KareokeDatabase"
]
