"""
曲库模块 - 歌曲元数据的存储与查询
"""

from .song_catalog import CatalogEntry, SongCatalog

__all__ = [
    "CatalogEntry",
    "SongCatalog"
]
