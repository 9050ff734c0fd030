"""Kareoke 应用组装 - 把配置、数据库、曲库、通知器和队列注册表连接在一起"""
import logging

from kareoke.catalog.song_catalog import SongCatalog
from kareoke.core.dependency_container import DependencyContainer
from kareoke.core.interfaces import IChangeNotifier
from kareoke.notifications.event_notifier import CompositeNotifier, EventNotifier
from kareoke.notifications.webhook_notifier import WebhookNotifier
from kareoke.queue.queue_engine import QueueEngine
from kareoke.queue.queue_registry import QueueRegistry
from kareoke.queue.sqlite_item_store import SQLiteOrderedItemStore
from kareoke.storage.database import KareokeDatabase
from kareoke.utils.config_manager import ConfigManager


class KareokeApp:
    """
    Kareoke 应用主类。

    不持有任何全局状态：每个实例拥有自己的数据库句柄，
    每个队列引擎拥有自己注入的有序条目存储。
    """

    def __init__(self, config: ConfigManager):
        """
        初始化应用

        Args:
            config: 配置管理器
        """
        self.logger = logging.getLogger("kareoke.app")
        self.config = config
        self.container = DependencyContainer()

        self._register_dependencies()
        self._init_core_modules()
        self._initialized = False

    def _register_dependencies(self) -> None:
        """注册依赖项到依赖注入容器"""
        def create_database() -> KareokeDatabase:
            return KareokeDatabase(
                db_path=self.config.get_database_path(),
                timeout=self.config.get_database_timeout()
            )

        def create_song_catalog(database: KareokeDatabase) -> SongCatalog:
            return SongCatalog(database)

        def create_event_notifier() -> EventNotifier:
            return EventNotifier()

        def create_notifier(event_notifier: EventNotifier) -> IChangeNotifier:
            webhook_url = self.config.get_webhook_url()
            if not webhook_url:
                return event_notifier
            self.logger.info(f"启用 Webhook 通知: {webhook_url}")
            return CompositeNotifier([
                event_notifier,
                WebhookNotifier(webhook_url, timeout=self.config.get_notifier_timeout())
            ])

        def create_queue_registry(
            database: KareokeDatabase,
            song_catalog: SongCatalog,
            notifier: IChangeNotifier
        ) -> QueueRegistry:
            return QueueRegistry(
                store_factory=lambda queue_id: SQLiteOrderedItemStore(database, queue_id),
                song_catalog=song_catalog,
                notifier=notifier,
                config_manager=self.config
            )

        self.container.register_singleton("database", create_database)
        self.container.register_singleton("song_catalog", create_song_catalog, ["database"])
        self.container.register_singleton("event_notifier", create_event_notifier)
        self.container.register_singleton("notifier", create_notifier, ["event_notifier"])
        self.container.register_singleton(
            "queue_registry", create_queue_registry, ["database", "song_catalog", "notifier"]
        )

        self.container.validate_dependencies()
        self.logger.debug("📝 依赖项注册完成")

    def _init_core_modules(self) -> None:
        """解析核心组件"""
        self.database: KareokeDatabase = self.container.resolve("database")
        self.song_catalog: SongCatalog = self.container.resolve("song_catalog")
        self.events: EventNotifier = self.container.resolve("event_notifier")
        self.queues: QueueRegistry = self.container.resolve("queue_registry")
        self.logger.debug("✅ 核心模块初始化完成")

    async def initialize(self) -> None:
        """初始化数据库表结构（可重复调用）"""
        if self._initialized:
            return
        await self.database.initialize()
        self._initialized = True
        self.logger.info("✅ Kareoke 初始化完成")

    def get_queue(self, queue_id: str) -> QueueEngine:
        """
        获取指定房间的队列引擎

        Args:
            queue_id: 队列（房间）ID

        Returns:
            队列引擎
        """
        return self.queues.get_engine(queue_id)
