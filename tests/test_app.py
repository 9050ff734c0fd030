"""
应用组装与队列注册表测试
"""

import pytest
import yaml

from kareoke.app import KareokeApp
from kareoke.core.errors import ValidationError
from kareoke.notifications.event_notifier import QUEUE_CHANGED, CompositeNotifier, EventNotifier
from kareoke.queue.memory_item_store import InMemoryOrderedItemStore
from kareoke.queue.queue_registry import QueueRegistry
from kareoke.utils.config_manager import ConfigManager


def _config(tmp_path, **notifier):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(yaml.safe_dump({
        'database': {'path': str(tmp_path / "data" / "kareoke.db")},
        'notifier': notifier,
    }), encoding='utf-8')
    return ConfigManager(str(config_path))


def test_registry_reuses_engines():
    """同一队列ID返回同一个引擎"""
    registry = QueueRegistry(InMemoryOrderedItemStore)

    engine = registry.get_engine("room-1")

    assert registry.get_engine("room-1") is engine
    assert registry.get_engine("room-2") is not engine
    assert registry.get_active_queue_ids() == ["room-1", "room-2"]

    assert registry.remove_engine("room-1")
    assert not registry.remove_engine("room-1")
    assert registry.get_engine("room-1") is not engine

    with pytest.raises(ValidationError):
        registry.get_engine("")


@pytest.mark.asyncio
async def test_app_wires_queue_to_catalog_and_events(tmp_path):
    app = KareokeApp(_config(tmp_path))
    await app.initialize()
    await app.initialize()

    assert isinstance(app.queues._notifier, EventNotifier)

    received = []
    app.events.add_listener(QUEUE_CHANGED, lambda queue_id, items: received.append(queue_id))
    song = await app.song_catalog.add_song("Title", "Artist")

    engine = app.get_queue("room-1")
    item = await engine.enqueue_at_end(song.song_id)

    assert item.song.title == "Title"
    assert received == ["room-1"]
    assert app.get_queue("room-1") is engine
    assert (tmp_path / "data" / "kareoke.db").exists()


def test_app_enables_webhook_when_configured(tmp_path):
    app = KareokeApp(_config(tmp_path, webhook_url="http://localhost/hook"))

    assert isinstance(app.queues._notifier, CompositeNotifier)
