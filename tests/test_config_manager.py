"""
配置管理器测试
"""

import os
import shutil
import tempfile
import unittest

import yaml

from kareoke.utils.config_manager import ConfigManager


class TestConfigManager(unittest.TestCase):
    """配置管理器测试类"""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.config_path = os.path.join(self.temp_dir, "config.yaml")

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _write_config(self, data):
        with open(self.config_path, 'w', encoding='utf-8') as config_file:
            yaml.safe_dump(data, config_file)
        return ConfigManager(self.config_path)

    def test_missing_config_file(self):
        with self.assertRaises(FileNotFoundError):
            ConfigManager(self.config_path)

    def test_invalid_yaml(self):
        with open(self.config_path, 'w', encoding='utf-8') as config_file:
            config_file.write("database: [unclosed")

        with self.assertRaises(yaml.YAMLError):
            ConfigManager(self.config_path)

    def test_defaults_for_empty_file(self):
        """空配置文件使用默认值"""
        config = self._write_config({})

        self.assertEqual(config.get_database_path(), "data/kareoke.db")
        self.assertEqual(config.get_database_timeout(), 5.0)
        self.assertEqual(config.get_min_position_gap(), 1e-9)
        self.assertIsNone(config.get_webhook_url())
        self.assertEqual(config.get_notifier_timeout(), 5.0)
        self.assertEqual(config.get_log_level(), "INFO")
        self.assertIsNone(config.get_log_file())
        self.assertEqual(config.get_log_max_size(), 10485760)
        self.assertEqual(config.get_log_backup_count(), 5)

    def test_values_from_file(self):
        config = self._write_config({
            'database': {'path': '/tmp/k.db', 'timeout': 2},
            'queue': {'min_position_gap': 0.001},
            'notifier': {'webhook_url': ' http://localhost/hook ', 'timeout': 1.5},
            'logging': {'level': 'DEBUG', 'file': 'logs/k.log'},
        })

        self.assertEqual(config.get_database_path(), '/tmp/k.db')
        self.assertEqual(config.get_database_timeout(), 2.0)
        self.assertEqual(config.get_min_position_gap(), 0.001)
        self.assertEqual(config.get_webhook_url(), 'http://localhost/hook')
        self.assertEqual(config.get_notifier_timeout(), 1.5)
        self.assertEqual(config.get_log_level(), 'DEBUG')
        self.assertEqual(config.get_log_file(), 'logs/k.log')
        self.assertEqual(config.get('database.path'), '/tmp/k.db')
        self.assertEqual(config.get('database.missing', 'fallback'), 'fallback')

    def test_invalid_numbers_fall_back(self):
        """非正数或非数值的配置回退到默认值"""
        config = self._write_config({
            'database': {'timeout': -1},
            'queue': {'min_position_gap': 'tiny'},
            'notifier': {'webhook_url': '   ', 'timeout': True},
        })

        self.assertEqual(config.get_database_timeout(), 5.0)
        self.assertEqual(config.get_min_position_gap(), 1e-9)
        self.assertIsNone(config.get_webhook_url())
        self.assertEqual(config.get_notifier_timeout(), 5.0)


if __name__ == '__main__':
    unittest.main()
