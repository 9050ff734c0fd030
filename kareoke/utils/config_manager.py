"""Configuration manager for Kareoke."""
import logging
import os
from typing import Any, Dict, Optional
import yaml

class ConfigManager:
    """
    Configuration manager for Kareoke.

    Handles loading and accessing configuration values from the config file.
    """

    def __init__(self, config_path: str = "config/config.yaml"):
        """
        Initialize the ConfigManager.

        Args:
            config_path: Path to the configuration file

        Raises:
            FileNotFoundError: If the configuration file does not exist
            yaml.YAMLError: If the configuration file is not valid YAML
        """
        self.logger = logging.getLogger("kareoke.config")
        self.config_path = config_path
        self.config: Dict[str, Any] = {}

        self._load_config()

    def _load_config(self) -> None:
        """
        Load the configuration from the config file.

        Raises:
            FileNotFoundError: If the configuration file does not exist
            yaml.YAMLError: If the configuration file is not valid YAML
        """
        if not os.path.exists(self.config_path):
            example_path = f"{self.config_path}.example"
            if os.path.exists(example_path):
                self.logger.error(
                    f"Configuration file {self.config_path} not found. "
                    f"Please copy {example_path} to {self.config_path} and update it."
                )
            else:
                self.logger.error(f"Configuration file {self.config_path} not found.")
            raise FileNotFoundError(f"Configuration file {self.config_path} not found")

        try:
            with open(self.config_path, 'r', encoding='utf-8') as config_file:
                self.config = yaml.safe_load(config_file) or {}
                self.logger.debug(f"Loaded configuration from {self.config_path}")
        except yaml.YAMLError as e:
            self.logger.error(f"Error parsing configuration file: {e}")
            raise

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: The configuration key (dot notation for nested keys)
            default: Default value to return if the key is not found

        Returns:
            The configuration value or the default value if not found
        """
        keys = key.split('.')
        value = self.config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                self.logger.debug(f"Configuration key '{key}' not found, using default: {default}")
                return default

        return value

    def _get_positive_number(self, key: str, default: float) -> float:
        """Read a numeric setting, falling back to the default when it is missing or not positive."""
        value = self.get(key, default)
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            self.logger.warning(f"Invalid value for '{key}': {value!r}, using default {default}")
            return default
        return value

    def get_database_path(self) -> str:
        """
        Get the SQLite database file path.

        Returns:
            The database file path
        """
        return self.get('database.path', 'data/kareoke.db')

    def get_database_timeout(self) -> float:
        """
        Get the database lock timeout.

        Returns:
            Timeout in seconds
        """
        return float(self._get_positive_number('database.timeout', 5.0))

    def get_min_position_gap(self) -> float:
        """
        Get the smallest gap between two neighbouring positions before the queue is renumbered.

        Returns:
            The minimum position gap
        """
        return float(self._get_positive_number('queue.min_position_gap', 1e-9))

    def get_webhook_url(self) -> Optional[str]:
        """
        Get the webhook URL that receives queue change notifications.

        Returns:
            The webhook URL or None if not set
        """
        url = self.get('notifier.webhook_url', None)
        return url.strip() if isinstance(url, str) and url.strip() else None

    def get_notifier_timeout(self) -> float:
        """
        Get the webhook request timeout.

        Returns:
            Timeout in seconds
        """
        return float(self._get_positive_number('notifier.timeout', 5.0))

    def get_log_level(self) -> str:
        """
        Get the logging level.

        Returns:
            The logging level
        """
        return self.get('logging.level', 'INFO')

    def get_log_file(self) -> Optional[str]:
        """
        Get the log file path.

        Returns:
            The log file path or None if not set
        """
        return self.get('logging.file', None)

    def get_log_max_size(self) -> int:
        """
        Get the maximum log file size.

        Returns:
            The maximum log file size in bytes
        """
        return self.get('logging.max_size', 10485760)  # 10 MB

    def get_log_backup_count(self) -> int:
        """
        Get the number of backup log files to keep.

        Returns:
            The number of backup log files
        """
        return self.get('logging.backup_count', 5)
