"""Logging setup for Kareoke."""
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    max_size: int = 10485760,
    backup_count: int = 5
) -> logging.Logger:
    """
    Configure the ``kareoke`` logger hierarchy.

    Args:
        log_level: Logging level name
        log_file: Optional path of a rotating log file
        max_size: Maximum size of the log file in bytes before rotation
        backup_count: Number of rotated files to keep

    Returns:
        The configured root ``kareoke`` logger
    """
    level = getattr(logging, str(log_level).upper(), logging.INFO)
    logger = logging.getLogger("kareoke")
    logger.setLevel(level)

    # 重复调用时不叠加处理器
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_size,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
