"""
Centralized logging configuration for the map editor.

Usage:
    from cdda_map_editor.logging_config import setup_logging
    setup_logging(config.log_directory())  # Call once at startup

MapEditor.from_config does this with the configured levels.

All cdda_map_editor.* loggers write DEBUG to file, WARNING+ to the console.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Union

from rich.console import Console
from rich.logging import RichHandler

LOG_FILE_NAME = "editor.log"
MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB per file
BACKUP_COUNT = 5

ROOT_LOGGER_NAME = "cdda_map_editor"


def setup_logging(
    log_dir: Union[Path, str],
    log_level: Union[int, str] = logging.DEBUG,
    console_level: Union[int, str] = logging.WARNING,
) -> Path:
    """
    Configure the editor's loggers.

    Args:
        log_dir: Directory the rotating log file is written to
        log_level: Level for file logging
        console_level: Level for console output

    Returns:
        Path to the log file
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    log_file = log_path / LOG_FILE_NAME

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(logging.DEBUG)

    # Re-initialization replaces handlers
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    file_handler = RotatingFileHandler(
        log_file, maxBytes=MAX_LOG_SIZE, backupCount=BACKUP_COUNT, encoding="utf-8"
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s.%(msecs)03d | %(levelname)-8s | %(name)-35s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root_logger.addHandler(file_handler)

    console_handler = RichHandler(
        console=Console(stderr=True), show_path=False, rich_tracebacks=True
    )
    console_handler.setLevel(console_level)
    root_logger.addHandler(console_handler)

    root_logger.debug("Logging initialized, writing to %s", log_file)
    return log_file
