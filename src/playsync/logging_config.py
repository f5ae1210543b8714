"""Logging configuration for playsync.

Engine events arrive from decoder and device threads, so the player logs
to a session file rather than the terminal the CLI is drawing on.
"""

import logging
from pathlib import Path
from typing import Union

LOGGER_NAME = "playsync"
LOG_FILENAME = "playsync.log"


def _rotate_log_if_needed(log_file: Path, max_bytes: int = 5 * 1024 * 1024, backup_count: int = 3) -> None:
    """Rotate the log file on startup once it grows past max_bytes.

    Args:
        log_file: Path to the log file
        max_bytes: Size threshold in bytes (default: 5MB)
        backup_count: Number of rotated files to keep (default: 3)
    """
    if not log_file.exists() or log_file.stat().st_size < max_bytes:
        return

    oldest = log_file.with_name(f"{log_file.name}.{backup_count}")
    if oldest.exists():
        oldest.unlink()

    # playsync.log.2 -> playsync.log.3, playsync.log.1 -> playsync.log.2
    for i in range(backup_count - 1, 0, -1):
        source = log_file.with_name(f"{log_file.name}.{i}")
        if source.exists():
            source.rename(log_file.with_name(f"{log_file.name}.{i + 1}"))

    log_file.rename(log_file.with_name(f"{log_file.name}.1"))


def setup_logging(log_dir: Path, level: Union[int, str] = logging.DEBUG) -> logging.Logger:
    """Set up session logging to file.

    Args:
        log_dir: Directory to store the log file
        level: Level for the playsync logger and its file handler

    Returns:
        Configured playsync logger
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILENAME
    _rotate_log_if_needed(log_file)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(file_handler)

    logger.info("=" * 60)
    logger.info("PLAYSYNC SESSION STARTED")
    logger.info(f"Log file: {log_file}")
    logger.info("=" * 60)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the playsync namespace.

    Args:
        name: Module name (usually __name__)

    Returns:
        Logger instance
    """
    if name == LOGGER_NAME or name.startswith(f"{LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")
