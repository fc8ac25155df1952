"""
Logging setup using loguru.

The chat client shares the terminal with its own console output, so the
stderr sink has its own level, independent of the file sink.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from ..config.models import LoggingConfig

FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{name}:{function}:{line} - {message}"
)


def setup_logging(config: LoggingConfig, console_level: Optional[str] = None) -> Optional[Path]:
    """
    Configure loguru sinks for the client.

    Args:
        config: Logging configuration
        console_level: Overrides ``config.console_level`` (e.g. DEBUG under --debug)

    Returns:
        Path of the log file, or None when file logging is disabled
    """
    logger.remove()

    if config.console_enabled:
        logger.add(
            sys.stderr,
            format=config.format,
            level=(console_level or config.console_level).upper(),
            colorize=True,
            backtrace=True,
            diagnose=True
        )

    if not config.file_enabled:
        return None

    log_dir = Path(config.log_directory)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / config.log_file

    logger.add(
        log_path,
        format=FILE_FORMAT,
        level=config.level.upper(),
        rotation=config.max_file_size,
        retention=config.backup_count,
        compression="zip",
        enqueue=True,
        backtrace=True,
        diagnose=False
    )
    logger.info(f"Logging to {log_path} at level {config.level.upper()}")
    return log_path
