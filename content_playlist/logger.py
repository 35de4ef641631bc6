"""Loguru logger configuration for the package."""

import sys
from pathlib import Path

from loguru import logger


def setup_logger(log_dir: Path | None = None, level: str = "INFO") -> Path:
    """Configure loguru with console and file sinks.

    Parameters
    ----------
    log_dir : Path, optional
        Directory for log files.  Defaults to the ``log_dir`` setting.
    level : str
        Minimum level for the console sink.  The file always gets DEBUG.

    Returns the path of the log file.
    """
    logger.remove()

    logger.add(
        sys.stderr,
        level=level,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{module}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        ),
        colorize=True,
    )

    if log_dir is None:
        from content_playlist.config import Config
        log_dir = Config().log_dir
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "content_playlist.log"

    logger.add(
        str(log_file),
        level="DEBUG",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {module}:{function}:{line} | {message}",
        rotation="10 MB",
        retention="7 days",
        encoding="utf-8",
        enqueue=True,  # thread-safe
    )

    logger.info("Logger initialized, file output: {}", log_file)
    return log_file
