"""
Logging setup for registry runs.

Every record carries the id of the run that produced it (``-`` outside a
run). RegistryRun binds it with ``logger.contextualize(run_id=...)``.
"""

import sys
from pathlib import Path

from loguru import logger

from mcp_registry.config import settings

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<magenta>{extra[run_id]}</magenta> | <cyan>{name}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[run_id]} | {name}:{function}:{line} - {message}"


def setup_logging(
    level: str | None = None,
    log_file: Path | None = None,
    rotation: str = "10 MB",
    retention: str = "1 week",
) -> None:
    """
    Replace loguru's default sink with the registry sinks.

    Args:
        level: Log level, defaults to the log_level setting
        log_file: Rotating log file, defaults to the log_file setting
        rotation: When to rotate the file (e.g. "10 MB", "1 day")
        retention: How long rotated files are kept
    """
    level = level or settings.pipeline.log_level
    log_file = log_file or settings.pipeline.log_file

    logger.remove()
    logger.configure(extra={"run_id": "-"})

    logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT, colorize=True)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            level=level,
            format=FILE_FORMAT,
            rotation=rotation,
            retention=retention,
            compression="gz",
        )

    logger.debug(f"Logging configured: level={level}, file={log_file or 'none'}")
