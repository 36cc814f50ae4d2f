import sys
from loguru import logger
from pathlib import Path
from typing import Optional

_configured_level: Optional[str] = None

def setup_logger(log_level: str = "INFO", log_file: Optional[Path] = None):
    global _configured_level

    # Re-run only when the level changes or a file sink is requested
    if _configured_level == log_level and log_file is None:
        return logger

    logger.remove()

    # Interactive sessions share stderr with prompts, so keep console lines short
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan> - <level>{message}</level>",
        level=log_level,
        colorize=True,
    )

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}",
            level="DEBUG",
            rotation="5 MB",
            retention="3 days",
            enqueue=False,
        )

    _configured_level = log_level
    return logger
