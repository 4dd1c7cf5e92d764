"""Logging setup for DocMorph.

Library modules log through loguru's shared ``logger``; only the CLI
decides where records go.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}"


def setup_logging(level: str = "WARNING", log_file: Optional[Path] = None) -> None:
    """Replace loguru's default sink with DocMorph's.

    Args:
        level: Minimum level for the console sink
        log_file: Optional file that also receives records, rotated by size
    """
    # Remove default handler
    logger.remove()

    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level=level.upper(),
        colorize=True,
    )

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_file),
            format=FILE_FORMAT,
            level=level.upper(),
            rotation="10 MB",
            retention=5,
            encoding="utf-8",
        )
