"""
Logging configuration for the thread dump analyzer.

Logs go to stderr through rich: stdout carries the MCP stdio transport.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from .config import get_log_level


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Configure the package logger with a single rich handler on stderr.

    Args:
        level: Level name such as "DEBUG"; falls back to THREAD_DUMP_LOG_LEVEL

    Returns:
        The configured ``thread_dump_mcp`` logger
    """
    level_name = (level or get_log_level()).upper()
    numeric = logging.getLevelName(level_name)
    if not isinstance(numeric, int):
        numeric = logging.WARNING

    logger = logging.getLogger("thread_dump_mcp")
    logger.setLevel(numeric)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
            show_time=True,
            show_path=numeric <= logging.DEBUG,
        )
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s", datefmt="[%X]"))
        logger.addHandler(handler)
    return logger
