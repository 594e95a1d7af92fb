"""
Logging setup: stdlib logging rendered through rich
"""

import logging
from typing import Optional

from rich.logging import RichHandler

_configured = False


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure the root logger once per process.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ...)
        log_file: Optional path for a plain-text copy of the log

    Returns:
        The configured root logger
    """
    global _configured

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    if _configured:
        return root_logger

    console_handler = RichHandler(rich_tracebacks=True, show_path=False)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(logging.Formatter("%(name)s - %(message)s"))
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        root_logger.addHandler(file_handler)

    _configured = True
    return root_logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
