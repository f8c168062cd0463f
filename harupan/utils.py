"""
Provides logging and configuration helpers shared by the harupan modules.
"""

import argparse
import logging
import os
from datetime import datetime
from typing import Optional


def setup_logging(
    log_level: str = "INFO",
    log_to_file: bool = False,
    log_file_path: Optional[str] = None,
    enable_console: bool = True,
    enabled: bool = False,
) -> logging.Logger:
    """
    Setup logging configuration for applications using this library.

    This function configures only the harupan logger, not the root logger,
    to avoid interfering with other libraries' logging.
    """

    harupan_logger = logging.getLogger("harupan")

    if not enabled:
        harupan_logger.disabled = True
        return harupan_logger

    harupan_logger.disabled = False
    harupan_logger.setLevel(getattr(logging, log_level.upper()))

    # Clear existing handlers to avoid duplicates
    harupan_logger.handlers.clear()

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    if enable_console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        harupan_logger.addHandler(console_handler)

    if log_to_file:
        if log_file_path is None:
            os.makedirs("logs", exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            log_file_path = f"logs/harupan_{timestamp}.log"

        file_handler = logging.FileHandler(log_file_path)
        file_handler.setFormatter(formatter)
        harupan_logger.addHandler(file_handler)

    harupan_logger.propagate = False

    harupan_logger.info(f"Harupan logging initialized - Level: {log_level}")
    if log_to_file:
        harupan_logger.info(f"Log file: {log_file_path}")

    return harupan_logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger for a specific module within the library.

    Args:
        name: Logger name (typically __name__ from the calling module)

    Returns:
        Logger instance for the specified module

    Example:
        >>> from harupan.utils import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.debug("Preparing tensor...")  # Only shows if user enabled DEBUG
    """
    if name is None:
        name = __name__

    return logging.getLogger(name)


def disable_logging(logger_name: Optional[str] = None) -> None:
    """
    Disable logging for this library or a specific logger.

    Args:
        logger_name: Specific logger to disable. If None, disables the entire
                    harupan package logging.
    """
    if logger_name is None:
        logger_name = "harupan"

    logging.getLogger(logger_name).disabled = True


def enable_logging(logger_name: Optional[str] = None, level: str = "INFO") -> None:
    """
    Enable logging for this library or a specific logger.

    Example:
        >>> from harupan.utils import enable_logging
        >>> enable_logging(level="DEBUG")
    """
    if logger_name is None:
        logger_name = "harupan"

    logger_obj = logging.getLogger(logger_name)
    logger_obj.disabled = False
    logger_obj.setLevel(getattr(logging, level.upper()))


def merge_config(args: argparse.Namespace, config: dict) -> dict:
    """
    Merge command-line arguments with YAML config.
    Args override config values if they are not None.
    """

    merged = config.copy()
    for key, value in vars(args).items():
        if (
            value is not None and key != "config"
        ):  # only override if user provided value
            merged[key] = value
    return merged
