"""
Logging utilities for the segrefine project.

This module provides centralized logging configuration with file and console
output. The file handler always records DEBUG, the console defaults to INFO.
"""

import logging
import os
from datetime import datetime
from pathlib import Path


def get_log_dir():
    """
    Get the log directory.

    Uses ``SEGREFINE_LOG_DIR`` when set, otherwise ``~/logs``.

    Returns:
        Path: Path to the log directory.
    """
    env_dir = os.environ.get("SEGREFINE_LOG_DIR")
    base_dir = Path(env_dir).expanduser() if env_dir else Path.home() / "logs"
    os.makedirs(base_dir, exist_ok=True)
    return base_dir


def set_console_log_level(level=logging.INFO):
    """
    Set the console log level for the system logger.

    Args:
        level: logging level (e.g., logging.DEBUG, logging.INFO, logging.WARNING)
    """
    for handler in system_logger.handlers:
        if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
            handler.setLevel(level)


LOG_DIR = get_log_dir()
timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")

# --- SYSTEM LOGGER ---
system_log_path = LOG_DIR / f"segrefine_{timestamp}.log"
system_logger = logging.getLogger("segrefine")
system_logger.setLevel(logging.DEBUG)  # File always gets DEBUG

if not system_logger.handlers:
    system_handler = logging.FileHandler(system_log_path, encoding="utf-8", delay=True)
    system_handler.setFormatter(
        logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
    )
    system_logger.addHandler(system_handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
    )
    console_handler.setLevel(logging.INFO)  # Console defaults to INFO
    system_logger.addHandler(console_handler)
