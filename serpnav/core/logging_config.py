"""
Centralized Logging Configuration for serpnav

All Python logging goes to one rotating file plus the console:

    logs/serpnav/system.log

Usage in any module:
    from serpnav.core.logging_config import setup_logging, get_logger

    # Call once at process startup (CLI, browser host)
    setup_logging()

    # Get a logger for your module
    logger = get_logger(__name__)
    logger.info("[Extractor] Found result #2")

Debugging:
    tail -f logs/serpnav/system.log
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from serpnav.core.config import get_settings

# =============================================================================
# Configuration
# =============================================================================

SYSTEM_LOG_NAME = "system.log"
MAX_LOG_SIZE = 5 * 1024 * 1024  # 5 MB per file
BACKUP_COUNT = 3

LOG_FORMAT = "%(asctime)s | %(levelname)-5s | %(name)-36s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

CONSOLE_FORMAT = "%(asctime)s | %(levelname)-5s | %(name)-24s | %(message)s"
CONSOLE_DATE_FORMAT = "%H:%M:%S"

# =============================================================================
# Global State
# =============================================================================

_logging_configured = False
_log_dir: Optional[Path] = None


def setup_logging(
    level: Optional[str] = None,
    log_to_console: bool = True,
    log_to_file: Optional[bool] = None,
    service_name: str = "serpnav",
) -> None:
    """
    Configure logging for a serpnav process.

    Call this ONCE at startup; later calls are ignored.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to SERPNAV_LOG_LEVEL or INFO.
        log_to_console: Whether to also log to stdout (default True)
        log_to_file: Whether to log to system.log. Defaults to SERPNAV_LOG_TO_FILE.
        service_name: Identifier written in the startup marker
    """
    global _logging_configured, _log_dir

    if _logging_configured:
        return

    settings = get_settings()
    if level is None:
        level = settings.log_level
    if log_to_file is None:
        log_to_file = settings.log_to_file
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove any existing handlers (prevents duplicates)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if log_to_file:
        _log_dir = settings.log_dir
        _log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            _log_dir / SYSTEM_LOG_NAME,
            maxBytes=MAX_LOG_SIZE,
            backupCount=BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        root_logger.addHandler(file_handler)

    if log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, CONSOLE_DATE_FORMAT))
        root_logger.addHandler(console_handler)

    # === Reduce noise from chatty libraries ===
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("playwright").setLevel(logging.WARNING)

    _logging_configured = True

    logger = logging.getLogger(service_name)
    logger.info(f"LOGGING INITIALIZED - {service_name.upper()} (level={level.upper()})")
    if log_to_file:
        logger.info(f"Log file: {get_system_log_path().absolute()}")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a module.

    Args:
        name: Usually __name__ to get the module's dotted path

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def get_system_log_path() -> Path:
    """Get the path to the system log file."""
    return (_log_dir or get_settings().log_dir) / SYSTEM_LOG_NAME
