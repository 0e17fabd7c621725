"""
Logging configuration and utilities for tidal-api
Provides colored console output and optional rotating file logging

The library itself only creates loggers under the ``tidal_api`` namespace and
never installs handlers on import; applications (and the bundled CLI) call
setup_logging() once at startup.
"""

import logging
import logging.handlers
import re
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Optional

import colorama
from colorama import Back, Fore, Style

if TYPE_CHECKING:
    from tidal_api.core.config import Config


# Root of every logger created by this package
LOGGER_NAMESPACE = "tidal_api"

FILE_LOG_FORMAT = '%(asctime)s | %(name)-30s | %(levelname)-8s | %(funcName)-20s | %(message)s'
FILE_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
CONSOLE_LOG_FORMAT = '%(levelname)s: %(message)s'

# Third-party loggers that are too chatty at DEBUG
EXTERNAL_LIBS = ['urllib3', 'requests', 'urllib3.connectionpool']


class ColoredFormatter(logging.Formatter):
    """Custom formatter with colored level names for console output"""

    # Color mapping for log levels
    COLORS = {
        'DEBUG': Fore.CYAN,
        'INFO': Fore.GREEN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.RED + Back.WHITE + Style.BRIGHT,
    }

    def __init__(self, fmt: Optional[str] = None, use_colors: bool = True):
        """
        Initialize colored formatter

        Args:
            fmt: Log format string
            use_colors: Whether to use colored output
        """
        super().__init__(fmt or CONSOLE_LOG_FORMAT)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with colors"""
        if not self.use_colors or record.levelname not in self.COLORS:
            return super().format(record)

        # Copy the record so other handlers see the plain level name
        record_copy = logging.makeLogRecord(record.__dict__)
        record_copy.levelname = f"{self.COLORS[record.levelname]}{record.levelname}{Style.RESET_ALL}"
        return super().format(record_copy)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    console_output: bool = True,
    colored_output: bool = True,
    max_size: str = "10MB",
    backup_count: int = 3
) -> None:
    """
    Setup logging for the tidal_api namespace

    Args:
        level: Console logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (None to disable file logging)
        console_output: Enable console logging
        colored_output: Enable colored console output
        max_size: Maximum log file size before rotation
        backup_count: Number of backup log files to keep
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    package_logger = logging.getLogger(LOGGER_NAMESPACE)
    package_logger.setLevel(logging.DEBUG)  # Filter at handler level

    for handler in package_logger.handlers[:]:
        handler.close()
        package_logger.removeHandler(handler)

    if console_output:
        colorama.init()
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(ColoredFormatter(use_colors=colored_output))
        package_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=parse_size(max_size),
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)  # Capture everything for file
        file_handler.setFormatter(logging.Formatter(fmt=FILE_LOG_FORMAT, datefmt=FILE_DATE_FORMAT))
        package_logger.addHandler(file_handler)

    if not package_logger.handlers:
        package_logger.addHandler(logging.NullHandler())

    for lib in EXTERNAL_LIBS:
        logging.getLogger(lib).setLevel(logging.WARNING)

    package_logger.debug(f"Logging initialized - Level: {level}, Console: {console_output}, File: {log_file}")


def configure_from_config(config: "Config", verbose: bool = False) -> None:
    """Configure logging from a loaded Config"""
    setup_logging(
        level="DEBUG" if verbose else config.logging.level,
        log_file=config.logging.file,
        colored_output=config.logging.colored_output
    )


def parse_size(size_str: str) -> int:
    """
    Parse size string to bytes

    Args:
        size_str: Size string like "10MB", "1GB", "500KB"

    Returns:
        Size in bytes

    Raises:
        ValueError: If the string is not a number followed by B/KB/MB/GB/TB
    """
    size_str = size_str.upper().strip()

    multipliers = {
        'B': 1,
        'KB': 1024,
        'MB': 1024 ** 2,
        'GB': 1024 ** 3,
        'TB': 1024 ** 4,
    }

    match = re.match(r'^(\d+(?:\.\d+)?)\s*([KMGT]?B)$', size_str)
    if not match:
        raise ValueError(f"Invalid size format: {size_str}")

    number, unit = match.groups()
    return int(float(number) * multipliers[unit])


def get_logger(name: str) -> logging.Logger:
    """
    Get logger instance for a module

    Names outside the package namespace are nested under it so that
    setup_logging() always applies.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    if name != LOGGER_NAMESPACE and not name.startswith(LOGGER_NAMESPACE + "."):
        name = f"{LOGGER_NAMESPACE}.{name}"
    return logging.getLogger(name)
