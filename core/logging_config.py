"""
Centralized logging configuration for the workflow engine.

Features:
- Colored logging with different colors for different log levels
- Structured formatting with timestamps and context
- HTTP request dividers for better readability
- Configurable log levels and output formats
"""

import logging
import re
import sys
from datetime import datetime
from typing import List, Optional, Union
from pathlib import Path

# Color codes for terminal output
class Colors:
    """ANSI color codes for terminal output"""
    RESET = "\033[0m"
    BOLD = "\033[1m"
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    MAGENTA = "\033[95m"
    CYAN = "\033[96m"
    WHITE = "\033[97m"
    GRAY = "\033[90m"


TIMESTAMP_PATTERN = re.compile(r'(\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}(?:\.\d{2,3})?)')


class ColoredFormatter(logging.Formatter):
    """Custom formatter that adds colors to log messages"""

    COLORS = {
        logging.DEBUG: Colors.GRAY,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.MAGENTA,
    }

    def format(self, record):
        formatted = super().format(record)

        level_color = self.COLORS.get(record.levelno, Colors.WHITE)
        formatted = formatted.replace(
            record.levelname,
            f"{level_color}{record.levelname}{Colors.RESET}",
            1
        )

        formatted = TIMESTAMP_PATTERN.sub(f"{Colors.CYAN}\\1{Colors.RESET}", formatted, count=1)

        if record.name:
            formatted = formatted.replace(
                f"{record.name} - ",
                f"{Colors.BLUE}{record.name}{Colors.RESET} - ",
                1
            )

        return formatted


class RequestLogger:
    """Logs the start and end of HTTP requests with clear dividers"""

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self.divider_length = 80

    def log_request_start(self, endpoint: str, request_id: Optional[str] = None):
        """Log the start of a request"""
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        self.logger.debug("=" * self.divider_length)
        self.logger.info(f"➡️  {endpoint} [{request_id or '-'}] at {timestamp}")

    def log_request_end(self, endpoint: str, request_id: Optional[str] = None,
                        duration_ms: Optional[float] = None, status: str = "completed"):
        """Log the end of a request"""
        duration = f" in {duration_ms:.2f}ms" if duration_ms is not None else ""
        message = f"⬅️  {endpoint} [{request_id or '-'}] {status}{duration}"
        if status.startswith("error"):
            self.logger.warning(message)
        else:
            self.logger.info(message)
        self.logger.debug("=" * self.divider_length)


DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_FORMATS = {
    "simple": "%(levelname)s - %(message)s",
    "detailed": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    "json": '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}',
}


def build_formatter(log_format: str = "detailed", use_colors: bool = False) -> logging.Formatter:
    """Formatter for one of LOG_FORMATS; unknown names fall back to 'detailed'. JSON is never colored."""
    fmt = LOG_FORMATS.get(log_format, LOG_FORMATS["detailed"])
    formatter_class = ColoredFormatter if use_colors and log_format != "json" else logging.Formatter
    return formatter_class(fmt, datefmt=DATE_FORMAT)


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "detailed",
    log_file: Optional[Union[str, Path]] = None,
    enable_colors: bool = True
) -> logging.Logger:
    """
    Replace the root logger's handlers with a stdout handler and, optionally, a file handler.

    Args:
        log_level: Level name; unknown names mean INFO
        log_format: One of LOG_FORMATS, used on the console
        log_file: File that also receives every record, always in the plain detailed format
        enable_colors: Color level names when stdout is a terminal

    Returns:
        The root logger
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    handlers: List[logging.Handler] = []

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(build_formatter(log_format, enable_colors and sys.stdout.isatty()))
    handlers.append(console)

    if log_file:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(build_formatter("detailed"))
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.setLevel(level)
    for handler in handlers:
        handler.setLevel(level)
        root_logger.addHandler(handler)

    return root_logger



def get_logger(name: str) -> logging.Logger:
    """Get a logger with the specified name"""
    return logging.getLogger(name)


def get_request_logger(name: str) -> RequestLogger:
    """Get a request logger for the specified logger name"""
    return RequestLogger(logging.getLogger(name))


def configure_logging_from_settings():
    """Configure logging based on application settings"""
    from core.config import settings

    log_level = settings.log_level
    if settings.debug:
        log_level = "DEBUG"

    setup_logging(log_level=log_level, log_format="detailed", enable_colors=True)

    logger = get_logger(__name__)
    logger.info(f"🎨 Logging configured with level: {log_level}")
