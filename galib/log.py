"""
galib.log — Console + file logging for the accelerator scripts.

The console handler writes to stderr so that values a script prints on
stdout (ARNs, DNS names) stay machine-readable. The file handler appends to
accelerator.log in the state directory.
"""

import datetime
import logging
import sys
from pathlib import Path
from typing import Optional

from galib.config import get_state_dir

LOGGER_NAME = "galib"
LOG_FILENAME = "accelerator.log"

# Global logger instance
logger: Optional[logging.Logger] = None
# Tracks whether setup_logging() has been explicitly called
_logging_configured = False


def setup_logging(
    script_name: str = "galib",
    log_to_file: bool = True,
    log_dir: Optional[Path] = None,
) -> logging.Logger:
    """
    Setup logging with console and file output.

    Args:
        script_name: Name of the script, recorded in the log
        log_to_file: Whether to log to file in addition to console
        log_dir: Directory for accelerator.log (default: the state directory)

    Returns:
        logging.Logger: Configured logger instance
    """
    global logger, _logging_configured

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(
        "%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_to_file:
        try:
            logs_dir = Path(log_dir) if log_dir else get_state_dir()
            logs_dir.mkdir(parents=True, exist_ok=True)
            log_filepath = logs_dir / LOG_FILENAME

            file_handler = logging.FileHandler(log_filepath, mode="a", encoding="utf-8")
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

            logger.debug("Logging initialized for %s - Log file: %s", script_name, log_filepath)
        except OSError as e:
            logger.error("Failed to setup file logging: %s", e)
            logger.warning("Continuing with console logging only")

    _logging_configured = True
    return logger


def get_logger() -> logging.Logger:
    """
    Get the current logger instance.
    If setup_logging() has not yet been called, returns a logger with a
    NullHandler so that library usage does not emit spurious output.
    """
    if logger is None:
        _null_logger = logging.getLogger(LOGGER_NAME)
        if not _null_logger.handlers:
            _null_logger.addHandler(logging.NullHandler())
        return _null_logger
    return logger


def log_error(error_message: str, error_obj: Optional[BaseException] = None) -> None:
    """
    Log an error message, with the exception's text when given.

    Args:
        error_message: The error message to display
        error_obj: Optional exception object
    """
    current_logger = get_logger()
    if error_obj:
        current_logger.error("%s: %s", error_message, error_obj)
        current_logger.debug("Exception details: %r", error_obj, exc_info=error_obj)
    else:
        current_logger.error(error_message)


def log_warning(warning_message: str) -> None:
    get_logger().warning(warning_message)


def log_info(info_message: str) -> None:
    get_logger().info(info_message)


def log_debug(debug_message: str) -> None:
    """Log a debug message (file only, not console)."""
    get_logger().debug(debug_message)


def log_success(success_message: str) -> None:
    get_logger().info("SUCCESS: %s", success_message)


def log_section(section_name: str) -> None:
    """Log a section header for better log organization."""
    current_logger = get_logger()
    current_logger.info("-" * 50)
    current_logger.info("SECTION: %s", section_name)
    current_logger.info("-" * 50)


def log_script_start(script_name: str, description: str = "") -> None:
    """
    Log the start of a script execution with standardized format.

    Args:
        script_name: Name of the script being executed
        description: Optional description of the script's purpose
    """
    current_logger = get_logger()
    current_logger.info("=" * 60)
    current_logger.info("SCRIPT START: %s", script_name)
    if description:
        current_logger.info("DESCRIPTION: %s", description)
    current_logger.info("=" * 60)


def log_script_end(script_name: str, start_time: Optional[datetime.datetime] = None) -> None:
    """
    Log the end of a script execution, with duration when start_time is given.
    """
    current_logger = get_logger()
    current_logger.info("=" * 60)
    current_logger.info("SCRIPT END: %s", script_name)
    if start_time:
        current_logger.info("DURATION: %s", datetime.datetime.now() - start_time)
    current_logger.info("=" * 60)
