# pgxport/logging_utils.py
"""
Logging setup for the command line tool.

Messages go to stderr so that nothing but requested output ever reaches
stdout. A log file is written as well when a log directory is configured
(``logging.directory`` in pgxport.yml or ``log_dir``), named
``{script_name}_{timestamp}.log``.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from .defaults import settings

logger = logging.getLogger(__name__)

# Module-level state for error tracking
_error_handler: Optional['ErrorCountHandler'] = None
_main_log_path: Optional[str] = None


class ErrorCountHandler(logging.Handler):
    """Handler that only counts ERROR and CRITICAL records."""

    def __init__(self):
        super().__init__(level=logging.ERROR)
        self.error_count = 0

    def emit(self, record):
        if record.levelno >= logging.ERROR:
            self.error_count += 1


def _resolve_level(verbose: bool, quiet: bool, level: Optional[str]) -> int:
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.ERROR
    name = (level or settings['logging'].get('level', 'INFO')).upper()
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(
    verbose: bool = False,
    quiet: bool = False,
    log_dir: Optional[str] = None,
    level: Optional[str] = None,
    console: Optional[bool] = None,
    script_name: str = 'pgxport',
) -> Optional[str]:
    """
    Configure the root logger.

    Args:
        verbose: Log everything down to DEBUG
        quiet: Only log errors
        log_dir: Directory for a log file (defaults to settings['logging']['directory'];
            no file is written when neither is set)
        level: Level name when neither verbose nor quiet (defaults to settings)
        console: Log to stderr (defaults to settings)
        script_name: Base name of the log file

    Returns:
        Path of the log file, or None when logging to the console only

    Example
    -------
    ::

        from pgxport.logging_utils import setup_logging, errors_logged

        setup_logging(verbose=True)
        ...
        if errors_logged():
            sys.exit(1)
    """
    global _error_handler, _main_log_path

    logging_config = settings['logging']
    log_dir = log_dir or logging_config.get('directory')
    console = console if console is not None else logging_config.get('console', True)
    log_level = _resolve_level(verbose, quiet, level)

    formatter = logging.Formatter(
        logging_config.get('format', '%(asctime)s [%(levelname)s] %(name)s: %(message)s'),
        datefmt=logging_config.get('timestamp_format', '%Y-%m-%d %H:%M:%S'))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    # Remove existing handlers to avoid duplicates
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    _error_handler = ErrorCountHandler()
    root_logger.addHandler(_error_handler)

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    _main_log_path = None
    if log_dir:
        log_dir_path = Path(log_dir)
        log_dir_path.mkdir(parents=True, exist_ok=True)
        filename_format = logging_config.get('filename_format', '%Y%m%d_%H%M%S')
        if filename_format:
            log_file = log_dir_path / f"{script_name}_{datetime.now().strftime(filename_format)}.log"
        else:
            log_file = log_dir_path / f"{script_name}.log"
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
        _main_log_path = str(log_file)
        logger.debug(f"Logging initialized: {log_file}")

    return _main_log_path


def errors_logged() -> bool:
    """
    True if any ERROR or CRITICAL message was logged since setup_logging().

    Returns False when setup_logging() was never called.
    """
    if _error_handler is None:
        logger.debug("errors_logged() called but setup_logging() was not called")
        return False
    return _error_handler.error_count > 0


def error_count() -> int:
    return _error_handler.error_count if _error_handler is not None else 0
