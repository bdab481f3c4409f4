"""
Logging setup for cpm_migrate.

Console output goes to stderr so that the conversion summary (or its JSON
form) on stdout stays machine-readable. An optional log file always receives
DEBUG records.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

LOGGER_NAME = "cpm_migrate"

_logger: Optional[logging.Logger] = None


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    verbose: bool = False,
    quiet: bool = False,
    propagate: bool = False,
) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        level: Log level name, overridden by verbose/quiet and by the
            CPM_MIGRATE_LOG_LEVEL environment variable
        log_file: Optional file path for log output
        verbose: Enable DEBUG output
        quiet: Only warnings and errors reach the console
        propagate: Allow propagation to the root logger (used by tests)

    Returns:
        Configured logger instance
    """
    global _logger

    if verbose:
        effective_level = "DEBUG"
    elif quiet:
        effective_level = "WARNING"
    else:
        effective_level = os.environ.get("CPM_MIGRATE_LOG_LEVEL", level).upper()

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, effective_level, logging.INFO))
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logger.level)
    console_handler.setFormatter(
        ColoredFormatter("%(levelname_colored)s %(message)s", use_colors=sys.stderr.isatty())
    )
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        logger.addHandler(file_handler)
        # The file gets everything even when the console is filtered
        logger.setLevel(logging.DEBUG)

    logger.propagate = propagate

    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    """
    Return the package logger, configuring defaults on first use.
    """
    global _logger
    if _logger is None:
        _logger = setup_logging()
    return _logger


class ColoredFormatter(logging.Formatter):
    """
    Prefixes each record with a colored level tag when writing to a terminal.
    """

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[1;31m',
    }
    RESET = '\033[0m'

    def __init__(self, fmt: str, use_colors: bool = True):
        super().__init__(fmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if self.use_colors:
            color = self.COLORS.get(levelname, '')
            record.levelname_colored = f"{color}{levelname:<7}{self.RESET}"
        else:
            record.levelname_colored = f"{levelname:<7}"
        return super().format(record)
