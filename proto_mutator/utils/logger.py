"""
Logger Setup for Protobuf Mutation

This module configures logging for applications embedding the mutation
engine: colorized console output and an optional rotating log file. The
engine itself only emits records through `logging.getLogger(__name__)`.
"""

import os
import sys
import logging
import logging.handlers
import platform
from datetime import datetime
from typing import Optional

import psutil
from google.protobuf.internal import api_implementation

# ANSI color codes for terminal output
COLORS = {
    'BLUE': '\033[94m',
    'GREEN': '\033[92m',
    'WARNING': '\033[93m',
    'FAIL': '\033[91m',
    'ENDC': '\033[0m',
    'BOLD': '\033[1m',
}

# Log levels with custom colors
LOG_COLORS = {
    'DEBUG': COLORS['BLUE'],
    'INFO': COLORS['GREEN'],
    'WARNING': COLORS['WARNING'],
    'ERROR': COLORS['FAIL'],
    'CRITICAL': COLORS['BOLD'] + COLORS['FAIL']
}

ROOT_LOGGER_NAME = 'proto_mutator'


class ColoredFormatter(logging.Formatter):
    """Formatter coloring the level name of console records."""

    def format(self, record):
        # Work on a copy so file handlers keep the plain level name
        record = logging.makeLogRecord(record.__dict__)
        color = LOG_COLORS.get(record.levelname)
        if color:
            record.levelname = f"{color}{record.levelname}{COLORS['ENDC']}"
        return super().format(record)


def setup_logger(name: str = ROOT_LOGGER_NAME, log_dir: Optional[str] = None,
                 level: int = logging.INFO, console_level: int = logging.INFO,
                 log_file_level: int = logging.DEBUG,
                 max_log_size: int = 10 * 1024 * 1024, backup_count: int = 5,
                 timestamp: bool = True, verbose: bool = False) -> logging.Logger:
    """
    Set up a logger with a console handler and an optional file handler.

    Args:
        name: Logger name; the default configures every engine module
        log_dir: Directory for rotating log files, or None for console only
        level: Overall logging level
        console_level: Console output logging level
        log_file_level: Log file logging level
        max_log_size: Maximum size of each log file in bytes (default: 10MB)
        backup_count: Number of backup log files to keep
        timestamp: Whether to include timestamp in console output
        verbose: Whether to log platform, protobuf and memory information

    Returns:
        logging.Logger: Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Clear any existing handlers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        timestamp_str = datetime.now().strftime('%Y-%m-%d_%H-%M-%S')
        log_file = os.path.join(log_dir, f"{name}_{timestamp_str}.log")

        file_handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=max_log_size, backupCount=backup_count
        )
        file_handler.setLevel(log_file_level)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'
        ))
        logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    if timestamp:
        console_format = '%(asctime)s - %(levelname)s - %(message)s'
    else:
        console_format = '%(levelname)s - %(message)s'
    console_handler.setFormatter(ColoredFormatter(console_format))
    logger.addHandler(console_handler)

    if verbose:
        logger.info(f"System: {platform.system()} {platform.release()}")
        logger.info(f"Python: {platform.python_version()}, "
                    f"protobuf backend: {api_implementation.Type()}")
        memory = psutil.virtual_memory()
        logger.info(f"Memory: {memory.total / (1024**3):.2f}GB total, "
                    f"{memory.available / (1024**3):.2f}GB available "
                    f"({memory.percent}% used)")

    return logger


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """Get a logger, setting up console output if it has no handlers yet."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        return setup_logger(name)
    return logger
