"""
Utilities for the protobuf mutation engine.

Host applications call `setup_logger` once to get console and rotating
file output for the engine's log records.
"""

from .logger import get_logger, setup_logger

__all__ = ["get_logger", "setup_logger"]
