"""
Common Utilities for Protobuf Mutation

This module provides tunable constants and small message helpers used
throughout the mutation engine.
"""

from typing import Any

from google.protobuf.message import Message

# Engine defaults
DEFAULT_RANDOM_TO_DEFAULT_RATIO = 100
DEFAULT_MAX_DEPTH = 50
DEFAULT_CORPUS_SIZE = 20

# Sampling weights for structural actions
MUTATE_WEIGHT = 1000
ADD_WEIGHT = 500
DELETE_WEIGHT = 250
ONEOF_SWITCH_WEIGHT = 100
MIN_ADD_WEIGHT = 1

# Size hint (in bytes) at which growth weights saturate
GROWTH_SCALE = 128

# One-in-N ratios for primitive mutators
INTEGER_DELTA_RATIO = 4
MAX_INTEGER_DELTA = 16
INTERESTING_FLOAT_RATIO = 10
UNKNOWN_ENUM_RATIO = 20
ASCII_CODEPOINT_RATIO = 2

# One-in-N ratios for crossover
CROSSOVER_BLOCK_RATIO = 4
CROSSOVER_RECURSE_RATIO = 2


def growth_factor(size_hint: int) -> float:
    """Map a size budget onto [0, 1]; 1 means growth is fully allowed."""
    if size_hint <= 0:
        return 0.0
    return min(size_hint, GROWTH_SCALE) / GROWTH_SCALE


def copy_message(message: Message) -> Message:
    """Return a detached deep copy of a message."""
    result = type(message)()
    result.CopyFrom(message)
    return result


def type_name(message_type: Any) -> str:
    """
    Resolve the stable type identity of a message type.

    Args:
        message_type: Generated message class, message instance, Descriptor
            or full type name

    Returns:
        Fully qualified protobuf type name
    """
    if isinstance(message_type, str):
        return message_type

    descriptor = getattr(message_type, "DESCRIPTOR", message_type)
    full_name = getattr(descriptor, "full_name", None)
    if not isinstance(full_name, str):
        raise TypeError(f"Cannot resolve a message type from {message_type!r}")

    return full_name
