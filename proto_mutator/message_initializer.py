#!/usr/bin/env python3
"""
Message Initializer for Structure-Aware Mutation

This module bounds the depth of a message tree and repairs required
fields left unset, so that mutation results stay parseable and
"initialized" (every required field, recursively, is set).
"""

import logging

from google.protobuf.descriptor import FieldDescriptor
from google.protobuf.message import Message

from .message_walker import MessageWalker
from .schema_reflection import (
    child_messages,
    is_message,
    is_required,
    is_set,
    iter_fields,
)

logger = logging.getLogger(__name__)


class MessageInitializer:
    """Depth trimmer and required-field repairer."""

    def __init__(self, walker: MessageWalker):
        """
        Initialize a message initializer.

        Args:
            walker: Walker whose value factory creates missing scalars, so
                repaired fields go through the same primitive mutators
        """
        self.walker = walker

    def trim(self, message: Message, max_depth: int) -> None:
        """Clear optional submessages nested deeper than `max_depth`."""
        self._visit(message, max_depth, False)

    def initialize_and_trim(self, message: Message, max_depth: int) -> None:
        """
        Fill every unset required field and trim the tree.

        Required submessages are created and descended into until the depth
        budget runs out. A type that requires an instance of itself cannot
        be fully initialized; below the budget it is left as it is.

        Args:
            message: Message to repair in place
            max_depth: Number of levels below the root to visit
        """
        self._visit(message, max_depth, True)

    def _visit(self, message: Message, depth: int, initialize: bool) -> None:
        for field in iter_fields(message.DESCRIPTOR):
            if initialize and is_required(field) and not is_set(message, field):
                self._create_required(message, field)

            if not is_message(field):
                continue

            if depth <= 0:
                # Clear deep optional fields to bound the tree
                if not is_required(field) and is_set(message, field):
                    logger.debug(f"Trimming {field.full_name} at the depth limit")
                    message.ClearField(field.name)
                elif initialize and is_required(field):
                    logger.warning(f"Required field {field.full_name} left unvisited at the depth limit")
                continue

            for child in child_messages(message, field):
                self._visit(child, depth - 1, initialize)

    def _create_required(self, message: Message, field: FieldDescriptor) -> None:
        logger.debug(f"Repairing unset required field {field.full_name}")
        if is_message(field):
            getattr(message, field.name).SetInParent()
        else:
            setattr(message, field.name, self.walker.new_scalar(field, 0))

    @staticmethod
    def is_initialized(message: Message) -> bool:
        """Whether every required field, at every depth, is set; same as `IsInitialized()`."""
        for field in iter_fields(message.DESCRIPTOR):
            if is_required(field) and not is_set(message, field):
                return False

            if not is_message(field):
                continue

            for child in child_messages(message, field):
                if not MessageInitializer.is_initialized(child):
                    return False

        return True
