#!/usr/bin/env python3
"""
Post-Processing Registry for Protobuf Mutation

This module keeps caller-supplied repair callbacks keyed by message type
and runs them over every matching node of a mutation result.
"""

import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, Tuple

from google.protobuf.message import Message

from .random_engine import RandomEngine
from .schema_reflection import child_messages, is_message, iter_fields
from .utils.common import type_name

logger = logging.getLogger(__name__)

# Callback signature: callback(message, seed)
PostProcessor = Callable[[Message, int], None]


class PostProcessorRegistry:
    """Multi-valued mapping from message type name to callbacks."""

    def __init__(self):
        self._callbacks: Dict[str, List[PostProcessor]] = defaultdict(list)

    def register(self, message_type: Any, callback: PostProcessor) -> None:
        """
        Register a callback for a message type.

        Registering again for the same type adds a callback; nothing is
        replaced. Types that never occur in a mutated tree are accepted and
        simply never fire.

        Args:
            message_type: Generated class, instance, Descriptor or full name
            callback: Called as callback(message, seed) after each mutation
        """
        name = type_name(message_type)
        self._callbacks[name].append(callback)
        logger.debug(f"Registered post-processor #{len(self._callbacks[name])} for {name}")

    def callbacks_for(self, message_type: Any) -> Tuple[PostProcessor, ...]:
        return tuple(self._callbacks.get(type_name(message_type), ()))

    def __len__(self) -> int:
        return sum(len(callbacks) for callbacks in self._callbacks.values())

    def apply(self, message: Message, random_engine: RandomEngine) -> None:
        """
        Run the registered callbacks over a message tree.

        Nodes are visited top-down: a node's callbacks run, in registration
        order, before its children are visited, so children a callback adds
        are visited too. Each callback receives a seed drawn from the
        engine's stream.

        Every node is visited, however deep. The tree is finite after
        trimming; only a callback that keeps adding children never ends.

        Args:
            message: Root of the tree to post-process
            random_engine: Source of the per-call seeds
        """
        if not self._callbacks:
            return
        self._apply(message, random_engine)

    def _apply(self, message: Message, random_engine: RandomEngine) -> None:
        for callback in tuple(self._callbacks.get(message.DESCRIPTOR.full_name, ())):
            callback(message, random_engine.derive_seed())

        for field in iter_fields(message.DESCRIPTOR):
            if not is_message(field):
                continue
            for child in child_messages(message, field):
                self._apply(child, random_engine)
