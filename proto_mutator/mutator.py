#!/usr/bin/env python3
"""
Structure-Aware Protobuf Mutator

This module provides the public mutation engine: it seeds the random
source, drives the walker, initializer, crossover and post-processing
passes, and owns the tuning settings shared by all of them.

Usage example:
    mutator = Mutator(seed=1)
    message = MyMessage()
    message.ParseFromString(encoded_message)
    mutator.mutate(message, 10000)
"""

import logging
from typing import Any, Callable, List, Optional

from google.protobuf.message import Message

from .crossover import CrossOver
from .field_mutator import FieldMutator
from .message_initializer import MessageInitializer
from .message_walker import MessageWalker
from .post_processing import PostProcessor, PostProcessorRegistry
from .random_engine import RandomEngine
from .utils.common import (
    DEFAULT_CORPUS_SIZE,
    DEFAULT_MAX_DEPTH,
    DEFAULT_RANDOM_TO_DEFAULT_RATIO,
    copy_message,
)

logger = logging.getLogger(__name__)


class Mutator:
    """
    Randomly makes small, schema-respecting changes to protobuf messages.

    One engine is meant to live for many calls and to be used from a
    single thread; independent engines share no state.
    """

    def __init__(self, seed: int = 0,
                 field_mutator_factory: Callable[[RandomEngine], FieldMutator] = FieldMutator):
        """
        Initialize a mutator.

        Args:
            seed: Initial seed of the random source
            field_mutator_factory: Called with the engine's random source to
                build the primitive mutators; pass a FieldMutator subclass to
                override per-kind behaviour
        """
        self.random = RandomEngine(seed)
        self.field_mutator = field_mutator_factory(self.random)
        self.post_processors = PostProcessorRegistry()

        # Settings
        self._keep_initialized = True
        self._random_to_default_ratio = DEFAULT_RANDOM_TO_DEFAULT_RATIO
        self._max_depth = DEFAULT_MAX_DEPTH

    def seed(self, value: int) -> None:
        """Reset the random sequence from an unsigned 32-bit value."""
        self.random.seed(value)

    @property
    def keep_initialized(self) -> bool:
        """Whether results must have every required field set."""
        return self._keep_initialized

    @keep_initialized.setter
    def keep_initialized(self, value: bool) -> None:
        self._keep_initialized = bool(value)

    @property
    def random_to_default_ratio(self) -> int:
        """One-in-N chance that a scalar mutation resets to the schema default."""
        return self._random_to_default_ratio

    @random_to_default_ratio.setter
    def random_to_default_ratio(self, value: int) -> None:
        if value < 1:
            raise ValueError(f"random_to_default_ratio must be at least 1, got {value}")
        self._random_to_default_ratio = int(value)

    @property
    def max_depth(self) -> int:
        """Number of levels below the root that mutation may reach."""
        return self._max_depth

    @max_depth.setter
    def max_depth(self, value: int) -> None:
        if value < 0:
            raise ValueError(f"max_depth must not be negative, got {value}")
        self._max_depth = int(value)

    def set_mutation_settings(self, keep_initialized: Optional[bool] = None,
                              random_to_default_ratio: Optional[int] = None,
                              max_depth: Optional[int] = None) -> None:
        """
        Configure mutation settings.

        Args:
            keep_initialized: Keep every required field set
            random_to_default_ratio: One-in-N chance of resetting a scalar to
                its default
            max_depth: Depth bound for walking, trimming and crossover
        """
        if keep_initialized is not None:
            self.keep_initialized = keep_initialized

        if random_to_default_ratio is not None:
            self.random_to_default_ratio = random_to_default_ratio

        if max_depth is not None:
            self.max_depth = max_depth

        logger.debug(f"Mutation settings: keep_initialized={self._keep_initialized}, "
                     f"random_to_default_ratio={self._random_to_default_ratio}, "
                     f"max_depth={self._max_depth}")

    def mutate(self, message: Message, size_increase_hint: int) -> None:
        """
        Mutate a message in place.

        Args:
            message: Message to mutate
            size_increase_hint: Approximate number of bytes which can be added
                to the message. It only changes the probabilities of
                mutations that grow the message; callers enforcing a hard
                limit should check the result and mutate again.
        """
        size_increase_hint = max(0, int(size_increase_hint))
        walker = self._make_walker()
        initializer = MessageInitializer(walker)

        # Bound pathological inputs before walking them
        initializer.trim(message, self._max_depth)

        walker.mutate(message, size_increase_hint)

        if self._keep_initialized:
            initializer.initialize_and_trim(message, self._max_depth)
        else:
            initializer.trim(message, self._max_depth)

        self.post_processors.apply(message, self.random)

    def cross_over(self, message1: Message, message2: Message) -> Message:
        """
        Combine two messages of the same type into a new one.

        Args:
            message1: First parent, not modified
            message2: Second parent, not modified

        Returns:
            A new message recombining the parents' fields

        Raises:
            TypeError: If the parents have different message types
        """
        crossover = CrossOver(self.random, self._keep_initialized, self._max_depth)
        result = crossover.cross_over(message1, message2)

        initializer = MessageInitializer(self._make_walker())
        if self._keep_initialized:
            initializer.initialize_and_trim(result, self._max_depth)
        else:
            initializer.trim(result, self._max_depth)

        self.post_processors.apply(result, self.random)
        return result

    def register_post_processor(self, message_type: Any, callback: PostProcessor) -> None:
        """
        Register a callback to run after every mutation or crossover.

        The callback is called once for every instance of `message_type` in
        the result, nested ones included, as callback(message, seed). It may
        adjust the message in a fuzzer-specific way; the seed should be
        used to initialize any random generator it needs.

        Args:
            message_type: Generated class, instance, Descriptor or full name
            callback: The post-processing function
        """
        self.post_processors.register(message_type, callback)

    def is_initialized(self, message: Message) -> bool:
        """
        Whether every required field of `message`, recursively, is set.

        Agrees with protobuf's own `message.IsInitialized()`.
        """
        return MessageInitializer.is_initialized(message)

    def generate_mutation_corpus(self, seed_message: Message, count: int = DEFAULT_CORPUS_SIZE,
                                 size_increase_hint: int = 0) -> List[Message]:
        """
        Generate a corpus of mutated copies of a seed message.

        Args:
            seed_message: Message to derive variants from, not modified
            count: Number of variants to generate
            size_increase_hint: Size budget passed to each mutation

        Returns:
            List of independently mutated copies
        """
        corpus = []
        for _ in range(count):
            instance = copy_message(seed_message)
            self.mutate(instance, size_increase_hint)
            corpus.append(instance)

        logger.debug(f"Generated {len(corpus)} variants of {seed_message.DESCRIPTOR.full_name}")
        return corpus

    def _make_walker(self) -> MessageWalker:
        return MessageWalker(self.field_mutator, self.random, self._keep_initialized,
                             self._random_to_default_ratio, self._max_depth)
