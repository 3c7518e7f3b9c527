#!/usr/bin/env python3
"""
Message Walker for Structure-Aware Mutation

This module walks a message tree, offers every applicable (field, action)
pair to a weighted reservoir sampler, and applies the one selected. The
walk is bounded by an explicit depth counter, and the weights of actions
that grow the message follow the remaining size budget.
"""

import enum
import logging
from typing import Any

from google.protobuf.descriptor import FieldDescriptor, OneofDescriptor
from google.protobuf.message import Message

from .field_mutator import FieldMutator, mutate_scalar
from .random_engine import RandomEngine, WeightedReservoirSampler
from .schema_reflection import (
    FieldInstance,
    child_messages,
    default_value,
    field_size,
    has_presence,
    is_map,
    is_message,
    is_repeated,
    is_required,
    is_set,
    iter_fields,
    map_key_field,
    map_value_field,
    sorted_map_keys,
)
from .utils.common import (
    ADD_WEIGHT,
    DELETE_WEIGHT,
    MIN_ADD_WEIGHT,
    MUTATE_WEIGHT,
    ONEOF_SWITCH_WEIGHT,
    growth_factor,
)

logger = logging.getLogger(__name__)

MAX_NEW_KEY_ATTEMPTS = 8


class Mutation(enum.Enum):
    """Structural actions the walker can apply to a field slot."""
    MUTATE = "mutate"
    ADD = "add"
    CLONE = "clone"
    DELETE = "delete"


class Candidate:
    """One sampled action together with the budget in force at its node."""

    __slots__ = ("instance", "mutation", "size_hint")

    def __init__(self, instance: FieldInstance, mutation: Mutation, size_hint: int):
        self.instance = instance
        self.mutation = mutation
        self.size_hint = size_hint


def add_weight(size_hint: int, count: int = 0) -> int:
    """Weight of a size-increasing action on a field holding `count` values."""
    return max(MIN_ADD_WEIGHT, int(ADD_WEIGHT * growth_factor(size_hint)) // (1 + count))


def delete_weight(size_hint: int) -> int:
    """Weight of a removal; rises as the size budget shrinks."""
    return DELETE_WEIGHT + int(DELETE_WEIGHT * (1.0 - growth_factor(size_hint)))


class MessageWalker:
    """Recursive sampler and applier of one structural mutation."""

    def __init__(self, field_mutator: FieldMutator, random_engine: RandomEngine,
                 keep_initialized: bool, random_to_default_ratio: int, max_depth: int):
        """
        Initialize a message walker.

        Args:
            field_mutator: Primitive mutators for scalar values
            random_engine: Engine-wide random source
            keep_initialized: Never offer removal of required fields
            random_to_default_ratio: One-in-N chance a scalar mutation
                resets the value to its schema default
            max_depth: Number of levels below the root the walk may descend
        """
        self.field_mutator = field_mutator
        self.random = random_engine
        self.keep_initialized = keep_initialized
        self.random_to_default_ratio = random_to_default_ratio
        self.max_depth = max_depth

    def mutate(self, message: Message, size_increase_hint: int) -> bool:
        """
        Apply one structural mutation somewhere in the tree.

        Args:
            message: Root message, mutated in place
            size_increase_hint: Approximate number of bytes the message may grow

        Returns:
            True if a mutation was applied, False if the tree offered none
        """
        sampler = WeightedReservoirSampler(self.random)
        self._sample(message, self.max_depth, size_increase_hint, sampler)

        if sampler.is_empty():
            logger.debug(f"No mutation available for {message.DESCRIPTOR.full_name}")
            return False

        candidate = sampler.selected
        logger.debug(f"Applying {candidate.mutation.value} to {candidate.instance!r}")
        self._apply(candidate)
        return True

    def _sample(self, message: Message, depth: int, size_hint: int,
                sampler: WeightedReservoirSampler) -> None:
        """Offer the candidates of one node, then descend into its children."""
        children = []

        for field in iter_fields(message.DESCRIPTOR):
            oneof = field.containing_oneof
            if oneof is not None:
                # Handle the entire oneof group on its first member
                if oneof.fields[0].name == field.name:
                    self._sample_oneof(message, oneof, depth, size_hint, sampler)
            elif is_map(field):
                self._sample_map(message, field, depth, size_hint, sampler)
            elif is_repeated(field):
                self._sample_repeated(message, field, depth, size_hint, sampler)
            else:
                self._sample_singular(message, field, depth, size_hint, sampler)

            children.extend(child_messages(message, field))

        # Recursion budget exhausted: leave the subtree as it is
        if depth <= 0 or not children:
            return

        child_hint = size_hint // len(children)
        for child in children:
            self._sample(child, depth - 1, child_hint, sampler)

    def _sample_singular(self, message: Message, field: FieldDescriptor, depth: int,
                         size_hint: int, sampler: WeightedReservoirSampler) -> None:
        instance = FieldInstance(message, field)

        if is_set(message, field):
            if not is_message(field):
                sampler.try_item(MUTATE_WEIGHT, Candidate(instance, Mutation.MUTATE, size_hint))
            if has_presence(field) and not (is_required(field) and self.keep_initialized):
                sampler.try_item(delete_weight(size_hint),
                                 Candidate(instance, Mutation.DELETE, size_hint))
        elif not (is_message(field) and depth <= 0):
            sampler.try_item(add_weight(size_hint), Candidate(instance, Mutation.ADD, size_hint))

    def _sample_repeated(self, message: Message, field: FieldDescriptor, depth: int,
                         size_hint: int, sampler: WeightedReservoirSampler) -> None:
        size = field_size(message, field)
        can_grow = not (is_message(field) and depth <= 0)
        grow_weight = add_weight(size_hint, size)

        if can_grow:
            sampler.try_item(grow_weight,
                             Candidate(FieldInstance(message, field), Mutation.ADD, size_hint))

        if not size:
            return

        instance = FieldInstance(message, field, index=self.random.index(size))
        if can_grow:
            sampler.try_item(grow_weight, Candidate(instance, Mutation.CLONE, size_hint))
        if not is_message(field):
            sampler.try_item(MUTATE_WEIGHT, Candidate(instance, Mutation.MUTATE, size_hint))
        sampler.try_item(delete_weight(size_hint), Candidate(instance, Mutation.DELETE, size_hint))

    def _sample_map(self, message: Message, field: FieldDescriptor, depth: int,
                    size_hint: int, sampler: WeightedReservoirSampler) -> None:
        keys = sorted_map_keys(getattr(message, field.name))
        value_is_message = is_message(map_value_field(field))

        if not (value_is_message and depth <= 0):
            sampler.try_item(add_weight(size_hint, len(keys)),
                             Candidate(FieldInstance(message, field), Mutation.ADD, size_hint))

        if not keys:
            return

        instance = FieldInstance(message, field, key=self.random.choice(keys))
        if not value_is_message:
            sampler.try_item(MUTATE_WEIGHT, Candidate(instance, Mutation.MUTATE, size_hint))
        sampler.try_item(delete_weight(size_hint), Candidate(instance, Mutation.DELETE, size_hint))

    def _sample_oneof(self, message: Message, oneof: OneofDescriptor, depth: int,
                      size_hint: int, sampler: WeightedReservoirSampler) -> None:
        active_name = message.WhichOneof(oneof.name)
        others = [f for f in oneof.fields if f.name != active_name]

        if others:
            # Switching cases clears the previously active member
            target = self.random.choice(others)
            if not (is_message(target) and depth <= 0):
                sampler.try_item(add_weight(size_hint) + ONEOF_SWITCH_WEIGHT,
                                 Candidate(FieldInstance(message, target), Mutation.ADD, size_hint))

        if active_name is None:
            return

        active = message.DESCRIPTOR.fields_by_name[active_name]
        instance = FieldInstance(message, active)
        if not is_message(active):
            sampler.try_item(MUTATE_WEIGHT, Candidate(instance, Mutation.MUTATE, size_hint))
        sampler.try_item(delete_weight(size_hint), Candidate(instance, Mutation.DELETE, size_hint))

    def _apply(self, candidate: Candidate) -> None:
        instance = candidate.instance
        mutation = candidate.mutation

        if mutation is Mutation.MUTATE:
            value = self.mutate_value(instance.value_field, instance.load(), candidate.size_hint)
            instance.store(value)
        elif mutation is Mutation.DELETE:
            instance.delete()
        elif mutation is Mutation.ADD:
            self._add(instance, candidate.size_hint)
        elif mutation is Mutation.CLONE:
            self._clone(instance)

    def mutate_value(self, field: FieldDescriptor, value: Any, size_hint: int) -> Any:
        """Reset to the default one time in N, otherwise apply the primitive mutator."""
        if self.random.one_in(self.random_to_default_ratio):
            return default_value(field)
        return mutate_scalar(self.field_mutator, field, value, size_hint)

    def new_scalar(self, field: FieldDescriptor, size_hint: int) -> Any:
        """Create a value by mutating the schema default."""
        return mutate_scalar(self.field_mutator, field, default_value(field), size_hint)

    def _add(self, instance: FieldInstance, size_hint: int) -> None:
        message = instance.message
        field = instance.field

        if is_map(field):
            self._add_map_entry(instance.container(), field, size_hint)
        elif is_repeated(field):
            container = instance.container()
            if is_message(field):
                container.add()
            else:
                container.append(self.new_scalar(field, size_hint))
        elif is_message(field):
            getattr(message, field.name).SetInParent()
        else:
            setattr(message, field.name, self.new_scalar(field, size_hint))

    def _add_map_entry(self, container: Any, field: FieldDescriptor, size_hint: int) -> None:
        key_field = map_key_field(field)
        key = self.new_scalar(key_field, size_hint)
        for _ in range(MAX_NEW_KEY_ATTEMPTS):
            if key not in container:
                break
            key = mutate_scalar(self.field_mutator, key_field, key, size_hint)
        else:
            if key in container:
                logger.warning(f"No unused key found for {field.full_name}, replacing {key!r}")

        value_field = map_value_field(field)
        if is_message(value_field):
            container.get_or_create(key)
        else:
            container[key] = self.new_scalar(value_field, size_hint)

    def _clone(self, instance: FieldInstance) -> None:
        """Append a copy of an existing element of a repeated field."""
        container = instance.container()
        value = container[instance.index]
        if is_message(instance.field):
            container.add().CopyFrom(value)
        else:
            container.append(value)
