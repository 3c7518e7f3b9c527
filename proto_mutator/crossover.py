#!/usr/bin/env python3
"""
CrossOver for Structure-Aware Mutation

This module combines two messages of the same type into a new child
message. Scalar values are always taken from one parent or the other,
never synthesized; repeated fields are merged index by index with the
occasional block taken wholesale; submessages present in both parents
are crossed recursively.
"""

import logging
from typing import Any

from google.protobuf.descriptor import FieldDescriptor, OneofDescriptor
from google.protobuf.message import Message

from .random_engine import RandomEngine
from .schema_reflection import (
    has_presence,
    is_map,
    is_message,
    is_repeated,
    is_required,
    iter_fields,
    map_value_field,
    sorted_map_keys,
)
from .utils.common import CROSSOVER_BLOCK_RATIO, CROSSOVER_RECURSE_RATIO

logger = logging.getLogger(__name__)


def copy_field(source: Message, destination: Message, field: FieldDescriptor) -> None:
    """Copy the value of a singular field between two messages of one type."""
    if is_message(field):
        getattr(destination, field.name).CopyFrom(getattr(source, field.name))
    else:
        setattr(destination, field.name, getattr(source, field.name))


def append_value(container: Any, field: FieldDescriptor, value: Any) -> None:
    """Append a copy of `value` to a repeated field container."""
    if is_message(field):
        container.add().CopyFrom(value)
    else:
        container.append(value)


class CrossOver:
    """Recombines the substructure of two same-typed messages."""

    def __init__(self, random_engine: RandomEngine, keep_initialized: bool, max_depth: int):
        """
        Initialize the crossover engine.

        Args:
            random_engine: Engine-wide random source
            keep_initialized: Always keep required fields present in a parent
            max_depth: Levels below the root where subtrees are still mixed;
                deeper, a whole subtree is copied from one parent
        """
        self.random = random_engine
        self.keep_initialized = keep_initialized
        self.max_depth = max_depth

    def cross_over(self, message1: Message, message2: Message) -> Message:
        """
        Create a new message combining two parents.

        Args:
            message1: First parent, left untouched
            message2: Second parent of the same type, left untouched

        Returns:
            A new message of the parents' type

        Raises:
            TypeError: If the parents are of different message types
        """
        name1 = message1.DESCRIPTOR.full_name
        name2 = message2.DESCRIPTOR.full_name
        if name1 != name2:
            raise TypeError(f"Cannot cross over {name1} with {name2}")

        result = type(message1)()
        self._cross(message1, message2, result, self.max_depth)
        return result

    def _cross(self, parent1: Message, parent2: Message, result: Message, depth: int) -> None:
        for field in iter_fields(result.DESCRIPTOR):
            oneof = field.containing_oneof
            if oneof is not None:
                if oneof.fields[0].name == field.name:
                    self._cross_oneof(parent1, parent2, result, oneof, depth)
            elif is_map(field):
                self._cross_map(parent1, parent2, result, field, depth)
            elif is_repeated(field):
                self._cross_repeated(parent1, parent2, result, field, depth)
            elif is_message(field):
                self._cross_message(parent1, parent2, result, field, depth)
            else:
                self._cross_scalar(parent1, parent2, result, field)

    def _pick_parent(self, parent1: Message, parent2: Message) -> Message:
        return parent1 if self.random.coin() else parent2

    def _keep_single(self, field: FieldDescriptor) -> bool:
        """Decide whether a value present in only one parent is kept."""
        if is_required(field) and self.keep_initialized:
            return True
        return self.random.coin()

    def _cross_scalar(self, parent1: Message, parent2: Message, result: Message,
                      field: FieldDescriptor) -> None:
        if not has_presence(field):
            copy_field(self._pick_parent(parent1, parent2), result, field)
            return

        in1 = parent1.HasField(field.name)
        in2 = parent2.HasField(field.name)
        if in1 and in2:
            copy_field(self._pick_parent(parent1, parent2), result, field)
        elif in1 or in2:
            if self._keep_single(field):
                copy_field(parent1 if in1 else parent2, result, field)

    def _cross_message(self, parent1: Message, parent2: Message, result: Message,
                       field: FieldDescriptor, depth: int) -> None:
        in1 = parent1.HasField(field.name)
        in2 = parent2.HasField(field.name)

        if in1 and in2:
            if depth > 0:
                child = getattr(result, field.name)
                child.SetInParent()
                self._cross(getattr(parent1, field.name), getattr(parent2, field.name),
                            child, depth - 1)
            else:
                copy_field(self._pick_parent(parent1, parent2), result, field)
        elif in1 or in2:
            if self._keep_single(field):
                copy_field(parent1 if in1 else parent2, result, field)

    def _cross_oneof(self, parent1: Message, parent2: Message, result: Message,
                     oneof: OneofDescriptor, depth: int) -> None:
        case1 = parent1.WhichOneof(oneof.name)
        case2 = parent2.WhichOneof(oneof.name)
        if case1 is None and case2 is None:
            return

        descriptor = result.DESCRIPTOR
        if case1 == case2 and is_message(descriptor.fields_by_name[case1]) and depth > 0:
            child = getattr(result, case1)
            child.SetInParent()
            self._cross(getattr(parent1, case1), getattr(parent2, case1), child, depth - 1)
            return

        # Take the whole active case from one parent, never mixing cases
        source = self._pick_parent(parent1, parent2)
        case = source.WhichOneof(oneof.name)
        if case is not None:
            copy_field(source, result, descriptor.fields_by_name[case])

    def _cross_repeated(self, parent1: Message, parent2: Message, result: Message,
                        field: FieldDescriptor, depth: int) -> None:
        values1 = getattr(parent1, field.name)
        values2 = getattr(parent2, field.name)
        longest = max(len(values1), len(values2))
        if not longest:
            return

        output = getattr(result, field.name)
        recurse = is_message(field) and depth > 0

        # Occasionally take a contiguous range from one parent wholesale
        block_start = block_stop = 0
        block_source = values1
        if longest > 1 and self.random.one_in(CROSSOVER_BLOCK_RATIO):
            block_start = self.random.index(longest)
            block_stop = block_start + 1 + self.random.index(longest - block_start)
            block_source = values1 if self.random.coin() else values2
            logger.debug(f"Crossing {field.full_name} with block [{block_start}, {block_stop})")

        for i in range(longest):
            if block_start <= i < block_stop:
                if i < len(block_source):
                    append_value(output, field, block_source[i])
                continue

            has1 = i < len(values1)
            has2 = i < len(values2)
            if has1 and has2:
                if recurse and self.random.one_in(CROSSOVER_RECURSE_RATIO):
                    self._cross(values1[i], values2[i], output.add(), depth - 1)
                else:
                    append_value(output, field, values1[i] if self.random.coin() else values2[i])
            elif self.random.coin():
                append_value(output, field, values1[i] if has1 else values2[i])

    def _cross_map(self, parent1: Message, parent2: Message, result: Message,
                   field: FieldDescriptor, depth: int) -> None:
        map1 = getattr(parent1, field.name)
        map2 = getattr(parent2, field.name)
        keys = sorted(set(sorted_map_keys(map1)) | set(sorted_map_keys(map2)))
        if not keys:
            return

        output = getattr(result, field.name)
        value_is_message = is_message(map_value_field(field))

        for key in keys:
            in1 = key in map1
            in2 = key in map2
            if in1 and in2:
                if value_is_message and depth > 0:
                    self._cross(map1[key], map2[key], output.get_or_create(key), depth - 1)
                    continue
                source = map1 if self.random.coin() else map2
            elif self.random.coin():
                source = map1 if in1 else map2
            else:
                continue

            if value_is_message:
                output.get_or_create(key).CopyFrom(source[key])
            else:
                output[key] = source[key]
