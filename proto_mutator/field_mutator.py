#!/usr/bin/env python3
"""
Field Mutators for Protobuf Mutation

This module provides the primitive mutation operators, one per scalar
kind. They are grouped in a single strategy class; subclass it and pass
the subclass to the Mutator to plug in domain-aware behaviour (for
example mutating into known-interesting values).
"""

import math
import struct
from typing import Any, List

from google.protobuf.descriptor import FieldDescriptor

from .random_engine import RandomEngine
from .schema_reflection import FieldKind, field_kind, is_closed_enum
from .utils.common import (
    ASCII_CODEPOINT_RATIO,
    INTEGER_DELTA_RATIO,
    INTERESTING_FLOAT_RATIO,
    MAX_INTEGER_DELTA,
    UNKNOWN_ENUM_RATIO,
    growth_factor,
)

FLOAT32_MAX = struct.unpack("<f", struct.pack("<I", 0x7F7FFFFF))[0]
FLOAT32_MIN = struct.unpack("<f", struct.pack("<I", 0x00800000))[0]

INTERESTING_FLOATS = [
    0.0, -0.0,
    math.inf, -math.inf, math.nan,
    FLOAT32_MIN, -FLOAT32_MIN,
    FLOAT32_MAX, -FLOAT32_MAX,
]

INTERESTING_DOUBLES = [
    0.0, -0.0,
    math.inf, -math.inf, math.nan,
    2.2250738585072014e-308, -2.2250738585072014e-308,
    1.7976931348623157e+308, -1.7976931348623157e+308,
]

MAX_CODEPOINT = 0x10FFFF
SURROGATE_START = 0xD800
SURROGATE_END = 0xDFFF

# Resize actions for string mutation
INSERT, DELETE, FLIP = range(3)


def wrap_integer(value: int, width: int, signed: bool) -> int:
    """Wrap an integer into the range of a fixed-width type."""
    value &= (1 << width) - 1
    if signed and value >= 1 << (width - 1):
        value -= 1 << width
    return value


def is_valid_codepoint(codepoint: int) -> bool:
    return (0 <= codepoint <= MAX_CODEPOINT
            and not SURROGATE_START <= codepoint <= SURROGATE_END)


class FieldMutator:
    """
    Primitive mutation operators.

    All randomness comes from the RandomEngine the mutator is bound to,
    which is the engine-wide source, so overrides stay reproducible.
    """

    def __init__(self, random_engine: RandomEngine):
        """
        Initialize the field mutator.

        Args:
            random_engine: Random source shared with the owning Mutator
        """
        self.random = random_engine

    def mutate_int32(self, value: int) -> int:
        return self._mutate_integer(value, 32, True)

    def mutate_int64(self, value: int) -> int:
        return self._mutate_integer(value, 64, True)

    def mutate_uint32(self, value: int) -> int:
        return self._mutate_integer(value, 32, False)

    def mutate_uint64(self, value: int) -> int:
        return self._mutate_integer(value, 64, False)

    def mutate_float(self, value: float) -> float:
        return self._mutate_floating(value, "<f", "<I", 32, INTERESTING_FLOATS)

    def mutate_double(self, value: float) -> float:
        return self._mutate_floating(value, "<d", "<Q", 64, INTERESTING_DOUBLES)

    def mutate_bool(self, value: bool) -> bool:
        """Simply invert the boolean value."""
        return not value

    def mutate_enum(self, index: int, item_count: int) -> int:
        """
        Pick a new enum value index.

        Args:
            index: Index of the current value, or -1 if it is not declared
            item_count: Number of declared values

        Returns:
            A declared index different from `index` when there is a choice
        """
        if item_count <= 1:
            return 0

        if not 0 <= index < item_count:
            return self.random.index(item_count)

        # Skip over the current value
        return (index + 1 + self.random.index(item_count - 1)) % item_count

    def mutate_string(self, value: bytes, size_increase_hint: int) -> bytes:
        """
        Insert, delete or flip exactly one byte.

        Args:
            value: Current bytes value
            size_increase_hint: Remaining size budget in bytes

        Returns:
            Mutated bytes whose length differs from `value` by at most one
        """
        data = bytearray(value)
        action = self._choose_resize_action(len(data), size_increase_hint)

        if action == INSERT:
            data.insert(self.random.index(len(data) + 1), self.random.index(256))
        elif action == DELETE:
            del data[self.random.index(len(data))]
        else:
            position = self.random.index(len(data))
            data[position] ^= 1 << self.random.index(8)

        return bytes(data)

    def mutate_utf8_string(self, value: str, size_increase_hint: int) -> str:
        """
        Insert, delete or replace exactly one codepoint.

        The result is always valid UTF-8: surrogates and values beyond
        U+10FFFF are never produced.
        """
        codepoints = [ord(c) for c in value]
        action = self._choose_resize_action(len(codepoints), size_increase_hint)

        if action == INSERT:
            codepoints.insert(self.random.index(len(codepoints) + 1),
                              self._random_codepoint())
        elif action == DELETE:
            del codepoints[self.random.index(len(codepoints))]
        else:
            position = self.random.index(len(codepoints))
            codepoints[position] = self._flip_codepoint(codepoints[position])

        return "".join(chr(c) for c in codepoints)

    def _mutate_integer(self, value: int, width: int, signed: bool) -> int:
        """Flip one bit of the fixed-width value or apply a small delta."""
        if self.random.one_in(INTEGER_DELTA_RATIO):
            delta = self.random.randint(-MAX_INTEGER_DELTA, MAX_INTEGER_DELTA) or 1
            return wrap_integer(value + delta, width, signed)

        unsigned = wrap_integer(value, width, False)
        flipped = unsigned ^ (1 << self.random.index(width))
        return wrap_integer(flipped, width, signed)

    def _mutate_floating(self, value: float, float_format: str, int_format: str,
                         width: int, interesting: List[float]) -> float:
        """Pick an interesting value or flip one bit of the IEEE-754 pattern."""
        if self.random.one_in(INTERESTING_FLOAT_RATIO):
            return self.random.choice(interesting)

        (pattern,) = struct.unpack(int_format, struct.pack(float_format, value))
        pattern ^= 1 << self.random.index(width)
        (result,) = struct.unpack(float_format, struct.pack(int_format, pattern))
        return result

    def _choose_resize_action(self, length: int, size_increase_hint: int) -> int:
        """
        Choose between insert, delete and flip.

        Insertion gets rarer as the size budget runs out; deletion gets
        more likely at the same time.
        """
        growth = growth_factor(size_increase_hint)
        insert_weight = int(1000 * growth)
        delete_weight = 1000 - insert_weight // 2 if length else 0
        flip_weight = 1000 if length else 0

        action = self.random.weighted_index([insert_weight, delete_weight, flip_weight])
        if action < 0:
            # Empty value and no budget: inserting is the only possible change
            return INSERT
        return action

    def _random_codepoint(self) -> int:
        if self.random.one_in(ASCII_CODEPOINT_RATIO):
            return self.random.index(0x80)

        # Draw from the non-ASCII range with the surrogate block cut out
        surrogate_count = SURROGATE_END - SURROGATE_START + 1
        codepoint = self.random.randint(0x80, MAX_CODEPOINT - surrogate_count)
        if codepoint >= SURROGATE_START:
            codepoint += surrogate_count
        return codepoint

    def _flip_codepoint(self, codepoint: int) -> int:
        width = max(7, codepoint.bit_length())
        flipped = codepoint ^ (1 << self.random.index(width))
        if is_valid_codepoint(flipped):
            return flipped
        return self._random_codepoint()


def mutate_scalar(mutator: FieldMutator, field: FieldDescriptor, value: Any,
                  size_increase_hint: int) -> Any:
    """
    Dispatch a scalar value to the matching primitive mutator.

    Args:
        mutator: Strategy providing the per-kind operators
        field: Descriptor typing the value
        value: Current value
        size_increase_hint: Remaining size budget in bytes

    Returns:
        The mutated value, valid for assignment to the field
    """
    kind = field_kind(field)

    if kind is FieldKind.INT32:
        return mutator.mutate_int32(value)
    elif kind is FieldKind.INT64:
        return mutator.mutate_int64(value)
    elif kind is FieldKind.UINT32:
        return mutator.mutate_uint32(value)
    elif kind is FieldKind.UINT64:
        return mutator.mutate_uint64(value)
    elif kind is FieldKind.FLOAT:
        return mutator.mutate_float(value)
    elif kind is FieldKind.DOUBLE:
        return mutator.mutate_double(value)
    elif kind is FieldKind.BOOL:
        return mutator.mutate_bool(value)
    elif kind is FieldKind.ENUM:
        return _mutate_enum_number(mutator, field, value)
    elif kind is FieldKind.STRING:
        return mutator.mutate_utf8_string(value, size_increase_hint)
    elif kind is FieldKind.BYTES:
        return mutator.mutate_string(value, size_increase_hint)

    raise ValueError(f"Field {field.full_name} is not a scalar field")


def _mutate_enum_number(mutator: FieldMutator, field: FieldDescriptor, number: int) -> int:
    enum_type = field.enum_type

    # Open enums accept undeclared numbers; probe them now and then
    if not is_closed_enum(field) and mutator.random.one_in(UNKNOWN_ENUM_RATIO):
        return mutator.mutate_int32(number)

    current = enum_type.values_by_number.get(number)
    index = current.index if current is not None else -1
    new_index = mutator.mutate_enum(index, len(enum_type.values))
    return enum_type.values[new_index].number
