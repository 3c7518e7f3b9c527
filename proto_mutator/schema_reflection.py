#!/usr/bin/env python3
"""
Schema Reflection for Protobuf Mutation

This module wraps protobuf descriptors with the small vocabulary the
mutation engine needs: a scalar kind per field, cardinality and presence
predicates, schema defaults, and a handle addressing one field slot of a
message instance.
"""

import enum
from typing import Any, List, Optional

from google.protobuf.descriptor import Descriptor, FieldDescriptor
from google.protobuf.message import Message


class FieldKind(enum.Enum):
    """Value kinds of protobuf fields."""
    INT32 = "int32"
    INT64 = "int64"
    UINT32 = "uint32"
    UINT64 = "uint64"
    FLOAT = "float"
    DOUBLE = "double"
    BOOL = "bool"
    ENUM = "enum"
    STRING = "string"
    BYTES = "bytes"
    MESSAGE = "message"


_CPP_TYPE_KINDS = {
    FieldDescriptor.CPPTYPE_INT32: FieldKind.INT32,
    FieldDescriptor.CPPTYPE_INT64: FieldKind.INT64,
    FieldDescriptor.CPPTYPE_UINT32: FieldKind.UINT32,
    FieldDescriptor.CPPTYPE_UINT64: FieldKind.UINT64,
    FieldDescriptor.CPPTYPE_FLOAT: FieldKind.FLOAT,
    FieldDescriptor.CPPTYPE_DOUBLE: FieldKind.DOUBLE,
    FieldDescriptor.CPPTYPE_BOOL: FieldKind.BOOL,
    FieldDescriptor.CPPTYPE_ENUM: FieldKind.ENUM,
    FieldDescriptor.CPPTYPE_MESSAGE: FieldKind.MESSAGE,
}

_ZERO_VALUES = {
    FieldKind.INT32: 0,
    FieldKind.INT64: 0,
    FieldKind.UINT32: 0,
    FieldKind.UINT64: 0,
    FieldKind.FLOAT: 0.0,
    FieldKind.DOUBLE: 0.0,
    FieldKind.BOOL: False,
    FieldKind.STRING: "",
    FieldKind.BYTES: b"",
}


def field_kind(field: FieldDescriptor) -> FieldKind:
    """Return the value kind of a field."""
    if field.cpp_type == FieldDescriptor.CPPTYPE_STRING:
        if field.type == FieldDescriptor.TYPE_BYTES:
            return FieldKind.BYTES
        return FieldKind.STRING
    return _CPP_TYPE_KINDS[field.cpp_type]


def is_message(field: FieldDescriptor) -> bool:
    return field.cpp_type == FieldDescriptor.CPPTYPE_MESSAGE


def is_repeated(field: FieldDescriptor) -> bool:
    return field.is_repeated


def is_required(field: FieldDescriptor) -> bool:
    return field.is_required


def is_map(field: FieldDescriptor) -> bool:
    """Whether a field is a map<K, V> (a repeated field of map entries)."""
    return (is_repeated(field) and is_message(field)
            and field.message_type.GetOptions().map_entry)


def has_presence(field: FieldDescriptor) -> bool:
    """Whether a singular field tracks set/unset separately from its value."""
    return field.has_presence


def map_key_field(field: FieldDescriptor) -> FieldDescriptor:
    return field.message_type.fields_by_name["key"]


def map_value_field(field: FieldDescriptor) -> FieldDescriptor:
    return field.message_type.fields_by_name["value"]


def is_closed_enum(field: FieldDescriptor) -> bool:
    """Closed enums reject numbers that are not declared in the schema."""
    return field.enum_type.is_closed


def default_value(field: FieldDescriptor) -> Any:
    """
    Return the schema default for one value of a scalar field.

    Args:
        field: Scalar field descriptor (for maps, pass the value or key field)

    Returns:
        The declared default for singular fields, the type's zero value for
        repeated ones
    """
    kind = field_kind(field)
    if kind is FieldKind.MESSAGE:
        raise ValueError(f"Field {field.full_name} has no scalar default")

    if not is_repeated(field):
        return field.default_value

    if kind is FieldKind.ENUM:
        return field.enum_type.values[0].number

    return _ZERO_VALUES[kind]


def is_set(message: Message, field: FieldDescriptor) -> bool:
    """
    Check whether a field holds a value.

    Repeated fields are set when non-empty. Implicit-presence scalars
    always hold a value and count as set.
    """
    if is_repeated(field):
        return len(getattr(message, field.name)) > 0

    if has_presence(field):
        return message.HasField(field.name)

    return True


def field_size(message: Message, field: FieldDescriptor) -> int:
    return len(getattr(message, field.name))


def sorted_map_keys(container: Any) -> List[Any]:
    """Map keys in a stable order so that draws do not depend on hashing."""
    return sorted(container.keys())


def child_messages(message: Message, field: FieldDescriptor) -> List[Message]:
    """
    Collect the submessages currently stored in a message-typed field.

    Never creates presence as a side effect.
    """
    if not is_message(field):
        return []

    if is_map(field):
        if not is_message(map_value_field(field)):
            return []
        container = getattr(message, field.name)
        return [container[key] for key in sorted_map_keys(container)]

    if is_repeated(field):
        return list(getattr(message, field.name))

    if message.HasField(field.name):
        return [getattr(message, field.name)]

    return []


def iter_fields(descriptor: Descriptor) -> List[FieldDescriptor]:
    """Fields of a message type in declaration order."""
    return list(descriptor.fields)


class FieldInstance:
    """
    Handle to one field slot of a message.

    Addresses a singular field, one element of a repeated field (`index`),
    or one value of a map field (`key`).
    """

    _NO_KEY = object()

    def __init__(self, message: Message, field: FieldDescriptor,
                 index: Optional[int] = None, key: Any = _NO_KEY):
        self.message = message
        self.field = field
        self.index = index
        self.key = key

    @property
    def is_map_value(self) -> bool:
        return self.key is not FieldInstance._NO_KEY

    @property
    def value_field(self) -> FieldDescriptor:
        if self.is_map_value:
            return map_value_field(self.field)
        return self.field

    def container(self) -> Any:
        return getattr(self.message, self.field.name)

    def load(self) -> Any:
        """Read the value stored in this slot."""
        if self.is_map_value:
            return self.container()[self.key]
        if self.index is not None:
            return self.container()[self.index]
        return getattr(self.message, self.field.name)

    def store(self, value: Any) -> None:
        """Overwrite the scalar value stored in this slot."""
        if self.is_map_value:
            self.container()[self.key] = value
        elif self.index is not None:
            self.container()[self.index] = value
        else:
            setattr(self.message, self.field.name, value)

    def delete(self) -> None:
        """Remove the value: clear a singular field, drop an element or key."""
        if self.is_map_value:
            del self.container()[self.key]
        elif self.index is not None:
            del self.container()[self.index]
        else:
            self.message.ClearField(self.field.name)

    def __repr__(self) -> str:
        if self.is_map_value:
            return f"{self.field.full_name}[{self.key!r}]"
        if self.index is not None:
            return f"{self.field.full_name}[{self.index}]"
        return self.field.full_name
