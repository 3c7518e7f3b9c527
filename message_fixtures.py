"""
Message types for the test suite.

The schemas are assembled at import time with descriptor_pb2 and loaded
into a private descriptor pool, so the tests need no protoc step.
"""

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

FieldProto = descriptor_pb2.FieldDescriptorProto

PACKAGE = "proto_mutator.test"
PACKAGE3 = "proto_mutator.test3"

OPTIONAL = FieldProto.LABEL_OPTIONAL
REQUIRED = FieldProto.LABEL_REQUIRED
REPEATED = FieldProto.LABEL_REPEATED


def _add_field(message_proto, name, number, field_type, label=OPTIONAL,
               type_name=None, oneof_index=None):
    field = message_proto.field.add()
    field.name = name
    field.number = number
    field.type = field_type
    field.label = label
    if type_name:
        field.type_name = type_name
    if oneof_index is not None:
        field.oneof_index = oneof_index
    return field


def _add_enum(container, name, values):
    enum_proto = container.enum_type.add()
    enum_proto.name = name
    for number, value_name in enumerate(values):
        value = enum_proto.value.add()
        value.name = value_name
        value.number = number
    return enum_proto


def _add_map(message_proto, package, name, number, key_type, value_type, value_type_name=None):
    entry_name = "".join(part.capitalize() for part in name.split("_")) + "Entry"
    entry = message_proto.nested_type.add()
    entry.name = entry_name
    entry.options.map_entry = True
    _add_field(entry, "key", 1, key_type)
    _add_field(entry, "value", 2, value_type, type_name=value_type_name)
    _add_field(message_proto, name, number, FieldProto.TYPE_MESSAGE, REPEATED,
               f".{package}.{message_proto.name}.{entry_name}")


def _build_proto2_file():
    file_proto = descriptor_pb2.FileDescriptorProto()
    file_proto.name = "proto_mutator/test_messages.proto"
    file_proto.package = PACKAGE
    file_proto.syntax = "proto2"

    _add_enum(file_proto, "Color", ["RED", "GREEN", "BLUE"])

    leaf = file_proto.message_type.add()
    leaf.name = "Leaf"
    _add_field(leaf, "x", 1, FieldProto.TYPE_INT32)
    _add_field(leaf, "name", 2, FieldProto.TYPE_STRING)

    scalars = file_proto.message_type.add()
    scalars.name = "Scalars"
    _add_field(scalars, "i32", 1, FieldProto.TYPE_INT32)
    _add_field(scalars, "i64", 2, FieldProto.TYPE_INT64)
    _add_field(scalars, "u32", 3, FieldProto.TYPE_UINT32)
    _add_field(scalars, "u64", 4, FieldProto.TYPE_UINT64)
    _add_field(scalars, "f", 5, FieldProto.TYPE_FLOAT)
    _add_field(scalars, "d", 6, FieldProto.TYPE_DOUBLE)
    _add_field(scalars, "b", 7, FieldProto.TYPE_BOOL)
    _add_field(scalars, "color", 8, FieldProto.TYPE_ENUM, type_name=f".{PACKAGE}.Color")
    _add_field(scalars, "text", 9, FieldProto.TYPE_STRING)
    _add_field(scalars, "data", 10, FieldProto.TYPE_BYTES)
    _add_field(scalars, "numbers", 11, FieldProto.TYPE_INT32, REPEATED)
    _add_field(scalars, "words", 12, FieldProto.TYPE_STRING, REPEATED)

    person = file_proto.message_type.add()
    person.name = "Person"
    _add_field(person, "name", 1, FieldProto.TYPE_STRING, REQUIRED)
    _add_field(person, "age", 2, FieldProto.TYPE_INT32)

    counter = file_proto.message_type.add()
    counter.name = "Counter"
    _add_field(counter, "value", 1, FieldProto.TYPE_INT32, REQUIRED)

    node = file_proto.message_type.add()
    node.name = "Node"
    node.oneof_decl.add().name = "payload"
    _add_field(node, "value", 1, FieldProto.TYPE_INT32)
    _add_field(node, "left", 2, FieldProto.TYPE_MESSAGE, type_name=f".{PACKAGE}.Node")
    _add_field(node, "right", 3, FieldProto.TYPE_MESSAGE, type_name=f".{PACKAGE}.Node")
    _add_field(node, "children", 4, FieldProto.TYPE_MESSAGE, REPEATED, f".{PACKAGE}.Node")
    _add_field(node, "label", 5, FieldProto.TYPE_STRING, oneof_index=0)
    _add_field(node, "leaf", 6, FieldProto.TYPE_MESSAGE, type_name=f".{PACKAGE}.Leaf",
               oneof_index=0)
    _add_field(node, "code", 7, FieldProto.TYPE_INT64, oneof_index=0)
    _add_map(node, PACKAGE, "counters", 8, FieldProto.TYPE_STRING, FieldProto.TYPE_INT32)
    _add_map(node, PACKAGE, "leaves", 9, FieldProto.TYPE_INT32, FieldProto.TYPE_MESSAGE,
             f".{PACKAGE}.Leaf")
    _add_field(node, "owner", 10, FieldProto.TYPE_MESSAGE, type_name=f".{PACKAGE}.Person")

    self_required = file_proto.message_type.add()
    self_required.name = "SelfRequired"
    _add_field(self_required, "next", 1, FieldProto.TYPE_MESSAGE, REQUIRED,
               f".{PACKAGE}.SelfRequired")
    _add_field(self_required, "value", 2, FieldProto.TYPE_INT32)

    return file_proto


def _build_proto3_file():
    file_proto = descriptor_pb2.FileDescriptorProto()
    file_proto.name = "proto_mutator/test_messages3.proto"
    file_proto.package = PACKAGE3
    file_proto.syntax = "proto3"

    _add_enum(file_proto, "Mode", ["MODE_UNSPECIFIED", "MODE_A", "MODE_B"])

    plain = file_proto.message_type.add()
    plain.name = "Plain"
    _add_field(plain, "count", 1, FieldProto.TYPE_INT32)
    _add_field(plain, "title", 2, FieldProto.TYPE_STRING)
    _add_field(plain, "mode", 3, FieldProto.TYPE_ENUM, type_name=f".{PACKAGE3}.Mode")
    _add_field(plain, "blobs", 4, FieldProto.TYPE_BYTES, REPEATED)

    return file_proto


POOL = descriptor_pool.DescriptorPool()
POOL.AddSerializedFile(_build_proto2_file().SerializeToString())
POOL.AddSerializedFile(_build_proto3_file().SerializeToString())


def _message_class(full_name):
    return message_factory.GetMessageClass(POOL.FindMessageTypeByName(full_name))


Leaf = _message_class(f"{PACKAGE}.Leaf")
Scalars = _message_class(f"{PACKAGE}.Scalars")
Person = _message_class(f"{PACKAGE}.Person")
Counter = _message_class(f"{PACKAGE}.Counter")
Node = _message_class(f"{PACKAGE}.Node")
SelfRequired = _message_class(f"{PACKAGE}.SelfRequired")
Plain = _message_class(f"{PACKAGE3}.Plain")


def serialize(message):
    """Deterministic wire bytes, accepted for uninitialized messages too."""
    return message.SerializePartialToString(deterministic=True)


def message_depth(message):
    """Depth of the deepest Node chain through left/right/children."""
    depths = [0]
    if message.HasField("left"):
        depths.append(message_depth(message.left))
    if message.HasField("right"):
        depths.append(message_depth(message.right))
    for child in message.children:
        depths.append(message_depth(child))
    return 1 + max(depths)


def sample_node():
    """A small populated tree exercising every field shape of Node."""
    root = Node(value=5, label="root")
    root.left.value = 1
    root.left.leaf.x = 7
    root.right.code = 42
    root.children.add(value=3)
    root.children.add(value=4, label="kid")
    root.counters["a"] = 1
    root.counters["b"] = 2
    root.leaves[1].x = 10
    root.owner.name = "Alice"
    return root
