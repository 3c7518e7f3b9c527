#!/usr/bin/env python3
"""
Tests for post-processor registration and invocation.
"""

import pytest

from proto_mutator import Mutator
from proto_mutator.post_processing import PostProcessorRegistry
from proto_mutator.random_engine import RandomEngine
from proto_mutator.utils.common import type_name

from message_fixtures import Leaf, Node, SelfRequired, sample_node


def _count_nodes(message):
    total = 1
    if message.HasField("left"):
        total += _count_nodes(message.left)
    if message.HasField("right"):
        total += _count_nodes(message.right)
    for child in message.children:
        total += _count_nodes(child)
    return total


def test_type_name_accepts_every_form():
    assert type_name(Leaf) == "proto_mutator.test.Leaf"
    assert type_name(Leaf()) == "proto_mutator.test.Leaf"
    assert type_name(Leaf.DESCRIPTOR) == "proto_mutator.test.Leaf"
    assert type_name("proto_mutator.test.Leaf") == "proto_mutator.test.Leaf"
    with pytest.raises(TypeError):
        type_name(42)


def test_registrations_accumulate():
    registry = PostProcessorRegistry()
    callbacks = [lambda message, seed: None for _ in range(4)]
    for message_type, callback in zip((Leaf, Leaf(), Leaf.DESCRIPTOR, "proto_mutator.test.Leaf"),
                                      callbacks):
        registry.register(message_type, callback)

    assert registry.callbacks_for(Leaf) == tuple(callbacks)
    assert len(registry) == 4


def test_two_callbacks_each_fire_once():
    mutator = Mutator(seed=2)
    calls = []
    mutator.register_post_processor(Leaf, lambda message, seed: calls.append("first"))
    mutator.register_post_processor(Leaf, lambda message, seed: calls.append("second"))

    mutator.mutate(Leaf(x=1), 10)

    assert calls == ["first", "second"]


def test_every_nested_instance_is_visited():
    mutator = Mutator(seed=6)
    visited = []
    mutator.register_post_processor(Node, lambda message, seed: visited.append(message))

    message = sample_node()
    mutator.mutate(message, 100)

    assert len(visited) == _count_nodes(message)


def test_unknown_type_never_fires():
    mutator = Mutator(seed=1)
    calls = []
    mutator.register_post_processor("no.such.Type", lambda message, seed: calls.append(seed))

    mutator.mutate(sample_node(), 100)

    assert calls == []


def test_nodes_are_visited_top_down():
    registry = PostProcessorRegistry()
    order = []
    registry.register(Node, lambda message, seed: order.append(message.value))

    root = Node(value=1)
    root.left.value = 2
    root.left.left.value = 3
    root.right.value = 4
    registry.apply(root, RandomEngine(0))

    assert order == [1, 2, 3, 4]


def test_added_children_are_visited():
    registry = PostProcessorRegistry()
    visited = []

    def grow(message, seed):
        visited.append(message.value)
        if message.value < 3:
            message.left.value = message.value + 1

    registry.register(Node, grow)
    registry.apply(Node(), RandomEngine(0))

    assert visited == [0, 1, 2, 3]


def _self_required_chain(length):
    root = SelfRequired(value=0)
    node = root
    for level in range(1, length):
        node = node.next
        node.value = level
    return root


def _chain_length(message):
    length = 1
    while message.HasField("next"):
        length += 1
        message = message.next
    return length


def test_nodes_past_depth_limit_are_visited():
    mutator = Mutator(seed=5)
    mutator.max_depth = 2
    calls = []
    mutator.register_post_processor(SelfRequired, lambda message, seed: calls.append(seed))

    message = SelfRequired()
    mutator.mutate(message, 0)

    assert _chain_length(message) > mutator.max_depth + 1
    assert len(calls) == _chain_length(message)


def test_deep_required_input_is_fully_visited():
    mutator = Mutator(seed=9)
    mutator.max_depth = 2
    values = []
    mutator.register_post_processor(SelfRequired,
                                    lambda message, seed: values.append(message.value))

    message = _self_required_chain(8)
    mutator.mutate(message, 0)

    assert len(values) == _chain_length(message)
    assert _chain_length(message) >= 8


def test_callback_seeds_are_reproducible():
    def seeds_for(seed):
        mutator = Mutator(seed=seed)
        seeds = []
        mutator.register_post_processor(Node, lambda message, s: seeds.append(s))
        mutator.mutate(sample_node(), 50)
        return seeds

    assert seeds_for(11) == seeds_for(11)
    assert all(0 <= s < 2**32 for s in seeds_for(11))


def test_crossover_runs_post_processors():
    mutator = Mutator(seed=3)
    fixed = []

    def clamp(message, seed):
        fixed.append(seed)
        message.x = min(message.x, 100)

    mutator.register_post_processor(Leaf, clamp)
    result = mutator.cross_over(Leaf(x=500), Leaf(x=1000))

    assert fixed
    assert result.x == 100
