#!/usr/bin/env python3
"""
Tests for recombining two parent messages.
"""

import pytest

from proto_mutator.crossover import CrossOver
from proto_mutator.random_engine import RandomEngine

from message_fixtures import Counter, Leaf, Node, Person, Scalars, sample_node, serialize


def _cross(message1, message2, seed=0, keep_initialized=True, max_depth=50):
    crossover = CrossOver(RandomEngine(seed), keep_initialized, max_depth)
    return crossover.cross_over(message1, message2)


def test_mismatched_types_are_rejected():
    with pytest.raises(TypeError):
        _cross(Person(name="Alice"), Leaf(x=1))


def test_values_come_from_one_parent():
    names = set()
    for seed in range(100):
        result = _cross(Person(name="Alice"), Person(name="Bob"), seed=seed)
        assert result.name in ("Alice", "Bob")
        names.add(result.name)
    assert names == {"Alice", "Bob"}


def test_parents_are_not_modified():
    parent1 = sample_node()
    parent2 = Node(value=8, code=3)
    parent2.children.add(value=1)
    before1 = serialize(parent1)
    before2 = serialize(parent2)

    for seed in range(50):
        result = _cross(parent1, parent2, seed=seed)
        assert result is not parent1 and result is not parent2

    assert serialize(parent1) == before1
    assert serialize(parent2) == before2


def test_scalar_fields_keep_parent_values():
    parent1 = Scalars(i32=1, i64=2, u32=3, u64=4, f=1.5, d=2.5, b=True, text="a", data=b"x")
    parent2 = Scalars(i32=-1, i64=-2, u32=30, u64=40, f=3.5, d=4.5, b=False, text="b", data=b"y")
    names = ["i32", "i64", "u32", "u64", "f", "d", "b", "text", "data"]

    for seed in range(50):
        result = _cross(parent1, parent2, seed=seed)
        for name in names:
            assert result.HasField(name)
            assert getattr(result, name) in (getattr(parent1, name), getattr(parent2, name))


def test_field_in_one_parent_is_sometimes_dropped():
    kept = set()
    for seed in range(100):
        result = _cross(Scalars(i32=5), Scalars(), seed=seed)
        kept.add(result.HasField("i32"))
    assert kept == {True, False}


def test_required_field_in_one_parent_is_kept():
    for seed in range(100):
        result = _cross(Counter(value=3), Counter(), seed=seed)
        assert result.value == 3


def test_repeated_values_come_from_parents():
    parent1 = Scalars(numbers=[1, 2, 3, 4])
    parent2 = Scalars(numbers=[10, 20])
    pool = set(parent1.numbers) | set(parent2.numbers)

    for seed in range(100):
        result = _cross(parent1, parent2, seed=seed)
        assert len(result.numbers) <= 4
        assert set(result.numbers) <= pool


def test_oneof_case_is_taken_whole():
    for seed in range(100):
        result = _cross(Node(label="x"), Node(code=9), seed=seed)
        case = result.WhichOneof("payload")
        if case == "label":
            assert result.label == "x"
        else:
            assert case == "code"
            assert result.code == 9


def test_shared_oneof_message_is_recombined():
    parent1 = Node()
    parent1.leaf.x = 1
    parent1.leaf.name = "one"
    parent2 = Node()
    parent2.leaf.x = 2
    parent2.leaf.name = "two"

    mixed = False
    for seed in range(100):
        result = _cross(parent1, parent2, seed=seed)
        assert result.WhichOneof("payload") == "leaf"
        pair = (result.leaf.x, result.leaf.name)
        mixed |= pair in ((1, "two"), (2, "one"))
    assert mixed


def test_map_entries_come_from_parents():
    parent1 = Node()
    parent1.counters["a"] = 1
    parent1.counters["b"] = 2
    parent2 = Node()
    parent2.counters["b"] = 20
    parent2.counters["c"] = 30

    for seed in range(100):
        result = _cross(parent1, parent2, seed=seed)
        assert set(result.counters) <= {"a", "b", "c"}
        for key, value in result.counters.items():
            assert value in (parent1.counters.get(key), parent2.counters.get(key))


def test_same_seed_same_result():
    parent1 = sample_node()
    parent2 = Node(value=8, code=3)
    assert serialize(_cross(parent1, parent2, seed=9)) == serialize(_cross(parent1, parent2, seed=9))
