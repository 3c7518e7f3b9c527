#!/usr/bin/env python3
"""
Tests for the public mutation engine.
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from proto_mutator import Mutator
from proto_mutator.utils.common import copy_message

from message_fixtures import (
    Counter,
    Node,
    Plain,
    SelfRequired,
    message_depth,
    sample_node,
    serialize,
)


def _chain(length):
    root = Node(value=0)
    node = root
    for level in range(1, length):
        node = node.left
        node.value = level
    return root


def _uninitialized_node():
    message = sample_node()
    message.left.owner.age = 4
    return message


def test_required_value_survives_mutation():
    message = Counter(value=5)
    Mutator(seed=1).mutate(message, 0)
    assert message.HasField("value")


def test_same_seed_same_bytes():
    first = Counter(value=5)
    second = Counter(value=5)
    Mutator(seed=1).mutate(first, 0)
    Mutator(seed=1).mutate(second, 0)
    assert serialize(first) == serialize(second)


def test_reseeding_repeats_mutation():
    mutator = Mutator(seed=99)
    first = sample_node()
    second = sample_node()

    mutator.seed(5)
    mutator.mutate(first, 100)
    mutator.seed(5)
    mutator.mutate(second, 100)

    assert serialize(first) == serialize(second)


def test_negative_hint_is_accepted():
    message = sample_node()
    Mutator(seed=4).mutate(message, -10)
    assert message.IsInitialized()


def test_uninitialized_input_is_repaired():
    message = _uninitialized_node()
    Mutator(seed=2).mutate(message, 10)
    assert message.IsInitialized()


def test_required_fields_may_vanish_when_not_kept():
    mutator = Mutator(seed=0)
    mutator.keep_initialized = False
    vanished = 0
    for seed in range(100):
        mutator.seed(seed)
        message = Counter(value=1)
        mutator.mutate(message, 0)
        vanished += not message.HasField("value")
    assert vanished > 0


def test_depth_limit_trims_input():
    mutator = Mutator(seed=8)
    mutator.max_depth = 3
    for _ in range(20):
        message = _chain(10)
        mutator.mutate(message, 1000)
        assert message_depth(message) <= 4


def test_self_required_type_terminates():
    mutator = Mutator(seed=3)
    mutator.max_depth = 10
    message = SelfRequired()
    mutator.mutate(message, 100)
    assert message.HasField("next")
    assert not mutator.is_initialized(message)


def test_larger_hint_grows_messages():
    small_total = 0
    large_total = 0
    for seed in range(100):
        for hint in (0, 1000):
            mutator = Mutator(seed=seed)
            message = sample_node()
            for _ in range(5):
                mutator.mutate(message, hint)
            if hint:
                large_total += len(serialize(message))
            else:
                small_total += len(serialize(message))
    assert large_total > small_total


def test_proto3_messages_mutate():
    mutator = Mutator(seed=12)
    message = Plain(count=1, title="plain")
    for _ in range(200):
        mutator.mutate(message, 64)
        message.SerializeToString()


def test_settings_are_validated():
    mutator = Mutator()
    with pytest.raises(ValueError):
        mutator.set_mutation_settings(random_to_default_ratio=0)
    with pytest.raises(ValueError):
        mutator.set_mutation_settings(max_depth=-1)

    mutator.set_mutation_settings(keep_initialized=False, random_to_default_ratio=5,
                                  max_depth=7)
    assert mutator.keep_initialized is False
    assert mutator.random_to_default_ratio == 5
    assert mutator.max_depth == 7


def test_default_settings():
    mutator = Mutator()
    assert mutator.keep_initialized is True
    assert mutator.random_to_default_ratio == 100
    assert mutator.max_depth == 50


def test_mutation_corpus():
    seed_message = sample_node()
    before = serialize(seed_message)

    corpus = Mutator(seed=21).generate_mutation_corpus(seed_message, count=5,
                                                       size_increase_hint=32)

    assert len(corpus) == 5
    assert serialize(seed_message) == before
    assert all(variant.IsInitialized() for variant in corpus)
    assert len({serialize(variant) for variant in corpus}) > 1


def test_cross_over_result_is_initialized():
    parent1 = sample_node()
    parent2 = _uninitialized_node()
    result = Mutator(seed=7).cross_over(parent1, parent2)
    assert result.IsInitialized()


@given(seed=st.integers(min_value=0, max_value=2**32 - 1),
       hint=st.integers(min_value=0, max_value=4096))
@settings(max_examples=50, deadline=None)
def test_any_seed_is_deterministic_and_initialized(seed, hint):
    first = _uninitialized_node()
    second = copy_message(first)

    Mutator(seed=seed).mutate(first, hint)
    Mutator(seed=seed).mutate(second, hint)

    assert serialize(first) == serialize(second)
    assert first.IsInitialized()


@given(seed=st.integers(min_value=0, max_value=2**32 - 1))
@settings(max_examples=25, deadline=None)
def test_repeated_mutation_keeps_depth_bound(seed):
    mutator = Mutator(seed=seed)
    mutator.max_depth = 4
    message = sample_node()
    for _ in range(30):
        mutator.mutate(message, 256)
        assert message_depth(message) <= 5
        assert message.IsInitialized()


def test_is_initialized_agrees_with_protobuf():
    mutator = Mutator()
    for message in (sample_node(), _uninitialized_node(), SelfRequired(), Counter()):
        assert mutator.is_initialized(message) == message.IsInitialized()
