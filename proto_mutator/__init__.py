"""
Structure-Aware Protobuf Mutation Package

This package mutates and recombines protobuf messages through reflection:
seeded primitive mutators, a depth-bounded structural walker, required
field repair, crossover, and per-type post-processing callbacks.

Usage example:
    from proto_mutator import Mutator
    from proto_mutator.utils import setup_logger

    setup_logger(log_dir="logs")
    mutator = Mutator(seed=1)
    mutator.mutate(message, 1000)
"""

# Import core components
from .crossover import CrossOver
from .field_mutator import FieldMutator
from .message_initializer import MessageInitializer
from .message_walker import MessageWalker, Mutation
from .mutator import Mutator
from .post_processing import PostProcessorRegistry
from .random_engine import RandomEngine, WeightedReservoirSampler
from .schema_reflection import FieldInstance, FieldKind

__version__ = "0.1.0"

__all__ = [
    "CrossOver",
    "FieldInstance",
    "FieldKind",
    "FieldMutator",
    "MessageInitializer",
    "MessageWalker",
    "Mutation",
    "Mutator",
    "PostProcessorRegistry",
    "RandomEngine",
    "WeightedReservoirSampler",
]
