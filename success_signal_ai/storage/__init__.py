"""Persistence for training records: async key-value backends and the training data store."""

from .kv_store import InMemoryKeyValueStore, JsonFileKeyValueStore, KeyValueStore
from .training_data import TrainingDataStore, train_test_split

__all__ = [
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "TrainingDataStore",
    "train_test_split",
]
