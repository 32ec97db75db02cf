"""
Lunie State Persistence Module

This module keeps client state across sessions: key-value storage
backends (in memory, files, Redis) and the synchronizer writing the
store's persisted slices through to them.
"""

from .core import MemoryStorage, Storage
from .file_storage import FileStorage
from .persistence import (
    PERSISTED_SLICES,
    PERSISTING_MUTATIONS,
    PersistedStateSynchronizer,
    deep_merge,
    deserialize_state,
    serialize_state,
    storage_key,
)
from .redis_manager import RedisStorage

__all__ = [
    'FileStorage',
    'MemoryStorage',
    'PERSISTED_SLICES',
    'PERSISTING_MUTATIONS',
    'PersistedStateSynchronizer',
    'RedisStorage',
    'Storage',
    'deep_merge',
    'deserialize_state',
    'serialize_state',
    'storage_key',
]
