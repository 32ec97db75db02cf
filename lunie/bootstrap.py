"""Wiring of settings, logging, storage and the persisted state synchronizer."""
from typing import Optional

import structlog

from cache import FileStorage, MemoryStorage, PersistedStateSynchronizer, RedisStorage
from cache.core import Storage
from config.logging import configure_logging

from .config import Settings, get_settings
from .store import Store

logger = structlog.get_logger()


def create_storage(settings: Settings) -> Storage:
    """
    Create the storage backend selected by the settings.

    Raises:
        ValueError: If the redis backend is selected without a URL
    """
    if settings.storage_backend == "file":
        return FileStorage(settings.storage_dir)
    if settings.storage_backend == "redis":
        if not settings.redis_url:
            raise ValueError("LUNIE_REDIS_URL is required for the redis storage backend")
        return RedisStorage(settings.redis_url)
    return MemoryStorage()


def create_synchronizer(
    store: Store,
    settings: Optional[Settings] = None,
    storage: Optional[Storage] = None,
) -> PersistedStateSynchronizer:
    """Configure logging and attach a persisted state synchronizer to ``store``."""
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.json_logs)

    storage = storage or create_storage(settings)
    synchronizer = PersistedStateSynchronizer(
        store,
        storage,
        debounce_seconds=settings.persist_debounce_seconds,
    ).attach()
    logger.info("persisted_state_synchronizer_started",
                backend=getattr(storage, "backend", type(storage).__name__),
                debounce_seconds=settings.persist_debounce_seconds)
    return synchronizer
