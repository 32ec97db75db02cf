from prometheus_client import Counter, Histogram
import structlog
import time
from functools import wraps
from typing import Callable, Optional

logger = structlog.get_logger()

# Persisted state metrics
PERSIST_WRITES = Counter(
    'lunie_persisted_state_writes_total',
    'Total number of persisted state snapshots written',
    ['network']
)
PERSIST_SKIPPED = Counter(
    'lunie_persisted_state_skipped_writes_total',
    'Scheduled writes dropped because the session changed before the flush',
    ['reason']
)
MUTATIONS_COALESCED = Counter(
    'lunie_persisted_state_coalesced_mutations_total',
    'Mutations folded into an already pending write'
)
RESTORES = Counter(
    'lunie_persisted_state_restores_total',
    'Persisted state restore attempts by outcome',
    ['outcome']
)

# Storage backend metrics
STORAGE_HITS = Counter(
    'lunie_storage_hits_total',
    'Total number of storage reads that found a record',
    ['backend']
)
STORAGE_MISSES = Counter(
    'lunie_storage_misses_total',
    'Total number of storage reads that found nothing',
    ['backend']
)
STORAGE_ERRORS = Counter(
    'lunie_storage_errors_total',
    'Total number of storage operation errors',
    ['operation']
)
STORAGE_OPERATION_DURATION = Histogram(
    'lunie_storage_operation_duration_seconds',
    'Duration of storage operations',
    ['operation']
)

# Enrichment metrics
FIAT_LOOKUP_FAILURES = Counter(
    'lunie_fiat_lookup_failures_total',
    'Fiat value lookups that failed and were dropped',
    ['reducer']
)
REDUCE_FAILURES = Counter(
    'lunie_reduce_failures_total',
    'Raw entries that could not be reduced and were dropped',
    ['reducer']
)


def track_storage_operation(operation: str, backend: Optional[str] = None):
    """Decorator to track storage operation metrics."""
    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                STORAGE_ERRORS.labels(operation=operation).inc()
                logger.error(
                    "storage_operation_failed",
                    operation=operation,
                    error=str(e)
                )
                raise
            STORAGE_OPERATION_DURATION.labels(operation=operation).observe(time.time() - start_time)

            if backend:
                if result is not None:
                    STORAGE_HITS.labels(backend=backend).inc()
                else:
                    STORAGE_MISSES.labels(backend=backend).inc()

            return result
        return wrapper
    return decorator
