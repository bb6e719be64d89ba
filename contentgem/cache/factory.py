"""Factory for cache store backends."""

from contentgem.cache.store import CacheStore, MemoryCacheStore
from contentgem.config.settings import get_settings

_store: CacheStore | None = None


def get_cache_store() -> CacheStore:
    """Get the cache store singleton for the configured backend."""
    global _store
    if _store is not None:
        return _store

    settings = get_settings()
    backend = settings.cache_backend

    if backend == "dynamodb":
        # Lazy import to avoid boto3 dependency when not needed
        from contentgem.cache.dynamodb_store import DynamoDBCacheStore
        _store = DynamoDBCacheStore(
            table_name=settings.dynamodb_table_name,
            region=settings.aws_region,
        )
        return _store

    if backend != "memory":
        raise ValueError(f"Unknown cache backend: {backend}")

    _store = MemoryCacheStore()
    return _store
