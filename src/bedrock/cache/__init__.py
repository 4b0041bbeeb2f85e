from bedrock.cache.named_cache import CacheEntry, MapEvent, NamedCache, cache_names, get_cache, release_cache
from bedrock.cache.remote import NAMED_CACHE_METHODS, NamedCacheInterceptor, RemoteMethod, RemoteNamedCache

__all__ = [
    "CacheEntry",
    "MapEvent",
    "NAMED_CACHE_METHODS",
    "NamedCache",
    "NamedCacheInterceptor",
    "RemoteMethod",
    "RemoteNamedCache",
    "cache_names",
    "get_cache",
    "release_cache",
]
