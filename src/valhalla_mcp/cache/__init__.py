from .ttl_cache import CacheSet, TTLCache, run_sweeper

__all__ = ["TTLCache", "CacheSet", "run_sweeper"]
