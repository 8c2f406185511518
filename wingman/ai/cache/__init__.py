"""Server-side prompt context caching."""

from wingman.ai.cache.prompt_cache import PromptCache, build_cache_key
from wingman.ai.cache.store import CacheStore

__all__ = ["CacheStore", "PromptCache", "build_cache_key"]
