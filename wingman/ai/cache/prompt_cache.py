"""Lifecycle of server-side cached prompt context.

Caching is an optimization only: every failure path here degrades to
``None`` (generate without cache) and never blocks generation.
"""

import logging
import time
from collections.abc import Callable, Mapping

from wingman.ai.cache.store import CacheStore
from wingman.ai.providers.base import CacheHandle, CachingBackend, ModelConfig, ProviderName
from wingman.ai.providers.llm.gemini import normalize_model_id
from wingman.exceptions import ProviderError

logger = logging.getLogger("cache")


def build_cache_key(model_id: str, scope_key: str) -> str:
    return f"{normalize_model_id(model_id)}:{scope_key}"


class PromptCache:
    """Create, reuse and invalidate cache handles keyed by (model, scope)."""

    def __init__(
        self,
        store: CacheStore,
        backends: Mapping[ProviderName, CachingBackend],
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._backends = dict(backends)
        self._clock = clock

    def _backend_for(self, model: ModelConfig) -> CachingBackend | None:
        backend = self._backends.get(model.provider)
        if backend is None or not backend.supports_caching(model.model_id):
            return None
        return backend

    async def get_or_create(
        self,
        scope_key: str,
        system_prompt: str,
        static_content: str,
        model: ModelConfig,
        ttl_seconds: int,
    ) -> CacheHandle | None:
        """Return a live handle for ``(model, scope_key)``, creating one if needed.

        Returns None when the model cannot use caching or creation fails.
        """
        backend = self._backend_for(model)
        if backend is None:
            return None

        key = build_cache_key(model.model_id, scope_key)
        existing = self._store.get(key)

        if existing is not None:
            if existing.is_expired(self._clock()):
                logger.debug(
                    "Cache entry expired",
                    extra={"service": "cache", "cache_key": key},
                )
                self._store.invalidate(key)
            elif await self._verify(backend, existing):
                logger.debug(
                    "Using existing cache",
                    extra={"service": "cache", "cache_key": key},
                )
                return existing
            else:
                self._store.invalidate(key)

        return await self._create(backend, key, system_prompt, static_content, model, ttl_seconds)

    async def _verify(self, backend: CachingBackend, handle: CacheHandle) -> bool:
        try:
            exists = await backend.cached_content_exists(handle.remote_reference)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Cache verification failed",
                extra={"service": "cache", "cache_key": handle.key, "error": str(exc)},
                exc_info=not isinstance(exc, ProviderError),
            )
            return False
        if not exists:
            logger.info(
                "Cached content no longer exists",
                extra={"service": "cache", "cache_key": handle.key},
            )
        return exists

    async def _create(
        self,
        backend: CachingBackend,
        key: str,
        system_prompt: str,
        static_content: str,
        model: ModelConfig,
        ttl_seconds: int,
    ) -> CacheHandle | None:
        now = self._clock()
        try:
            reference = await backend.create_cached_content(
                model_id=model.model_id,
                system_prompt=system_prompt,
                static_content=static_content,
                ttl_seconds=ttl_seconds,
                display_name=f"wingman_{int(now * 1000)}",
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Cache creation failed; generating without cache",
                extra={
                    "service": "cache",
                    "cache_key": key,
                    "model_id": model.model_id,
                    "status_code": getattr(exc, "status_code", None),
                    "error": str(exc),
                },
                exc_info=not isinstance(exc, ProviderError),
            )
            return None

        handle = CacheHandle(key=key, remote_reference=reference, expires_at=now + ttl_seconds)
        self._store.put(handle)
        logger.info(
            "Created new cache",
            extra={
                "service": "cache",
                "cache_key": key,
                "model_id": model.model_id,
                "metadata": {"remote_reference": reference, "ttl_seconds": ttl_seconds},
            },
        )
        return handle

    def invalidate(self, scope_key: str, model: ModelConfig) -> None:
        """Drop the handle for ``(model, scope_key)``, e.g. after a cache miss."""
        key = build_cache_key(model.model_id, scope_key)
        if self._store.invalidate(key) is not None:
            logger.info(
                "Cache entry invalidated",
                extra={"service": "cache", "cache_key": key},
            )
