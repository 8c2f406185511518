"""Process-wide store of remote cache handles."""

from wingman.ai.providers.base import CacheHandle


class CacheStore:
    """Map of composite cache key -> :class:`CacheHandle`.

    Built once per process and injected. Mutations are plain dict operations;
    on a single event loop they never interleave, and two requests racing to
    create the same key just overwrite each other's entry.
    """

    def __init__(self) -> None:
        self._entries: dict[str, CacheHandle] = {}

    def get(self, key: str) -> CacheHandle | None:
        return self._entries.get(key)

    def put(self, handle: CacheHandle) -> None:
        self._entries[handle.key] = handle

    def invalidate(self, key: str) -> CacheHandle | None:
        return self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
