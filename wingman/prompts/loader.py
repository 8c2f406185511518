"""System prompt loading.

The prompt source is chosen by ``PROMPT_SOURCE``:

- ``database``: the row matching ``PROMPT_VERSION``, else the most recently
  updated active row
- ``yaml``: the ``version`` and ``content`` keys of ``PROMPTS_PATH``
- ``inline``: the built-in prompt

Any source that fails falls through to the built-in prompt. The result is
cached for ``config_cache_ttl_seconds``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Literal

import yaml
from sqlalchemy.exc import SQLAlchemyError

from wingman.prompts.wingman import WINGMAN_PROMPT, WINGMAN_PROMPT_VERSION

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from wingman.config import Settings

logger = logging.getLogger("config")

PromptSource = Literal["yaml", "database", "inline"]


@dataclass(frozen=True)
class PromptConfig:
    version: str
    content: str
    source: PromptSource


def load_prompt_file(path: str | Path) -> PromptConfig | None:
    """Read a prompt document; returns None if it is missing or incomplete."""
    try:
        with open(path, encoding="utf-8") as handle:
            document = yaml.safe_load(handle) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.error(
            "Prompt file could not be read",
            extra={"service": "config", "error": str(exc), "metadata": {"path": str(path)}},
        )
        return None

    if not isinstance(document, dict) or not document.get("version") or not document.get("content"):
        logger.error(
            "Prompt file missing version or content",
            extra={"service": "config", "metadata": {"path": str(path)}},
        )
        return None

    return PromptConfig(version=str(document["version"]), content=str(document["content"]), source="yaml")


class PromptLoader:
    """Resolve the wingman system prompt from the configured source."""

    def __init__(
        self,
        source: PromptSource = "inline",
        version: str = WINGMAN_PROMPT_VERSION,
        prompts_path: str | Path = "config/prompts.yaml",
        ttl_seconds: float = 60.0,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.source = source
        self.version = version
        self.prompts_path = Path(prompts_path)
        self._ttl = ttl_seconds
        self._session_factory = session_factory
        self._clock = clock
        self._cached: PromptConfig | None = None
        self._fetched_at = 0.0

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> PromptLoader:
        return cls(
            source=settings.prompt_source,
            version=settings.prompt_version,
            prompts_path=settings.prompts_path,
            ttl_seconds=settings.config_cache_ttl_seconds,
            session_factory=session_factory,
        )

    async def load(self) -> PromptConfig:
        now = self._clock()
        if self._cached is not None and now - self._fetched_at < self._ttl:
            return self._cached

        prompt: PromptConfig | None = None
        if self.source == "database":
            prompt = await self._load_from_database()
        elif self.source == "yaml":
            prompt = await asyncio.to_thread(load_prompt_file, self.prompts_path)

        if prompt is None:
            if self.source != "inline":
                logger.warning(
                    "Using built-in prompt",
                    extra={"service": "config", "metadata": {"requested_source": self.source}},
                )
            prompt = PromptConfig(version=WINGMAN_PROMPT_VERSION, content=WINGMAN_PROMPT, source="inline")
        else:
            logger.info(
                "Prompt loaded",
                extra={"service": "config", "prompt_version": prompt.version, "metadata": {"source": prompt.source}},
            )

        self._cached = prompt
        self._fetched_at = now
        return prompt

    async def _load_from_database(self) -> PromptConfig | None:
        if self._session_factory is None:
            logger.error("Database prompt source configured without a database", extra={"service": "config"})
            return None

        from wingman.domains.repository import SqlWingmanStore

        try:
            async with self._session_factory() as session:
                store = SqlWingmanStore(session)
                row = await store.fetch_prompt(self.version) if self.version else None
                if row is None:
                    row = await store.fetch_prompt(None)
        except SQLAlchemyError as exc:
            logger.error(
                "Prompt lookup failed",
                extra={"service": "config", "error": str(exc)},
            )
            return None

        if row is None:
            return None
        return PromptConfig(version=row.version, content=row.content, source="database")

    def clear_cache(self) -> None:
        self._cached = None
        self._fetched_at = 0.0
