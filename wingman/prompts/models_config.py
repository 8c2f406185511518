"""Versioned model configuration.

The models document names the fallback chain for each request kind::

    version: "1.2.0"
    wingman:
      chain:
        - {provider: gemini, model: gemini-2.5-flash, temperature: 0.9, max_output_tokens: 2000}
    bot:
      chain:
        - {provider: openai, model: gpt-4o-2024-08-06, temperature: 0.7, max_output_tokens: 120}
    features:
      enable_prompt_caching: true

All resolution happens here, before the orchestrator runs: callers get plain
ordered tuples of ``ModelConfig``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from wingman.ai.providers.base import ModelConfig, ProviderName

logger = logging.getLogger("config")

Chain = tuple[ModelConfig, ...]

DEFAULT_WINGMAN_CHAIN: Chain = (
    ModelConfig(ProviderName.GEMINI, "gemini-2.5-flash", temperature=0.9, max_output_tokens=2000),
    ModelConfig(ProviderName.GEMINI, "gemini-2.5-pro", temperature=0.9, max_output_tokens=2000),
    ModelConfig(ProviderName.GEMINI, "gemini-2.0-flash", temperature=0.9, max_output_tokens=2000),
    ModelConfig(ProviderName.GEMINI, "gemini-1.5-flash", temperature=0.9, max_output_tokens=2000),
)

DEFAULT_BOT_CHAIN: Chain = (
    ModelConfig(
        ProviderName.OPENAI,
        "gpt-4o-2024-08-06",
        temperature=0.7,
        max_output_tokens=120,
        presence_penalty=0.3,
        frequency_penalty=0.2,
    ),
)


class ModelsConfigInvalid(ValueError):
    """The models document is present but unusable."""


@dataclass(frozen=True)
class ModelsConfig:
    version: str
    wingman_chain: Chain
    bot_chain: Chain
    features: dict[str, Any] = field(default_factory=dict)

    def required_providers(self) -> set[ProviderName]:
        return {model.provider for model in (*self.wingman_chain, *self.bot_chain)}

    def feature_enabled(self, name: str, default: bool = False) -> bool:
        return bool(self.features.get(name, default))


BUILTIN_MODELS_CONFIG = ModelsConfig(
    version="builtin",
    wingman_chain=DEFAULT_WINGMAN_CHAIN,
    bot_chain=DEFAULT_BOT_CHAIN,
)


def _parse_model(entry: Any, section: str) -> ModelConfig:
    if not isinstance(entry, dict):
        raise ModelsConfigInvalid(f"{section}: chain entries must be mappings")
    try:
        provider = ProviderName(str(entry["provider"]).lower())
        model_id = str(entry["model"])
    except KeyError as exc:
        raise ModelsConfigInvalid(f"{section}: chain entry missing {exc.args[0]!r}") from exc
    except ValueError as exc:
        raise ModelsConfigInvalid(f"{section}: unknown provider {entry.get('provider')!r}") from exc

    def _optional_float(key: str) -> float | None:
        value = entry.get(key)
        return float(value) if value is not None else None

    try:
        return ModelConfig(
            provider=provider,
            model_id=model_id,
            temperature=float(entry.get("temperature", 0.7)),
            max_output_tokens=int(entry.get("max_output_tokens", 1024)),
            presence_penalty=_optional_float("presence_penalty"),
            frequency_penalty=_optional_float("frequency_penalty"),
        )
    except (TypeError, ValueError) as exc:
        raise ModelsConfigInvalid(f"{section}: bad numeric setting for {model_id}: {exc}") from exc


def _parse_chain(document: dict[str, Any], section: str, default: Chain) -> Chain:
    block = document.get(section)
    if block is None:
        return default
    entries = block.get("chain") if isinstance(block, dict) else None
    if not entries:
        raise ModelsConfigInvalid(f"{section}: chain must be a non-empty list")
    return tuple(_parse_model(entry, section) for entry in entries)


def parse_models_document(document: Any) -> ModelsConfig:
    """Build a ``ModelsConfig`` from a parsed YAML document."""
    if not isinstance(document, dict):
        raise ModelsConfigInvalid("models document must be a mapping")
    if not document.get("version"):
        raise ModelsConfigInvalid("models document missing version field")
    features = document.get("features") or {}
    if not isinstance(features, dict):
        raise ModelsConfigInvalid("features must be a mapping")
    return ModelsConfig(
        version=str(document["version"]),
        wingman_chain=_parse_chain(document, "wingman", DEFAULT_WINGMAN_CHAIN),
        bot_chain=_parse_chain(document, "bot", DEFAULT_BOT_CHAIN),
        features=dict(features),
    )


class ModelsConfigLoader:
    """Load the models document with a TTL cache.

    When a reload fails the last good document keeps being served; with
    nothing cached the built-in chains are used.
    """

    def __init__(
        self,
        path: str | Path = "config/models.yaml",
        ttl_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.path = Path(path)
        self._ttl = ttl_seconds
        self._clock = clock
        self._cached: ModelsConfig | None = None
        self._fetched_at = 0.0

    def _fresh(self, now: float) -> bool:
        return now - self._fetched_at < self._ttl

    async def aload(self) -> ModelsConfig:
        """Like ``load`` but reads the file in a worker thread.

        Request handlers use this so a reload never blocks the event loop.
        """
        if self._cached is not None and self._fresh(self._clock()):
            return self._cached
        return await asyncio.to_thread(self.load)

    def load(self) -> ModelsConfig:
        now = self._clock()
        if self._cached is not None and self._fresh(now):
            return self._cached

        try:
            with open(self.path, encoding="utf-8") as handle:
                config = parse_models_document(yaml.safe_load(handle))
        except (OSError, yaml.YAMLError, ModelsConfigInvalid) as exc:
            if self._cached is not None:
                logger.warning(
                    "Models config reload failed; using stale cache",
                    extra={"service": "config", "error": str(exc), "metadata": {"version": self._cached.version}},
                )
                # Retry after another TTL rather than on every request
                self._fetched_at = now
                return self._cached
            logger.error(
                "Models config unavailable; using built-in chains",
                extra={"service": "config", "error": str(exc), "metadata": {"path": str(self.path)}},
            )
            return BUILTIN_MODELS_CONFIG

        logger.info(
            "Models config loaded",
            extra={
                "service": "config",
                "metadata": {
                    "version": config.version,
                    "wingman_chain": [m.label for m in config.wingman_chain],
                    "bot_chain": [m.label for m in config.bot_chain],
                },
            },
        )
        self._cached = config
        self._fetched_at = now
        return config

    def clear_cache(self) -> None:
        self._cached = None
        self._fetched_at = 0.0
