"""Model fallback and retry engine.

Per request the orchestrator walks an ordered chain of ``ModelConfig``:

    SELECT_MODEL -> ATTEMPT -> (SUCCESS | RETRY_SAME | NEXT_MODEL) -> ... -> SUCCESS | EXHAUSTED

Branching depends only on typed data attached to :class:`ProviderError`
(``retryable``, ``cache_miss``), never on error message text.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from wingman.ai.cache import PromptCache
from wingman.ai.orchestration.stats import (
    FALLBACK_SUCCESSES,
    PRIMARY_SUCCESSES,
    TOTAL_FAILURES,
    RunningStats,
)
from wingman.ai.providers.base import (
    CacheHandle,
    GenerationResult,
    LLMProvider,
    ModelConfig,
    ProviderName,
    TokenUsage,
)
from wingman.ai.validation import ResponseRepairer
from wingman.exceptions import (
    ConfigurationError,
    ProviderError,
    ProvidersExhaustedError,
    ResponseFormatError,
    ResponseValidationError,
)

logger = logging.getLogger("orchestrator")

ModelT = TypeVar("ModelT", bound=BaseModel)


class AttemptOutcome(str, Enum):
    SUCCESS = "success"
    RETRYABLE_ERROR = "retryable_error"
    FATAL_ERROR = "fatal_error"


@dataclass
class GenerationAttempt:
    """One provider call, kept for logging only."""

    model: ModelConfig
    attempt_number: int
    used_cache: bool
    outcome: AttemptOutcome
    error: str | None = None
    status_code: int | None = None


@dataclass
class OrchestrationResult(Generic[ModelT]):
    response: ModelT
    model_used: str
    provider: str
    is_fallback: bool
    used_cache: bool
    token_usage: TokenUsage
    latency_ms: int
    attempts: list[GenerationAttempt] = field(default_factory=list)


def classify_error(exc: BaseException) -> AttemptOutcome:
    """Retryable only when the provider said so; anything else advances the chain."""
    if isinstance(exc, ProviderError) and exc.retryable:
        return AttemptOutcome.RETRYABLE_ERROR
    return AttemptOutcome.FATAL_ERROR


def backoff_delay(attempt: int, base_seconds: float) -> float:
    """Delay after failed attempt ``attempt`` (1-based): base, 2*base, 4*base, ..."""
    return base_seconds * (2 ** (attempt - 1))


class FallbackOrchestrator:
    """Produce a validated response if any model in the chain can.

    Args:
        providers: One provider instance per backend family in use
        stats: Shared counters, incremented on every terminal outcome
        prompt_cache: Used to invalidate handles the backend reports missing
        max_retries_per_model: Attempts per model (including the first)
        backoff_base_seconds: Base of the exponential backoff schedule
        fallback_on_format_error: Advance to the next model when output
            cannot be repaired or validated, instead of failing the request
        sleep: Awaitable used for backoff (injectable for tests)
    """

    def __init__(
        self,
        providers: Mapping[ProviderName, LLMProvider],
        stats: RunningStats,
        prompt_cache: PromptCache | None = None,
        max_retries_per_model: int = 3,
        backoff_base_seconds: float = 1.0,
        fallback_on_format_error: bool = False,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if max_retries_per_model < 1:
            raise ValueError("max_retries_per_model must be at least 1")
        self._providers = dict(providers)
        self._stats = stats
        self._prompt_cache = prompt_cache
        self._max_retries = max_retries_per_model
        self._backoff_base = backoff_base_seconds
        self._fallback_on_format_error = fallback_on_format_error
        self._sleep = sleep

    @property
    def stats(self) -> RunningStats:
        return self._stats

    async def generate(
        self,
        system_prompt: str,
        dynamic_prompt: str,
        chain: Sequence[ModelConfig],
        repairer: ResponseRepairer[ModelT],
        *,
        static_content: str = "",
        cache_handle: CacheHandle | None = None,
        cache_scope_key: str | None = None,
        response_schema: dict[str, Any] | None = None,
    ) -> OrchestrationResult[ModelT]:
        """Run the chain until one model yields a valid response.

        ``cache_handle`` belongs to ``chain[0]`` and is only sent on its first
        attempt. Without a cache the static content is prepended to the
        dynamic prompt.

        Raises:
            ProvidersExhaustedError: Every model failed
            ResponseFormatError, ResponseValidationError: Output could not be
                repaired and ``fallback_on_format_error`` is off
        """
        if not chain:
            raise ConfigurationError("Model chain is empty")

        start = time.monotonic()
        uncached_prompt = f"{static_content}\n\n{dynamic_prompt}" if static_content else dynamic_prompt
        attempts: list[GenerationAttempt] = []
        models_tried: list[str] = []
        last_error: Exception | None = None

        for index, model in enumerate(chain):
            models_tried.append(model.model_id)
            provider = self._providers.get(model.provider)
            if provider is None:
                last_error = ConfigurationError(
                    f"No provider configured for '{model.provider.value}'",
                    setting=model.provider.value,
                )
                attempts.append(
                    GenerationAttempt(model, 0, False, AttemptOutcome.FATAL_ERROR, str(last_error))
                )
                logger.error(
                    "Skipping model without provider",
                    extra={"service": "orchestrator", "provider": model.provider.value, "model_id": model.model_id},
                )
                continue

            handle = cache_handle if index == 0 else None
            attempt = 1
            while attempt <= self._max_retries:
                used_cache = handle is not None
                try:
                    result = await provider.generate(
                        system_prompt,
                        dynamic_prompt if used_cache else uncached_prompt,
                        model,
                        cache_handle=handle,
                        response_schema=response_schema,
                    )
                except ProviderError as exc:
                    outcome = classify_error(exc)
                    last_error = exc
                    attempts.append(
                        GenerationAttempt(model, attempt, used_cache, outcome, str(exc), exc.status_code)
                    )
                    self._log_failure(model, attempt, used_cache, exc, outcome)
                    # The cache handle is only ever valid for the first attempt
                    handle = None

                    if exc.cache_miss and used_cache:
                        if self._prompt_cache is not None and cache_scope_key:
                            self._prompt_cache.invalidate(cache_scope_key, model)
                        attempt += 1
                        continue

                    if outcome is AttemptOutcome.FATAL_ERROR:
                        break

                    if attempt < self._max_retries:
                        delay = backoff_delay(attempt, self._backoff_base)
                        logger.info(
                            "Retrying model after backoff",
                            extra={
                                "service": "orchestrator",
                                "model_id": model.model_id,
                                "attempt": attempt,
                                "backoff_seconds": delay,
                            },
                        )
                        await self._sleep(delay)
                    attempt += 1
                    continue
                except Exception as exc:  # noqa: BLE001
                    # Unclassified failures advance the chain rather than hang on it
                    last_error = exc
                    attempts.append(
                        GenerationAttempt(model, attempt, used_cache, AttemptOutcome.FATAL_ERROR, repr(exc))
                    )
                    logger.error(
                        "Unexpected provider failure",
                        exc_info=True,
                        extra={
                            "service": "orchestrator",
                            "provider": model.provider.value,
                            "model_id": model.model_id,
                            "attempt": attempt,
                        },
                    )
                    break

                try:
                    response = repairer.parse(result.raw_text)
                except (ResponseFormatError, ResponseValidationError) as exc:
                    attempts.append(
                        GenerationAttempt(model, attempt, used_cache, AttemptOutcome.FATAL_ERROR, str(exc))
                    )
                    if not self._fallback_on_format_error:
                        raise
                    last_error = exc
                    logger.warning(
                        "Unusable model output; advancing chain",
                        extra={
                            "service": "orchestrator",
                            "model_id": model.model_id,
                            "error_code": exc.code,
                        },
                    )
                    break

                attempts.append(GenerationAttempt(model, attempt, used_cache, AttemptOutcome.SUCCESS))
                return self._succeed(index, model, result, response, used_cache, attempts, start)

        self._stats.increment(TOTAL_FAILURES)
        logger.error(
            "All providers exhausted",
            extra={
                "service": "orchestrator",
                "models_tried": models_tried,
                "error": str(last_error) if last_error else None,
            },
        )
        raise ProvidersExhaustedError(models_tried, last_error)

    def _succeed(
        self,
        index: int,
        model: ModelConfig,
        result: GenerationResult,
        response: ModelT,
        used_cache: bool,
        attempts: list[GenerationAttempt],
        start: float,
    ) -> OrchestrationResult[ModelT]:
        is_fallback = index > 0
        self._stats.increment(FALLBACK_SUCCESSES if is_fallback else PRIMARY_SUCCESSES)
        latency_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            "Generation succeeded",
            extra={
                "service": "orchestrator",
                "provider": model.provider.value,
                "model_id": model.model_id,
                "attempt": attempts[-1].attempt_number,
                "used_cache": used_cache,
                "latency_ms": latency_ms,
                "tokens_in": result.token_usage.prompt_tokens,
                "tokens_out": result.token_usage.completion_tokens,
                "cached_tokens": result.token_usage.cached_tokens,
                "metadata": {"is_fallback": is_fallback, "stats": self._stats.snapshot()},
            },
        )
        return OrchestrationResult(
            response=response,
            model_used=model.model_id,
            provider=model.provider.value,
            is_fallback=is_fallback,
            used_cache=used_cache,
            token_usage=result.token_usage,
            latency_ms=latency_ms,
            attempts=attempts,
        )

    @staticmethod
    def _log_failure(
        model: ModelConfig,
        attempt: int,
        used_cache: bool,
        exc: ProviderError,
        outcome: AttemptOutcome,
    ) -> None:
        logger.warning(
            "Generation attempt failed",
            extra={
                "service": "orchestrator",
                "provider": model.provider.value,
                "model_id": model.model_id,
                "attempt": attempt,
                "used_cache": used_cache,
                "status_code": exc.status_code,
                "status": outcome.value,
                "error": exc.message,
            },
        )
