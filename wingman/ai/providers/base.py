"""Abstract base classes and value types for model providers."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ProviderName(str, Enum):
    """Backend families a model configuration can point at."""

    GEMINI = "gemini"
    OPENAI = "openai"
    STUB = "stub"


@dataclass(frozen=True)
class ModelConfig:
    """One entry of a fallback chain. Chains are tried left to right."""

    provider: ProviderName
    model_id: str
    temperature: float = 0.7
    max_output_tokens: int = 1024
    presence_penalty: float | None = None
    frequency_penalty: float | None = None

    @property
    def label(self) -> str:
        return f"{self.provider.value}:{self.model_id}"


@dataclass(frozen=True)
class CacheHandle:
    """Reference to server-side cached context (system prompt + static content)."""

    key: str
    remote_reference: str
    expires_at: float  # epoch seconds

    def is_expired(self, now: float | None = None) -> bool:
        return (now if now is not None else time.time()) >= self.expires_at


@dataclass
class TokenUsage:
    """Token accounting for a single generation call."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    cached_tokens: int = 0
    total_tokens: int = 0


@dataclass
class GenerationResult:
    """Raw output of one provider call, before repair/validation."""

    raw_text: str
    model_id: str
    token_usage: TokenUsage = field(default_factory=TokenUsage)
    finish_reason: str | None = None


class LLMProvider(ABC):
    """Abstract base class for one backend family (e.g., Gemini, OpenAI).

    Implementations perform exactly one call per ``generate`` and raise
    :class:`wingman.exceptions.ProviderError` for every failure, with the
    backend status code and retryability attached.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name for logging and registry lookup."""
        pass

    @abstractmethod
    async def generate(
        self,
        system_prompt: str,
        dynamic_prompt: str,
        config: ModelConfig,
        cache_handle: CacheHandle | None = None,
        response_schema: dict[str, Any] | None = None,
    ) -> GenerationResult:
        """Generate a complete response.

        Args:
            system_prompt: System instruction; omitted from the request when
                ``cache_handle`` is given (it is already bound to the cache)
            dynamic_prompt: Per-request user payload
            config: Model to call and its sampling parameters
            cache_handle: Optional server-side cached context
            response_schema: JSON schema for structured output, when supported

        Returns:
            GenerationResult with raw text and token usage
        """
        pass

    async def aclose(self) -> None:
        """Release network resources held by the provider."""
        return None


class CachingBackend(ABC):
    """Capability interface for providers with server-side context caching."""

    @abstractmethod
    def supports_caching(self, model_id: str) -> bool:
        """Whether the given model can be used with cached content."""
        pass

    @abstractmethod
    async def create_cached_content(
        self,
        model_id: str,
        system_prompt: str,
        static_content: str,
        ttl_seconds: int,
        display_name: str,
    ) -> str:
        """Create cached content and return its opaque remote reference."""
        pass

    @abstractmethod
    async def cached_content_exists(self, remote_reference: str) -> bool:
        """Lightweight existence check for a remote reference."""
        pass
