"""Model providers: one implementation per backend family."""

from wingman.ai.providers.base import (
    CacheHandle,
    CachingBackend,
    GenerationResult,
    LLMProvider,
    ModelConfig,
    ProviderName,
    TokenUsage,
)
from wingman.ai.providers.factory import build_llm_providers, create_llm_provider

__all__ = [
    "CacheHandle",
    "CachingBackend",
    "GenerationResult",
    "LLMProvider",
    "ModelConfig",
    "ProviderName",
    "TokenUsage",
    "build_llm_providers",
    "create_llm_provider",
]
