"""Factory functions for creating provider instances.

Providers self-register at import time, so this factory only maps a
provider name to its credentials and connection settings.
"""

import logging
from collections.abc import Iterable

# Importing the package registers every provider class
import wingman.ai.providers.llm  # noqa: F401
from wingman.ai.providers.base import LLMProvider, ProviderName
from wingman.ai.providers.registry import get_provider_class
from wingman.config import Settings
from wingman.exceptions import ConfigurationError

logger = logging.getLogger("providers")

_API_KEY_SETTINGS: dict[ProviderName, str] = {
    ProviderName.GEMINI: "gemini_api_key",
    ProviderName.OPENAI: "openai_api_key",
}

_BASE_URL_SETTINGS: dict[ProviderName, str] = {
    ProviderName.GEMINI: "gemini_base_url",
    ProviderName.OPENAI: "openai_base_url",
}


def _get_env_var_for_provider(provider: ProviderName) -> str:
    """Get the environment variable name that carries a provider's API key."""
    return _API_KEY_SETTINGS[provider].upper()


def create_llm_provider(provider: ProviderName, settings: Settings) -> LLMProvider:
    """Instantiate one provider from settings.

    Raises:
        ConfigurationError: If the provider needs a credential that is not set
    """
    provider_class = get_provider_class(provider.value)

    if provider == ProviderName.STUB:
        logger.warning(
            "Using stub LLM provider (explicitly configured)",
            extra={"service": "providers", "provider": provider.value},
        )
        return provider_class()

    api_key = (getattr(settings, _API_KEY_SETTINGS[provider]) or "").strip()
    if not api_key:
        env_var = _get_env_var_for_provider(provider)
        raise ConfigurationError(
            f"{env_var} is required because the model chain references provider "
            f"'{provider.value}'",
            setting=env_var,
        )

    instance = provider_class(
        api_key=api_key,
        base_url=getattr(settings, _BASE_URL_SETTINGS[provider]),
        timeout=float(settings.provider_timeout_llm_seconds),
    )
    logger.info(
        "LLM provider initialized",
        extra={
            "service": "providers",
            "provider": provider.value,
            "metadata": {"timeout_seconds": settings.provider_timeout_llm_seconds},
        },
    )
    return instance


def build_llm_providers(
    settings: Settings,
    required: Iterable[ProviderName],
) -> dict[ProviderName, LLMProvider]:
    """Create one instance per provider referenced by the configured chains.

    This runs once at startup, so a missing credential stops the service
    from booting instead of failing individual requests.
    """
    providers: dict[ProviderName, LLMProvider] = {}
    for provider in required:
        if provider not in providers:
            providers[provider] = create_llm_provider(provider, settings)
    return providers
