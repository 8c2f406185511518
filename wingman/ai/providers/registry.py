"""Name -> class lookup for model backends.

Each provider module decorates its class with ``@register_llm_provider``;
importing ``wingman.ai.providers.llm`` is enough to make every backend
family resolvable by the factory.
"""

from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from wingman.ai.providers.base import LLMProvider

LLM = TypeVar("LLM", bound="LLMProvider")

_llm_registry: dict[str, type["LLMProvider"]] = {}


class ProviderRegistryError(Exception):
    """A backend class could not be registered or resolved."""


class ProviderNotFoundError(ProviderRegistryError):
    pass


class DuplicateProviderError(ProviderRegistryError):
    pass


def _backend_name(provider_class: type) -> str:
    # ``name`` is an instance property; read it off the class via its getter
    attr = getattr(provider_class, "name", None)
    if isinstance(attr, property) and attr.fget is not None:
        attr = attr.fget(provider_class)
    if not isinstance(attr, str) or not attr:
        raise ProviderRegistryError(f"{provider_class.__name__} does not declare a backend name")
    return attr


def register_llm_provider(provider_class: type[LLM]) -> type[LLM]:
    """Class decorator adding a backend under its ``name``.

    Raises:
        DuplicateProviderError: Another class already claimed the name
    """
    backend = _backend_name(provider_class)
    existing = _llm_registry.get(backend)
    if existing is not None:
        raise DuplicateProviderError(
            f"Backend '{backend}' already provided by {existing.__name__}"
        )
    _llm_registry[backend] = provider_class
    return provider_class


def get_provider_class(name: str) -> type["LLMProvider"]:
    try:
        return _llm_registry[name]
    except KeyError:
        known = ", ".join(sorted(_llm_registry)) or "(none)"
        raise ProviderNotFoundError(
            f"Unknown model backend '{name}'. Registered providers: {known}"
        ) from None


def get_registered_llm_providers() -> dict[str, type["LLMProvider"]]:
    return dict(_llm_registry)


def is_llm_provider_registered(name: str) -> bool:
    return name in _llm_registry
