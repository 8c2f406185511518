"""Dependency injection container."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from wingman.ai.cache import CacheStore, PromptCache
from wingman.ai.orchestration import FallbackOrchestrator, RunningStats
from wingman.ai.providers import build_llm_providers
from wingman.ai.providers.base import CachingBackend, LLMProvider, ProviderName
from wingman.config import Settings
from wingman.prompts import ModelsConfigLoader, PromptLoader

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from wingman.domains.bot import BotService
    from wingman.domains.feedback import FeedbackService
    from wingman.domains.profiles import ProfileService
    from wingman.domains.wingman import WingmanService

logger = logging.getLogger("app")


@dataclass
class Container:
    """Process-wide collaborators, built once at startup."""

    settings: Settings
    providers: dict[ProviderName, LLMProvider]
    stats: RunningStats
    orchestrator: FallbackOrchestrator
    prompt_loader: PromptLoader
    models_loader: ModelsConfigLoader
    cache_store: CacheStore = field(default_factory=CacheStore)
    prompt_cache: PromptCache | None = None

    def create_wingman_service(self, db: AsyncSession) -> WingmanService:
        """Create a WingmanService bound to one database session."""
        from wingman.domains.repository import SqlWingmanStore
        from wingman.domains.wingman import WingmanService

        return WingmanService(
            store=SqlWingmanStore(db),
            orchestrator=self.orchestrator,
            prompt_loader=self.prompt_loader,
            models_loader=self.models_loader,
            prompt_cache=self.prompt_cache,
            cache_ttl_seconds=self.settings.cache_ttl_seconds,
        )

    def create_bot_service(self, db: AsyncSession) -> BotService:
        from wingman.domains.bot import BotService
        from wingman.domains.repository import SqlWingmanStore

        return BotService(
            store=SqlWingmanStore(db),
            orchestrator=self.orchestrator,
            models_loader=self.models_loader,
        )

    def create_feedback_service(self, db: AsyncSession) -> FeedbackService:
        from wingman.domains.feedback import FeedbackService
        from wingman.domains.repository import SqlWingmanStore

        return FeedbackService(SqlWingmanStore(db))

    def create_profile_service(self, db: AsyncSession) -> ProfileService:
        from wingman.domains.profiles import ProfileService
        from wingman.domains.repository import SqlWingmanStore

        return ProfileService(SqlWingmanStore(db))

    async def aclose(self) -> None:
        for provider in self.providers.values():
            await provider.aclose()


def build_container(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> Container:
    """Wire providers, cache and orchestrator from settings.

    Providers are created for every backend named in the model chains, so a
    missing credential raises ConfigurationError here rather than on the
    first request.
    """
    models_loader = ModelsConfigLoader(
        settings.models_config_path,
        ttl_seconds=settings.config_cache_ttl_seconds,
    )
    models = models_loader.load()
    providers = build_llm_providers(settings, sorted(models.required_providers(), key=lambda p: p.value))

    stats = RunningStats()
    cache_store = CacheStore()
    prompt_cache = None
    if settings.prompt_caching_enabled:
        backends = {name: p for name, p in providers.items() if isinstance(p, CachingBackend)}
        prompt_cache = PromptCache(cache_store, backends)

    orchestrator = FallbackOrchestrator(
        providers,
        stats,
        prompt_cache=prompt_cache,
        max_retries_per_model=settings.max_retries_per_model,
        backoff_base_seconds=settings.retry_backoff_base_seconds,
        fallback_on_format_error=settings.fallback_on_format_error,
    )

    logger.info(
        "Container built",
        extra={
            "service": "app",
            "metadata": {
                "providers": sorted(p.value for p in providers),
                "models_version": models.version,
                "prompt_caching": prompt_cache is not None,
            },
        },
    )
    return Container(
        settings=settings,
        providers=providers,
        stats=stats,
        orchestrator=orchestrator,
        prompt_loader=PromptLoader.from_settings(settings, session_factory=session_factory),
        models_loader=models_loader,
        cache_store=cache_store,
        prompt_cache=prompt_cache,
    )
