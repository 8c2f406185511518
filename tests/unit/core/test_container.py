"""Tests for container wiring."""

from pathlib import Path

import pytest

from wingman.ai.providers.base import ProviderName
from wingman.ai.providers.llm.gemini import GeminiProvider
from wingman.ai.providers.llm.openai import OpenAIProvider
from wingman.core import build_container
from wingman.domains.bot import BotService
from wingman.domains.feedback import FeedbackService
from wingman.domains.profiles import ProfileService
from wingman.domains.wingman import WingmanService
from wingman.exceptions import ConfigurationError

MODELS_YAML = Path(__file__).resolve().parents[3] / "config" / "models.yaml"


@pytest.fixture
def container_settings(settings):
    return settings.model_copy(update={"models_config_path": str(MODELS_YAML)})


class TestBuildContainer:
    """build_container wires one provider per backend named in the chains."""

    def test_creates_providers_for_both_chains(self, container_settings):
        container = build_container(container_settings)

        assert set(container.providers) == {ProviderName.GEMINI, ProviderName.OPENAI}
        assert isinstance(container.providers[ProviderName.GEMINI], GeminiProvider)
        assert isinstance(container.providers[ProviderName.OPENAI], OpenAIProvider)

    def test_prompt_cache_enabled_by_default(self, container_settings):
        container = build_container(container_settings)

        assert container.prompt_cache is not None

    def test_prompt_cache_can_be_disabled(self, container_settings):
        settings = container_settings.model_copy(update={"prompt_caching_enabled": False})

        container = build_container(settings)

        assert container.prompt_cache is None

    def test_missing_credential_fails_startup(self, container_settings):
        settings = container_settings.model_copy(update={"openai_api_key": ""})

        with pytest.raises(ConfigurationError) as exc_info:
            build_container(settings)

        assert exc_info.value.setting == "OPENAI_API_KEY"

    def test_orchestrator_shares_stats(self, container_settings):
        container = build_container(container_settings)

        assert container.orchestrator.stats is container.stats

    @pytest.mark.asyncio
    async def test_services_bind_to_session(self, container_settings, db_session):
        container = build_container(container_settings)

        assert isinstance(container.create_wingman_service(db_session), WingmanService)
        assert isinstance(container.create_bot_service(db_session), BotService)
        assert isinstance(container.create_feedback_service(db_session), FeedbackService)
        assert isinstance(container.create_profile_service(db_session), ProfileService)

    @pytest.mark.asyncio
    async def test_aclose_closes_provider_clients(self, container_settings):
        container = build_container(container_settings)
        gemini = container.providers[ProviderName.GEMINI]
        gemini._get_client()

        await container.aclose()

        assert gemini._client is None
