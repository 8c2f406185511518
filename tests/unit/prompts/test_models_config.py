"""Tests for models document parsing and loading."""

from pathlib import Path

import pytest
import yaml

from wingman.ai.providers.base import ProviderName
from wingman.prompts import (
    BUILTIN_MODELS_CONFIG,
    ModelsConfigInvalid,
    ModelsConfigLoader,
    parse_models_document,
)
from wingman.prompts.models_config import DEFAULT_BOT_CHAIN, DEFAULT_WINGMAN_CHAIN

MODELS_YAML = """
version: "1.2.0"
wingman:
  chain:
    - {provider: gemini, model: gemini-2.5-flash, temperature: 0.9, max_output_tokens: 2000}
    - {provider: gemini, model: gemini-2.5-pro}
bot:
  chain:
    - provider: openai
      model: gpt-4o-2024-08-06
      temperature: 0.7
      max_output_tokens: 120
      presence_penalty: 0.3
      frequency_penalty: 0.2
features:
  enable_prompt_caching: false
"""


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


class TestParseModelsDocument:
    def test_parses_chains_in_order(self):
        config = parse_models_document(yaml.safe_load(MODELS_YAML))

        assert config.version == "1.2.0"
        assert [m.model_id for m in config.wingman_chain] == ["gemini-2.5-flash", "gemini-2.5-pro"]
        assert config.wingman_chain[0].temperature == 0.9
        assert config.wingman_chain[1].max_output_tokens == 1024
        bot = config.bot_chain[0]
        assert bot.provider is ProviderName.OPENAI
        assert bot.presence_penalty == 0.3
        assert bot.frequency_penalty == 0.2
        assert config.feature_enabled("enable_prompt_caching", True) is False
        assert config.required_providers() == {ProviderName.GEMINI, ProviderName.OPENAI}

    def test_missing_section_uses_default_chain(self):
        config = parse_models_document({"version": "1"})
        assert config.wingman_chain == DEFAULT_WINGMAN_CHAIN
        assert config.bot_chain == DEFAULT_BOT_CHAIN

    def test_missing_version_rejected(self):
        with pytest.raises(ModelsConfigInvalid, match="version"):
            parse_models_document({"wingman": {"chain": []}})

    def test_empty_chain_rejected(self):
        with pytest.raises(ModelsConfigInvalid):
            parse_models_document({"version": "1", "wingman": {"chain": []}})

    def test_unknown_provider_rejected(self):
        with pytest.raises(ModelsConfigInvalid, match="unknown provider"):
            parse_models_document({"version": "1", "bot": {"chain": [{"provider": "claude", "model": "x"}]}})

    def test_entry_without_model_rejected(self):
        with pytest.raises(ModelsConfigInvalid, match="model"):
            parse_models_document({"version": "1", "bot": {"chain": [{"provider": "openai"}]}})

    def test_non_mapping_document_rejected(self):
        with pytest.raises(ModelsConfigInvalid):
            parse_models_document(["not", "a", "mapping"])

    @pytest.mark.parametrize(
        "override",
        [{"temperature": "hot"}, {"max_output_tokens": "lots"}, {"presence_penalty": [0.1]}],
    )
    def test_non_numeric_setting_rejected(self, override):
        entry = {"provider": "openai", "model": "gpt-4o", **override}

        with pytest.raises(ModelsConfigInvalid, match="gpt-4o"):
            parse_models_document({"version": "1", "bot": {"chain": [entry]}})


class TestModelsConfigLoader:
    """Tests for ModelsConfigLoader caching and fallback."""

    def test_loads_file(self, tmp_path):
        path = tmp_path / "models.yaml"
        path.write_text(MODELS_YAML)

        config = ModelsConfigLoader(path).load()

        assert config.version == "1.2.0"

    def test_missing_file_uses_builtin(self, tmp_path):
        assert ModelsConfigLoader(tmp_path / "missing.yaml").load() is BUILTIN_MODELS_CONFIG

    def test_invalid_file_uses_builtin(self, tmp_path):
        path = tmp_path / "models.yaml"
        path.write_text("wingman: [unclosed")

        assert ModelsConfigLoader(path).load() is BUILTIN_MODELS_CONFIG

    def test_cached_within_ttl(self, tmp_path):
        path = tmp_path / "models.yaml"
        path.write_text(MODELS_YAML)
        clock = FakeClock()
        loader = ModelsConfigLoader(path, ttl_seconds=60, clock=clock)

        first = loader.load()
        path.write_text(MODELS_YAML.replace("1.2.0", "1.3.0"))
        clock.now += 30

        assert loader.load() is first

    def test_reloads_after_ttl(self, tmp_path):
        path = tmp_path / "models.yaml"
        path.write_text(MODELS_YAML)
        clock = FakeClock()
        loader = ModelsConfigLoader(path, ttl_seconds=60, clock=clock)

        loader.load()
        path.write_text(MODELS_YAML.replace("1.2.0", "1.3.0"))
        clock.now += 61

        assert loader.load().version == "1.3.0"

    def test_stale_cache_served_when_reload_fails(self, tmp_path):
        path = tmp_path / "models.yaml"
        path.write_text(MODELS_YAML)
        clock = FakeClock()
        loader = ModelsConfigLoader(path, ttl_seconds=60, clock=clock)

        first = loader.load()
        path.write_text('version: ""')
        clock.now += 61

        assert loader.load() is first

    def test_stale_cache_served_when_value_is_not_numeric(self, tmp_path):
        path = tmp_path / "models.yaml"
        path.write_text(MODELS_YAML)
        clock = FakeClock()
        loader = ModelsConfigLoader(path, ttl_seconds=60, clock=clock)

        first = loader.load()
        path.write_text(MODELS_YAML.replace("temperature: 0.9", "temperature: hot"))
        clock.now += 61

        assert loader.load() is first

    @pytest.mark.asyncio
    async def test_aload_shares_ttl_cache(self, tmp_path):
        path = tmp_path / "models.yaml"
        path.write_text(MODELS_YAML)
        clock = FakeClock()
        loader = ModelsConfigLoader(path, ttl_seconds=60, clock=clock)

        first = await loader.aload()
        path.write_text(MODELS_YAML.replace("1.2.0", "1.3.0"))
        clock.now += 30

        assert first.version == "1.2.0"
        assert await loader.aload() is first
        clock.now += 31
        assert (await loader.aload()).version == "1.3.0"

    def test_clear_cache_forces_reload(self, tmp_path):
        path = tmp_path / "models.yaml"
        path.write_text(MODELS_YAML)
        loader = ModelsConfigLoader(path, ttl_seconds=3600)

        loader.load()
        path.write_text(MODELS_YAML.replace("1.2.0", "2.0.0"))
        loader.clear_cache()

        assert loader.load().version == "2.0.0"

    def test_shipped_document_is_valid(self):
        path = Path(__file__).resolve().parents[3] / "config" / "models.yaml"
        config = ModelsConfigLoader(path).load()

        assert config is not BUILTIN_MODELS_CONFIG
        assert config.wingman_chain[0].model_id == "gemini-2.5-flash"
