"""Prompt content and model configuration loading."""

from wingman.prompts.loader import PromptConfig, PromptLoader, load_prompt_file
from wingman.prompts.models_config import (
    BUILTIN_MODELS_CONFIG,
    ModelsConfig,
    ModelsConfigInvalid,
    ModelsConfigLoader,
    parse_models_document,
)

__all__ = [
    "BUILTIN_MODELS_CONFIG",
    "ModelsConfig",
    "ModelsConfigInvalid",
    "ModelsConfigLoader",
    "PromptConfig",
    "PromptLoader",
    "load_prompt_file",
    "parse_models_document",
]
