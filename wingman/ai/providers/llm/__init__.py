"""Provider implementations; importing this package registers them."""

from wingman.ai.providers.llm.gemini import GeminiProvider
from wingman.ai.providers.llm.openai import OpenAIProvider
from wingman.ai.providers.llm.stub import StubLLMProvider

__all__ = ["GeminiProvider", "OpenAIProvider", "StubLLMProvider"]
