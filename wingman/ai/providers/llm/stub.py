"""Stub provider for tests and local development without API keys."""

import asyncio
import json
import os
from typing import Any

from wingman.ai.providers.base import (
    CacheHandle,
    GenerationResult,
    LLMProvider,
    ModelConfig,
    TokenUsage,
)
from wingman.ai.providers.registry import register_llm_provider

STUB_WINGMAN_RESPONSE: dict[str, Any] = {
    "analysis": {
        "her_last_message_feeling": "curious",
        "conversation_vibe": "light and friendly",
        "recommended_goal": "keep the momentum with an open question",
    },
    "suggestion": {
        "type": "Curious/Engaging",
        "text": "haha wait what happened next",
        "rationale": "Invites her to keep telling the story",
    },
    "wingman_tip": "Match her energy and keep it short.",
}

STUB_BOT_RESPONSE: dict[str, Any] = {
    "strategy": "ENGAGE",
    "messages": [{"text": "haha same", "delayMs": 1200}],
}


def _env_str(name: str) -> str | None:
    value = os.environ.get(name)
    if value is None:
        return None
    s = str(value).strip()
    return s if s else None


def _env_int(name: str, default: int) -> int:
    raw = _env_str(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@register_llm_provider
class StubLLMProvider(LLMProvider):
    """Returns canned, schema-valid JSON.

    ``STUB_LLM_RESPONSE`` overrides the body verbatim (useful for exercising
    the repair pipeline); ``STUB_LLM_DELAY_MS`` simulates latency.
    """

    @property
    def name(self) -> str:
        return "stub"

    async def generate(
        self,
        system_prompt: str,
        dynamic_prompt: str,
        config: ModelConfig,
        cache_handle: CacheHandle | None = None,
        response_schema: dict[str, Any] | None = None,
    ) -> GenerationResult:
        delay_ms = _env_int("STUB_LLM_DELAY_MS", 50)
        if delay_ms > 0:
            await asyncio.sleep(delay_ms / 1000)

        content = _env_str("STUB_LLM_RESPONSE")
        if content is None:
            properties = (response_schema or {}).get("properties", {})
            body = STUB_BOT_RESPONSE if "strategy" in properties else STUB_WINGMAN_RESPONSE
            content = json.dumps(body)

        tokens_in = len(system_prompt.split()) + len(dynamic_prompt.split())
        tokens_out = len(content.split())
        return GenerationResult(
            raw_text=content,
            model_id=config.model_id,
            token_usage=TokenUsage(
                prompt_tokens=tokens_in,
                completion_tokens=tokens_out,
                total_tokens=tokens_in + tokens_out,
            ),
            finish_reason="stop",
        )
