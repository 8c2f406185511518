"""OpenAI-compatible chat completions provider (plain REST over httpx)."""

import logging
import time
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field

from wingman.ai.providers.base import (
    CacheHandle,
    GenerationResult,
    LLMProvider,
    ModelConfig,
    TokenUsage,
)
from wingman.ai.providers.registry import register_llm_provider
from wingman.exceptions import ProviderError

logger = logging.getLogger("providers.openai")


# ---------------------------------------------------------------------------
# Response envelope
# ---------------------------------------------------------------------------


class _Message(BaseModel):
    model_config = ConfigDict(extra="ignore")

    content: str | None = None


class _Choice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    message: _Message = Field(default_factory=_Message)
    finish_reason: str | None = None


class _PromptTokensDetails(BaseModel):
    model_config = ConfigDict(extra="ignore")

    cached_tokens: int = 0


class _Usage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    prompt_tokens_details: _PromptTokensDetails | None = None


class OpenAIChatResponse(BaseModel):
    """``chat/completions`` response body, reduced to the fields we read."""

    model_config = ConfigDict(extra="ignore")

    model: str | None = None
    choices: list[_Choice] = Field(default_factory=list)
    usage: _Usage = Field(default_factory=_Usage)

    def to_result(self, model_id: str) -> GenerationResult:
        first = self.choices[0] if self.choices else None
        details = self.usage.prompt_tokens_details
        return GenerationResult(
            raw_text=(first.message.content or "") if first is not None else "",
            model_id=self.model or model_id,
            token_usage=TokenUsage(
                prompt_tokens=self.usage.prompt_tokens,
                completion_tokens=self.usage.completion_tokens,
                cached_tokens=details.cached_tokens if details is not None else 0,
                total_tokens=self.usage.total_tokens,
            ),
            finish_reason=first.finish_reason if first is not None else None,
        )


@register_llm_provider
class OpenAIProvider(LLMProvider):
    """Chat completions with ``json_schema`` structured output.

    OpenAI applies prompt caching automatically on repeated prefixes, so this
    provider takes no cache handle.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 30.0,
    ) -> None:
        self._api_key = api_key
        self._base_url = (base_url or "").rstrip("/")
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        return "openai"

    def _get_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def generate(
        self,
        system_prompt: str,
        dynamic_prompt: str,
        config: ModelConfig,
        cache_handle: CacheHandle | None = None,
        response_schema: dict[str, Any] | None = None,
    ) -> GenerationResult:
        start_time = time.time()
        model_id = config.model_id

        payload: dict[str, Any] = {
            "model": model_id,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": dynamic_prompt},
            ],
            "temperature": config.temperature,
            "max_completion_tokens": config.max_output_tokens,
        }
        if config.presence_penalty is not None:
            payload["presence_penalty"] = config.presence_penalty
        if config.frequency_penalty is not None:
            payload["frequency_penalty"] = config.frequency_penalty
        if response_schema is not None:
            payload["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": "structured_response",
                    # strict mode requires closed objects
                    "strict": response_schema.get("additionalProperties") is False,
                    "schema": response_schema,
                },
            }

        logger.debug(
            "OpenAI generate started",
            extra={"service": "providers.openai", "provider": self.name, "model_id": model_id},
        )

        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)

        try:
            response = await self._client.post(
                f"{self._base_url}/chat/completions",
                headers=self._get_headers(),
                json=payload,
            )
        except httpx.TimeoutException as exc:
            raise ProviderError(
                self.name, model_id, f"Request timed out after {self._timeout}s", retryable=True
            ) from exc
        except httpx.RequestError as exc:
            raise ProviderError(
                self.name, model_id, f"Transport error: {exc}", retryable=True
            ) from exc

        if response.status_code >= 400:
            raise ProviderError(
                self.name,
                model_id,
                f"OpenAI request failed: {response.status_code} {response.text[:500]}",
                status_code=response.status_code,
            )

        try:
            envelope = OpenAIChatResponse.model_validate(response.json())
        except ValueError as exc:
            raise ProviderError(
                self.name, model_id, f"Unreadable response body: {exc}", retryable=True
            ) from exc

        result = envelope.to_result(model_id)
        if not result.raw_text.strip():
            raise ProviderError(
                self.name,
                model_id,
                f"Empty response from OpenAI (finish_reason={result.finish_reason})",
                retryable=True,
            )

        logger.info(
            "OpenAI generate complete",
            extra={
                "service": "providers.openai",
                "provider": self.name,
                "model_id": result.model_id,
                "tokens_in": result.token_usage.prompt_tokens,
                "tokens_out": result.token_usage.completion_tokens,
                "cached_tokens": result.token_usage.cached_tokens,
                "duration_ms": int((time.time() - start_time) * 1000),
            },
        )
        return result
