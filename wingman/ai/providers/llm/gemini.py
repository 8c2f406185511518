"""Google Gemini provider (v1beta REST: generateContent + cachedContents)."""

import logging
import time
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field

from wingman.ai.providers.base import (
    CacheHandle,
    CachingBackend,
    GenerationResult,
    LLMProvider,
    ModelConfig,
    TokenUsage,
)
from wingman.ai.providers.registry import register_llm_provider
from wingman.exceptions import ProviderError

logger = logging.getLogger("providers.gemini")

_UNSUPPORTED_SCHEMA_KEYS = frozenset({"additionalProperties", "strict"})


# ---------------------------------------------------------------------------
# Response envelope
# ---------------------------------------------------------------------------


class _Part(BaseModel):
    model_config = ConfigDict(extra="ignore")

    text: str | None = None


class _Content(BaseModel):
    model_config = ConfigDict(extra="ignore")

    parts: list[_Part] = Field(default_factory=list)


class _Candidate(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    content: _Content | None = None
    finish_reason: str | None = Field(default=None, alias="finishReason")


class _UsageMetadata(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    prompt_token_count: int = Field(default=0, alias="promptTokenCount")
    candidates_token_count: int = Field(default=0, alias="candidatesTokenCount")
    cached_content_token_count: int = Field(default=0, alias="cachedContentTokenCount")
    total_token_count: int = Field(default=0, alias="totalTokenCount")


class GeminiGenerateResponse(BaseModel):
    """``generateContent`` response body, reduced to the fields we read."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    candidates: list[_Candidate] = Field(default_factory=list)
    usage_metadata: _UsageMetadata = Field(default_factory=_UsageMetadata, alias="usageMetadata")

    def to_result(self, model_id: str) -> GenerationResult:
        first = self.candidates[0] if self.candidates else None
        text = ""
        if first is not None and first.content is not None and first.content.parts:
            text = first.content.parts[0].text or ""
        usage = self.usage_metadata
        return GenerationResult(
            raw_text=text,
            model_id=model_id,
            token_usage=TokenUsage(
                prompt_tokens=usage.prompt_token_count,
                completion_tokens=usage.candidates_token_count,
                cached_tokens=usage.cached_content_token_count,
                total_tokens=usage.total_token_count,
            ),
            finish_reason=first.finish_reason if first is not None else None,
        )



class GeminiCachedContent(BaseModel):
    """``cachedContents`` create response; only the resource name is used."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=1)


def to_gemini_schema(schema: Any) -> Any:
    """Drop JSON Schema keywords the Gemini schema dialect rejects."""
    if isinstance(schema, dict):
        return {k: to_gemini_schema(v) for k, v in schema.items() if k not in _UNSUPPORTED_SCHEMA_KEYS}
    if isinstance(schema, list):
        return [to_gemini_schema(item) for item in schema]
    return schema


def normalize_model_id(model_id: str) -> str:
    """Strip the ``models/`` resource prefix Gemini accepts in some places."""
    return model_id.strip().removeprefix("models/")


@register_llm_provider
class GeminiProvider(LLMProvider, CachingBackend):
    """Gemini REST provider with server-side context caching."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 30.0,
    ) -> None:
        self._api_key = api_key
        self._base_url = (base_url or "").rstrip("/")
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        return "gemini"

    def _get_headers(self) -> dict[str, str]:
        return {
            "x-goog-api-key": self._api_key,
            "Content-Type": "application/json",
        }

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        url: str,
        model_id: str,
        payload: dict[str, Any] | None = None,
        cache_used: bool = False,
    ) -> httpx.Response:
        client = self._get_client()
        try:
            if method == "GET":
                response = await client.get(url, headers=self._get_headers())
            else:
                response = await client.post(url, headers=self._get_headers(), json=payload)
        except httpx.TimeoutException as exc:
            raise ProviderError(
                self.name,
                model_id,
                f"Request timed out after {self._timeout}s",
                retryable=True,
            ) from exc
        except httpx.RequestError as exc:
            raise ProviderError(
                self.name,
                model_id,
                f"Transport error: {exc}",
                retryable=True,
            ) from exc

        if response.status_code >= 400:
            raise ProviderError(
                self.name,
                model_id,
                f"Gemini request failed: {response.status_code} {response.text[:500]}",
                status_code=response.status_code,
                cache_miss=cache_used and response.status_code == 404,
            )
        return response

    async def generate(
        self,
        system_prompt: str,
        dynamic_prompt: str,
        config: ModelConfig,
        cache_handle: CacheHandle | None = None,
        response_schema: dict[str, Any] | None = None,
    ) -> GenerationResult:
        start_time = time.time()
        model_id = normalize_model_id(config.model_id)

        generation_config: dict[str, Any] = {
            "temperature": config.temperature,
            "maxOutputTokens": config.max_output_tokens,
        }
        if config.presence_penalty is not None:
            generation_config["presencePenalty"] = config.presence_penalty
        if config.frequency_penalty is not None:
            generation_config["frequencyPenalty"] = config.frequency_penalty
        if response_schema is not None:
            generation_config["responseMimeType"] = "application/json"
            generation_config["responseSchema"] = to_gemini_schema(response_schema)

        payload: dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": dynamic_prompt}]}],
            "generationConfig": generation_config,
        }
        if cache_handle is not None:
            payload["cachedContent"] = cache_handle.remote_reference
        else:
            payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}

        logger.debug(
            "Gemini generate started",
            extra={
                "service": "providers.gemini",
                "provider": self.name,
                "model_id": model_id,
                "used_cache": cache_handle is not None,
            },
        )

        response = await self._request(
            "POST",
            f"{self._base_url}/models/{model_id}:generateContent",
            model_id,
            payload=payload,
            cache_used=cache_handle is not None,
        )

        try:
            envelope = GeminiGenerateResponse.model_validate(response.json())
        except ValueError as exc:
            raise ProviderError(
                self.name, model_id, f"Unreadable response body: {exc}", retryable=True
            ) from exc

        result = envelope.to_result(model_id)
        if not result.raw_text.strip():
            raise ProviderError(
                self.name,
                model_id,
                f"Empty response from Gemini (finish_reason={result.finish_reason})",
                retryable=True,
            )

        logger.info(
            "Gemini generate complete",
            extra={
                "service": "providers.gemini",
                "provider": self.name,
                "model_id": model_id,
                "tokens_in": result.token_usage.prompt_tokens,
                "tokens_out": result.token_usage.completion_tokens,
                "cached_tokens": result.token_usage.cached_tokens,
                "duration_ms": int((time.time() - start_time) * 1000),
            },
        )
        return result

    # ------------------------------------------------------------------
    # Context caching
    # ------------------------------------------------------------------

    def supports_caching(self, model_id: str) -> bool:
        return normalize_model_id(model_id).startswith("gemini-")

    async def create_cached_content(
        self,
        model_id: str,
        system_prompt: str,
        static_content: str,
        ttl_seconds: int,
        display_name: str,
    ) -> str:
        model_id = normalize_model_id(model_id)
        payload = {
            "model": f"models/{model_id}",
            "systemInstruction": {"parts": [{"text": system_prompt}]},
            # cachedContents rejects empty contents
            "contents": [{"role": "user", "parts": [{"text": static_content or " "}]}],
            "ttl": f"{ttl_seconds}s",
            "displayName": display_name,
        }
        response = await self._request(
            "POST", f"{self._base_url}/cachedContents", model_id, payload=payload
        )
        try:
            created = GeminiCachedContent.model_validate(response.json())
        except ValueError as exc:
            raise ProviderError(
                self.name, model_id, f"Unreadable cachedContents body: {exc}"
            ) from exc
        return created.name

    async def cached_content_exists(self, remote_reference: str) -> bool:
        try:
            await self._request("GET", f"{self._base_url}/{remote_reference}", remote_reference)
        except ProviderError as exc:
            if exc.status_code == 404:
                return False
            raise
        return True
