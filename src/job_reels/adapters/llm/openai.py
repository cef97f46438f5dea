"""OpenAI chat completions provider."""

from typing import Any

import httpx

from job_reels.adapters.llm.base import LLMMessage, LLMProvider, LLMResponse
from job_reels.config import settings
from job_reels.errors import ProviderError
from job_reels.logging import get_logger

logger = get_logger(__name__)


class OpenAIProvider(LLMProvider):
    """Asks an OpenAI chat model for storyboard, caption and compliance JSON."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or settings.openai_api_key
        self.model = model or settings.openai_model
        self.base_url = (base_url or settings.openai_base_url).rstrip("/")
        self.timeout = timeout
        self._transport = transport

        if not self.api_key:
            logger.warning("openai_api_key_missing")

    @property
    def name(self) -> str:
        return f"openai:{self.model}"

    def _client(self, timeout: float | None = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or self.timeout,
            headers={"Authorization": f"Bearer {self.api_key}"},
            transport=self._transport,
        )

    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float = 0.7,
        max_tokens: int = 2048,
        json_mode: bool = False,
    ) -> LLMResponse:
        if not self.api_key:
            raise ProviderError("OpenAI API key not configured", code="missing_credentials")

        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        logger.debug("openai_request", model=self.model, json_mode=json_mode)

        try:
            async with self._client() as client:
                response = await client.post("/chat/completions", json=payload)
        except httpx.HTTPError as e:
            raise ProviderError(
                f"OpenAI request failed: {e}", context={"provider": "openai"}
            ) from e

        if response.status_code == 429:
            raise ProviderError("OpenAI rate limited", code="rate_limited")
        if response.is_error:
            raise ProviderError(
                f"OpenAI error: HTTP {response.status_code}",
                context={"provider": "openai", "body": response.text[:500]},
            )

        data = response.json()
        choice = data["choices"][0]
        usage = data.get("usage") or {}
        result = LLMResponse(
            content=choice["message"]["content"] or "",
            model=data.get("model", self.model),
            prompt_tokens=usage.get("prompt_tokens", 0),
            completion_tokens=usage.get("completion_tokens", 0),
            finish_reason=choice.get("finish_reason"),
        )
        if result.truncated:
            result.warnings.append("completion hit max_tokens")

        logger.info(
            "openai_response",
            model=result.model,
            tokens_used=result.total_tokens,
            finish_reason=result.finish_reason,
        )
        return result

    async def health_check(self) -> bool:
        if not self.api_key:
            return False
        try:
            async with self._client(timeout=10.0) as client:
                response = await client.get("/models")
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.error("openai_health_check_failed", error=str(e))
            return False
