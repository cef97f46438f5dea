"""Tests for the LLM providers and the LLM-backed content generator."""

import json

import httpx
import pytest

from job_reels.adapters.content.llm import LLMContentGenerator
from job_reels.adapters.llm.base import LLMMessage, LLMProvider, LLMResponse
from job_reels.adapters.llm.openai import OpenAIProvider
from job_reels.adapters.llm.stub import STUB_CAPTION, StubLLMProvider
from job_reels.domain.enums import GeneratorMode, ShotPhase
from job_reels.errors import ProviderError
from job_reels.video.manifest_builder import ManifestBuilder

MESSAGES = [LLMMessage.system("You write storyboards."), LLMMessage.user("Line Cook")]


class GarbageLLM(LLMProvider):
    @property
    def name(self) -> str:
        return "garbage"

    async def complete(self, messages, temperature=0.7, max_tokens=2048, json_mode=False):
        return LLMResponse(content="Sure! Here is your storyboard:", model="garbage-1")


def _completion(content: str, finish_reason: str = "stop") -> dict:
    return {
        "model": "gpt-4o-mini-2024-07-18",
        "choices": [{"message": {"content": content}, "finish_reason": finish_reason}],
        "usage": {"prompt_tokens": 120, "completion_tokens": 80},
    }


def _openai(handler) -> OpenAIProvider:
    return OpenAIProvider(
        api_key="sk-test",
        base_url="https://api.test/v1",
        transport=httpx.MockTransport(handler),
    )


class TestOpenAIProvider:
    @pytest.mark.asyncio
    async def test_json_completion(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_completion('{"storyboard": []}'))

        response = await _openai(handler).complete(MESSAGES, json_mode=True)

        assert response.content == '{"storyboard": []}'
        assert response.model == "gpt-4o-mini-2024-07-18"
        assert response.total_tokens == 200
        assert response.warnings == []

        request = seen[0]
        assert request.url == "https://api.test/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer sk-test"
        payload = json.loads(request.content)
        assert payload["response_format"] == {"type": "json_object"}
        assert [m["role"] for m in payload["messages"]] == ["system", "user"]

    @pytest.mark.asyncio
    async def test_truncated_completion_warns(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=_completion('{"story', finish_reason="length"))

        response = await _openai(handler).complete(MESSAGES)

        assert response.truncated
        assert response.warnings == ["completion hit max_tokens"]

    @pytest.mark.asyncio
    async def test_rate_limited(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, json={"error": {"message": "slow down"}})

        with pytest.raises(ProviderError) as exc_info:
            await _openai(handler).complete(MESSAGES)
        assert exc_info.value.code == "rate_limited"

    @pytest.mark.asyncio
    async def test_server_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, text="upstream unavailable")

        with pytest.raises(ProviderError) as exc_info:
            await _openai(handler).complete(MESSAGES)
        assert exc_info.value.context["body"] == "upstream unavailable"

    @pytest.mark.asyncio
    async def test_missing_key(self) -> None:
        provider = OpenAIProvider(api_key="")

        with pytest.raises(ProviderError) as exc_info:
            await provider.complete(MESSAGES)
        assert exc_info.value.code == "missing_credentials"
        assert await provider.health_check() is False


class TestLLMContentGenerator:
    @pytest.mark.asyncio
    async def test_stub_draft_becomes_llm_manifest(self, job) -> None:
        """Test that camelCase LLM JSON is parsed into an llm-mode manifest."""
        builder = ManifestBuilder(LLMContentGenerator(StubLLMProvider()), provider="dry_run")

        manifest = await builder.build(job, "TIKTOK_LEAD")

        assert manifest.generator.mode == GeneratorMode.LLM
        assert manifest.generator.provider == "stub"
        assert manifest.generator.model == "stub-model"
        assert manifest.caption.text == STUB_CAPTION
        assert len(manifest.storyboard) == 5
        assert manifest.storyboard[0].phase == ShotPhase.HOOK
        assert manifest.storyboard[0].on_screen_text == "NOW HIRING"
        assert manifest.thumbnail.overlay_text == "Now hiring"
        assert "eeo" in {flag.id for flag in manifest.compliance.flags}

    @pytest.mark.asyncio
    async def test_provider_failure_falls_back(self, job) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="boom")

        builder = ManifestBuilder(LLMContentGenerator(_openai(handler)), provider="dry_run")
        manifest = await builder.build(job, "TIKTOK_LEAD")

        assert manifest.generator.mode == GeneratorMode.FALLBACK
        assert manifest.generator.warnings[0].startswith("Content fallback: LLM request failed")

    @pytest.mark.asyncio
    async def test_non_json_falls_back(self, job) -> None:
        builder = ManifestBuilder(LLMContentGenerator(GarbageLLM()), provider="dry_run")
        manifest = await builder.build(job, "TIKTOK_LEAD")

        assert manifest.generator.mode == GeneratorMode.FALLBACK
        assert manifest.generator.warnings == ["Content fallback: LLM returned invalid JSON"]
