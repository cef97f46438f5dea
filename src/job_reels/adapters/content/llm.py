"""LLM-backed manifest content generator."""

import json
import re
from typing import Any

from job_reels.adapters.content.base import ContentDraft, ContentGenerator, GenerationContext
from job_reels.adapters.llm.base import LLMMessage, LLMProvider
from job_reels.domain.models import JobSnapshot, VideoSpec
from job_reels.errors import ContentGenerationError
from job_reels.logging import get_logger

logger = get_logger(__name__)

SYSTEM_PROMPT = """You are a recruitment marketing producer who writes short vertical videos
for job postings. Every video follows Hook -> Proof -> Offer -> Action and must
respect the channel's duration window, safe zones and employment ad rules.

Write plain, concrete copy. No invented facts about pay, perks or location:
only use what the job gives you. The final shot must carry a clear call to
action."""

USER_PROMPT_TEMPLATE = """Write a video storyboard for this job.

JOB
- Title: {title}
- Company: {company}
- Location: {geo} ({location_policy})
- Pay: {pay_range}
- Benefits: {benefits}
- Description: {description}

CHANNEL: {channel_name} ({channel_id}), placement {placement_name}
- Duration: {min_seconds:g}-{max_seconds:g}s (target {target_seconds}s)
- Aspect ratio: {aspect_ratio}
- Caption notes: {caption_notes}
- Compliance notes: {compliance_notes}
- Default call to action: {cta}

RENDERING
{capabilities}

Return a JSON object:
{{
  "storyboard": [
    {{"phase": "HOOK|PROOF|OFFER|ACTION|BRIDGE", "visual": "...", "on_screen_text": "...",
      "voice_over": "...", "duration_seconds": 4, "b_roll": "..."}}
  ],
  "caption": {{"text": "max 400 characters", "hashtags": ["max 8, no #"]}},
  "thumbnail": {{"description": "...", "overlay_text": "..."}},
  "compliance_flags": [{{"id": "...", "label": "...", "severity": "info|warning|blocking"}}],
  "warnings": []
}}

Use at least 4 shots. Return ONLY the JSON object."""

_CAMEL = re.compile(r"(?<!^)(?=[A-Z])")


def _snake_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {_CAMEL.sub("_", key).lower(): _snake_keys(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_snake_keys(item) for item in value]
    return value


class LLMContentGenerator(ContentGenerator):
    """Content generator that asks an LLM provider for a JSON draft."""

    def __init__(self, llm_provider: LLMProvider, temperature: float = 0.7) -> None:
        """Initialize with an LLM provider.

        Args:
            llm_provider: The LLM provider to use for generation
            temperature: Sampling temperature for the completion
        """
        self._llm = llm_provider
        self.temperature = temperature

    @property
    def name(self) -> str:
        return f"llm-{self._llm.name}"

    def _build_prompt(
        self, job_snapshot: JobSnapshot, spec: VideoSpec, context: GenerationContext
    ) -> str:
        return USER_PROMPT_TEMPLATE.format(
            title=job_snapshot.title,
            company=job_snapshot.company or "Not provided",
            geo=job_snapshot.geo,
            location_policy=job_snapshot.location_policy or "unspecified",
            pay_range=job_snapshot.pay_range or "Not disclosed",
            benefits=", ".join(job_snapshot.benefits) or "None listed",
            description=job_snapshot.description or "None",
            channel_name=context.channel_name,
            channel_id=context.channel_id,
            placement_name=spec.placement_name,
            min_seconds=spec.duration.min_seconds,
            max_seconds=spec.duration.max_seconds,
            target_seconds=context.target_seconds or spec.duration.recommended_seconds,
            aspect_ratio=spec.aspect_ratio,
            caption_notes="; ".join(spec.caption_notes) or "None",
            compliance_notes="; ".join(spec.compliance_notes) or "None",
            cta=spec.default_call_to_action,
            capabilities=context.capabilities_text or "Provider details not available",
        )

    async def generate(
        self,
        job_snapshot: JobSnapshot,
        spec: VideoSpec,
        context: GenerationContext,
    ) -> ContentDraft:
        logger.info(
            "llm_content_generate_started",
            job_id=job_snapshot.job_id,
            channel_id=context.channel_id,
            llm_provider=self._llm.name,
        )

        messages = [
            LLMMessage.system(SYSTEM_PROMPT),
            LLMMessage.user(self._build_prompt(job_snapshot, spec, context)),
        ]

        try:
            response = await self._llm.complete(
                messages=messages,
                temperature=self.temperature,
                max_tokens=2048,
                json_mode=True,
            )
        except Exception as e:
            logger.error("llm_content_generate_failed", error=str(e))
            raise ContentGenerationError(
                f"LLM request failed: {e}", context={"llm_provider": self._llm.name}
            ) from e

        draft = self._parse_response(response.content)
        draft.provider = self._llm.name.split(":")[0]
        draft.model = response.model
        draft.warnings.extend(response.warnings)

        logger.info(
            "llm_content_generate_completed",
            job_id=job_snapshot.job_id,
            shots=len(draft.storyboard),
            llm_model=response.model,
            tokens_used=response.total_tokens,
        )
        return draft

    def _parse_response(self, content: str) -> ContentDraft:
        """Parse the LLM JSON into a draft without validating it."""
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            logger.warning(
                "llm_response_json_parse_failed",
                error=str(e),
                content_preview=content[:200],
            )
            raise ContentGenerationError("LLM returned invalid JSON") from e

        if not isinstance(data, dict):
            raise ContentGenerationError(
                "LLM returned a non-object payload", context={"type": type(data).__name__}
            )

        data = _snake_keys(data)
        storyboard = data.get("storyboard") or data.get("shots") or []
        warnings = data.get("warnings")
        if not isinstance(warnings, list):
            warnings = []
        return ContentDraft(
            storyboard=storyboard if isinstance(storyboard, list) else [],
            caption=data.get("caption"),
            thumbnail=data.get("thumbnail"),
            compliance_flags=data.get("compliance_flags") or [],
            warnings=[w for w in warnings if isinstance(w, str)],
        )

    async def health_check(self) -> bool:
        return await self._llm.health_check()
